"""
Schema mode: composable type descriptors and the schema envelope.

A descriptor knows how to write one value of its kind and read it back.
Descriptors compose through :func:`array` and :func:`struct`; a
:class:`Schema` names and versions a root descriptor::

    from packager import schema as S

    PLAYER = S.define_schema("Player", 1, S.struct({
        "id": S.uint(),
        "name": S.string(),
        "alive": S.boolean(),
    }))

Encoding is untagged, so the same schema instance must be used to read the
bytes back. Struct fields are written in sorted name order, which makes the
output independent of the order fields were declared or supplied in.

Packet layout::

    "PKS" | version | flags | varuint len, name | varuint schema version | root
"""

from enum import Enum
from dataclasses import dataclass
from datetime import datetime
from numbers import Real
from typing import Any, Dict, List, Mapping, Sequence, Union

import numpy as np

from .auto import key_bytes, read_string, write_string
from .bitstream import ByteReader, ByteWriter, BytesLike
from .config import MAGIC_SCHEMA, Options
from .envelope import expect_end, finish_packet, open_packet, write_envelope
from .errors import (
    ConfigError,
    MissingFieldError,
    PackagerError,
    SchemaMismatchError,
    SizeExceededError,
    TypeMismatchError,
    UnknownEnumIdError,
)
from .quant import (
    pack_color565,
    pack_datetime,
    pack_transform,
    pack_udim2,
    pack_vector2,
    pack_vector3,
    unpack_color565,
    unpack_datetime,
    unpack_transform,
    unpack_udim2,
    unpack_vector2,
    unpack_vector3,
)
from .types import Color3, Transform, UDim2, Vector2, Vector3


class SchemaType:
    """Base descriptor. Subclasses implement :meth:`encode` and :meth:`decode`."""

    kind = "value"
    expected = "a value"

    def encode(self, writer: ByteWriter, value: Any, options: Options) -> None:
        raise NotImplementedError

    def decode(self, reader: ByteReader, options: Options) -> Any:
        raise NotImplementedError

    def expect(self, value: Any, ok: bool) -> None:
        if not ok:
            raise TypeMismatchError(f"{self.kind} expects {self.expected}, got {type(value).__name__}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class UIntType(SchemaType):
    kind = "uint"
    expected = "a non-negative integer"

    def encode(self, writer, value, options):
        self.expect(
            value,
            isinstance(value, (int, np.integer)) and not isinstance(value, bool) and value >= 0,
        )
        writer.put_varuint(int(value))

    def decode(self, reader, options):
        return reader.read_varuint()


class Float32Type(SchemaType):
    kind = "float32"
    expected = "a real number"

    def encode(self, writer, value, options):
        self.expect(value, isinstance(value, Real) and not isinstance(value, bool))
        writer.put_f32le(float(value))

    def decode(self, reader, options):
        return reader.read_f32le()


class BoolType(SchemaType):
    kind = "boolean"
    expected = "a bool"

    def encode(self, writer, value, options):
        self.expect(value, isinstance(value, (bool, np.bool_)))
        writer.put_byte(1 if value else 0)

    def decode(self, reader, options):
        return reader.read_byte() != 0


class StringType(SchemaType):
    kind = "string"
    expected = "a str"

    def encode(self, writer, value, options):
        self.expect(value, isinstance(value, str))
        write_string(writer, value, options)

    def decode(self, reader, options):
        return read_string(reader, options)


class Vector3Type(SchemaType):
    kind = "vector3"
    expected = "a Vector3"

    def encode(self, writer, value, options):
        self.expect(value, isinstance(value, Vector3))
        pack_vector3(writer, value, options)

    def decode(self, reader, options):
        return unpack_vector3(reader)


class Vector2Type(SchemaType):
    kind = "vector2"
    expected = "a Vector2"

    def encode(self, writer, value, options):
        self.expect(value, isinstance(value, Vector2))
        pack_vector2(writer, value, options)

    def decode(self, reader, options):
        return unpack_vector2(reader)


class TransformType(SchemaType):
    kind = "transform"
    expected = "a Transform"

    def encode(self, writer, value, options):
        self.expect(value, isinstance(value, Transform))
        pack_transform(writer, value, options)

    def decode(self, reader, options):
        return unpack_transform(reader)


class ColorType(SchemaType):
    kind = "color"
    expected = "a Color3"

    def encode(self, writer, value, options):
        self.expect(value, isinstance(value, Color3))
        pack_color565(writer, value)

    def decode(self, reader, options):
        return unpack_color565(reader)


class UDim2Type(SchemaType):
    kind = "udim2"
    expected = "a UDim2"

    def encode(self, writer, value, options):
        self.expect(value, isinstance(value, UDim2))
        pack_udim2(writer, value)

    def decode(self, reader, options):
        return unpack_udim2(reader)


class TimestampType(SchemaType):
    kind = "timestamp"
    expected = "a datetime"

    def encode(self, writer, value, options):
        self.expect(value, isinstance(value, datetime))
        pack_datetime(writer, value)

    def decode(self, reader, options):
        return unpack_datetime(reader)


class EnumType(SchemaType):
    """Named items written as their 1-based position; decodes to the item name."""

    kind = "enum"
    expected = "an Enum member or item name"

    def __init__(self, items: Sequence[str]):
        self.items = tuple(items)
        if not self.items:
            raise ConfigError("enum needs at least one item")
        self.ids = {name: i for i, name in enumerate(self.items, start=1)}
        if len(self.ids) != len(self.items):
            raise ConfigError("enum items must be distinct")

    def encode(self, writer, value, options):
        self.expect(value, isinstance(value, (Enum, str)))
        name = value.name if isinstance(value, Enum) else value
        item_id = self.ids.get(name)
        if item_id is None:
            raise TypeMismatchError(f"enum: unexpected item {name!r} (expected one of {list(self.items)})")
        writer.put_varuint(item_id)

    def decode(self, reader, options):
        item_id = reader.read_varuint()
        if not 1 <= item_id <= len(self.items):
            raise UnknownEnumIdError(f"enum: bad id {item_id} ({len(self.items)} items)")
        return self.items[item_id - 1]

    def __repr__(self) -> str:
        return f"EnumType({list(self.items)!r})"


class ArrayType(SchemaType):
    kind = "array"
    expected = "a list, tuple or numpy array"

    def __init__(self, inner: SchemaType):
        if not isinstance(inner, SchemaType):
            raise ConfigError(f"array element type must be a SchemaType, got {type(inner).__name__}")
        self.inner = inner

    def encode(self, writer, value, options):
        self.expect(value, isinstance(value, (list, tuple, np.ndarray)))
        elements = value.tolist() if isinstance(value, np.ndarray) else value
        if len(elements) > options.max_array:
            raise SizeExceededError(
                f"array of {len(elements)} elements exceeds max_array ({options.max_array})"
            )
        writer.put_varuint(len(elements))
        for i, item in enumerate(elements):
            try:
                self.inner.encode(writer, item, options)
            except PackagerError as e:
                e.path.insert(0, i)
                raise

    def decode(self, reader, options):
        n = reader.read_varuint()
        if n > options.max_array:
            raise SizeExceededError(f"array of {n} elements exceeds max_array ({options.max_array})")
        out = []
        for i in range(n):
            try:
                out.append(self.inner.decode(reader, options))
            except PackagerError as e:
                e.path.insert(0, i)
                raise
        return out

    def __repr__(self) -> str:
        return f"ArrayType({self.inner!r})"


class StructType(SchemaType):
    """Named fields, always written in sorted field-name order."""

    kind = "struct"
    expected = "a mapping"

    def __init__(self, fields: Mapping[str, SchemaType]):
        for name, t in fields.items():
            if not isinstance(name, str):
                raise ConfigError(f"struct field names must be str, got {name!r}")
            if not isinstance(t, SchemaType):
                raise ConfigError(f"field {name!r} must be a SchemaType, got {type(t).__name__}")
        self.fields: Dict[str, SchemaType] = dict(fields)
        self.order: List[str] = sorted(self.fields, key=key_bytes)

    def encode(self, writer, value, options):
        self.expect(value, isinstance(value, Mapping))
        for name in self.order:
            item = value.get(name)
            if item is None:
                raise MissingFieldError(f"missing field: {name}")
            try:
                self.fields[name].encode(writer, item, options)
            except PackagerError as e:
                e.path.insert(0, name)
                raise

    def decode(self, reader, options):
        out: Dict[str, Any] = {}
        for name in self.order:
            try:
                out[name] = self.fields[name].decode(reader, options)
            except PackagerError as e:
                e.path.insert(0, name)
                raise
        return out

    def __repr__(self) -> str:
        inner = ", ".join(f"{name!r}: {self.fields[name]!r}" for name in self.order)
        return f"StructType({{{inner}}})"


# --- Constructors ---

def uint() -> UIntType:
    return UIntType()


def float32() -> Float32Type:
    return Float32Type()


def boolean() -> BoolType:
    return BoolType()


def string() -> StringType:
    return StringType()


def vector3() -> Vector3Type:
    return Vector3Type()


def vector2() -> Vector2Type:
    return Vector2Type()


def transform() -> TransformType:
    return TransformType()


def color() -> ColorType:
    return ColorType()


def udim2() -> UDim2Type:
    return UDim2Type()


def timestamp() -> TimestampType:
    return TimestampType()


def enum(items: Union[Sequence[str], type]) -> EnumType:
    """Enumeration over ``items``: item names in order, or an ``Enum`` class."""
    if isinstance(items, type) and issubclass(items, Enum):
        items = [member.name for member in items]
    return EnumType(items)


def array(inner: SchemaType) -> ArrayType:
    return ArrayType(inner)


def struct(fields: Mapping[str, SchemaType]) -> StructType:
    return StructType(fields)


@dataclass(frozen=True)
class Schema:
    """A named, versioned wire contract around a root descriptor."""

    name: str
    version: int
    root: SchemaType

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise ConfigError(f"schema name must be a str, got {type(self.name).__name__}")
        if isinstance(self.version, bool) or not isinstance(self.version, int) or self.version < 0:
            raise ConfigError(f"schema version must be a non-negative integer, got {self.version!r}")
        if not isinstance(self.root, SchemaType):
            raise ConfigError(f"schema root must be a SchemaType, got {type(self.root).__name__}")


def define_schema(name: str, version: int, root: SchemaType) -> Schema:
    return Schema(name, version, root)


def pack_schema(value: Any, schema: Schema, options: Options) -> bytes:
    """Serialize ``value`` against ``schema`` into a complete schema-mode packet."""
    writer = ByteWriter()
    write_envelope(writer, MAGIC_SCHEMA, options)
    write_string(writer, schema.name, options)
    writer.put_varuint(schema.version)
    schema.root.encode(writer, value, options)
    return finish_packet(writer, options)


def unpack_schema(data: BytesLike, schema: Schema, options: Options) -> Any:
    """Decode a schema-mode packet, rejecting packets written by another schema."""
    reader, _ = open_packet(data, MAGIC_SCHEMA)
    with reader:
        name = read_string(reader, options)
        version = reader.read_varuint()
        if name != schema.name or version != schema.version:
            raise SchemaMismatchError(
                f"schema header mismatch ({name!r} v{version}, expected {schema.name!r} v{schema.version})"
            )
        value = schema.root.decode(reader, options)
        expect_end(reader)
    return value
