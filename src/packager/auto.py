"""
Schema-less ("auto") mode.

Every value is written as a one-byte :class:`~packager.config.Tag` followed by
a tag-specific body. Map keys are not written inline: a first pass over the
whole value collects every key into a sorted dictionary that is emitted once
after the envelope, and maps then refer to keys by their 1-based id.
The root is tagged like any other value, so a root map starts with a MAP tag
rather than going straight to its entry count.

Packet layout::

    "PKA" | version | flags | varuint N | N x (varuint len, bytes) | tagged root
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, Set

import numpy as np

from .bitstream import ByteReader, ByteWriter, BytesLike
from .config import INT64_MAX, INT64_MIN, MAGIC_AUTO, Options, Tag
from .envelope import expect_end, finish_packet, open_packet, write_envelope
from .errors import (
    BadKeyError,
    DepthExceededError,
    DictionaryIntegrityError,
    DuplicateKeyError,
    LengthExceededError,
    PackagerError,
    SizeExceededError,
    TypeMismatchError,
    UnknownTagError,
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


# --- Strings ---

def key_bytes(s: str) -> bytes:
    """Raw bytes of a string; lone surrogates from undecodable input round-trip."""
    return s.encode("utf-8", "surrogateescape")


def write_string(writer: ByteWriter, s: str, options: Options) -> None:
    raw = key_bytes(s)
    if len(raw) > options.max_string_bytes:
        raise LengthExceededError(
            f"string of {len(raw)} bytes exceeds max_string_bytes ({options.max_string_bytes})"
        )
    writer.put_varuint(len(raw))
    writer.put_bytes(raw)


def read_string(reader: ByteReader, options: Options) -> str:
    n = reader.read_varuint()
    if n > options.max_string_bytes:
        raise LengthExceededError(
            f"string of {n} bytes exceeds max_string_bytes ({options.max_string_bytes})"
        )
    return reader.read_bytes(n).decode("utf-8", "surrogateescape")


# --- Classification ---

def is_array_like(value: Any) -> bool:
    """True for lists, tuples, non-scalar numpy arrays and dense 1-based integer-keyed mappings."""
    if isinstance(value, np.ndarray):
        return value.ndim > 0
    if isinstance(value, (list, tuple)):
        return True
    if isinstance(value, Mapping) and value:
        n = len(value)
        return all(
            isinstance(k, int) and not isinstance(k, bool) and 1 <= k <= n for k in value
        )
    return False


def as_elements(value: Any) -> List[Any]:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, Mapping):
        return [value[i] for i in range(1, len(value) + 1)]
    return list(value)


def sorted_items(value: Mapping) -> List[tuple]:
    """Map entries with stringified keys, sorted by key bytes."""
    items: Dict[str, Any] = {}
    for k, v in value.items():
        sk = k if isinstance(k, str) else str(k)
        if sk in items:
            raise DuplicateKeyError(f"keys {sk!r} collide after conversion to strings")
        items[sk] = v
    return sorted(items.items(), key=lambda kv: key_bytes(kv[0]))


def _is_container(value: Any) -> bool:
    if isinstance(value, (Vector3, Vector2, Color3, UDim2)):
        return False
    if isinstance(value, np.ndarray):
        return value.ndim > 0
    return isinstance(value, (list, tuple, Mapping))


def _check_depth(depth: int, options: Options) -> None:
    if depth > options.max_depth:
        raise DepthExceededError(f"nesting depth {depth} exceeds max_depth ({options.max_depth})")


# --- Key dictionary ---

def collect_keys(value: Any, keys: Set[str], depth: int, options: Options) -> None:
    """Add every map key found anywhere inside ``value`` to ``keys``."""
    if isinstance(value, np.ndarray) and value.ndim == 0:
        value = value.item()
    if not _is_container(value):
        return
    _check_depth(depth + 1, options)
    if is_array_like(value):
        for item in as_elements(value):
            collect_keys(item, keys, depth + 1, options)
        return
    for sk, item in sorted_items(value):
        keys.add(sk)
        collect_keys(item, keys, depth + 1, options)


def build_dictionary(value: Any, options: Options) -> List[str]:
    """Sorted list of the distinct keys in ``value``; a key's id is its index + 1."""
    keys: Set[str] = set()
    collect_keys(value, keys, 0, options)
    return sorted(keys, key=key_bytes)


# --- Encoding ---

def _encode_number(writer: ByteWriter, v: Any) -> None:
    if isinstance(v, (int, np.integer)):
        writer.put_byte(Tag.SINT)
        writer.put_varint(int(v))
        return
    v = float(v)
    if math.isfinite(v) and v % 1 == 0 and INT64_MIN <= v <= INT64_MAX:
        writer.put_byte(Tag.SINT)
        writer.put_varint(int(v))
    else:
        writer.put_byte(Tag.FLOAT)
        writer.put_f32le(v)


def encode_value(
    writer: ByteWriter, value: Any, depth: int, options: Options, key_ids: Dict[str, int]
) -> None:
    if isinstance(value, np.ndarray) and value.ndim == 0:
        value = value.item()
    if value is None:
        writer.put_byte(Tag.NIL)
    elif isinstance(value, (bool, np.bool_)):
        writer.put_byte(Tag.BOOL)
        writer.put_byte(1 if value else 0)
    elif isinstance(value, (int, float, np.integer, np.floating)):
        _encode_number(writer, value)
    elif isinstance(value, str):
        writer.put_byte(Tag.STRING)
        write_string(writer, value, options)
    elif isinstance(value, Vector3):
        writer.put_byte(Tag.VECTOR3)
        pack_vector3(writer, value, options)
    elif isinstance(value, Vector2):
        writer.put_byte(Tag.VECTOR2)
        pack_vector2(writer, value, options)
    elif isinstance(value, Transform):
        writer.put_byte(Tag.TRANSFORM)
        pack_transform(writer, value, options)
    elif isinstance(value, Color3):
        writer.put_byte(Tag.COLOR3)
        pack_color565(writer, value)
    elif isinstance(value, UDim2):
        writer.put_byte(Tag.UDIM2)
        pack_udim2(writer, value)
    elif isinstance(value, datetime):
        writer.put_byte(Tag.DATETIME)
        pack_datetime(writer, value)
    elif is_array_like(value):
        _check_depth(depth + 1, options)
        elements = as_elements(value)
        if len(elements) > options.max_array:
            raise SizeExceededError(
                f"array of {len(elements)} elements exceeds max_array ({options.max_array})"
            )
        writer.put_byte(Tag.ARRAY)
        writer.put_varuint(len(elements))
        for i, item in enumerate(elements):
            try:
                encode_value(writer, item, depth + 1, options, key_ids)
            except PackagerError as e:
                e.path.insert(0, i)
                raise
    elif isinstance(value, Mapping):
        _check_depth(depth + 1, options)
        items = sorted_items(value)
        if len(items) > options.max_array:
            raise SizeExceededError(
                f"map of {len(items)} entries exceeds max_array ({options.max_array})"
            )
        writer.put_byte(Tag.MAP)
        writer.put_varuint(len(items))
        for sk, item in items:
            key_id = key_ids.get(sk)
            if key_id is None:
                raise DictionaryIntegrityError(f"key not in dictionary: {sk!r}")
            writer.put_varuint(key_id)
            try:
                encode_value(writer, item, depth + 1, options, key_ids)
            except PackagerError as e:
                e.path.insert(0, sk)
                raise
    else:
        raise TypeMismatchError(f"unsupported type: {type(value).__name__}")


def pack_auto(value: Any, options: Options) -> bytes:
    """Serialize ``value`` into a complete auto-mode packet."""
    dictionary = build_dictionary(value, options)
    if len(dictionary) > options.max_array:
        raise SizeExceededError(
            f"key dictionary of {len(dictionary)} entries exceeds max_array ({options.max_array})"
        )
    key_ids = {key: i for i, key in enumerate(dictionary, start=1)}

    writer = ByteWriter()
    write_envelope(writer, MAGIC_AUTO, options)
    writer.put_varuint(len(dictionary))
    for key in dictionary:
        write_string(writer, key, options)
    encode_value(writer, value, 0, options, key_ids)
    return finish_packet(writer, options)


# --- Decoding ---

def read_dictionary(reader: ByteReader, options: Options) -> List[str]:
    n = reader.read_varuint()
    if n > options.max_array:
        raise SizeExceededError(
            f"key dictionary of {n} entries exceeds max_array ({options.max_array})"
        )
    return [read_string(reader, options) for _ in range(n)]


def decode_value(reader: ByteReader, dictionary: List[str], depth: int, options: Options) -> Any:
    offset = reader.position
    tag = reader.read_byte()
    if tag == Tag.NIL:
        return None
    if tag == Tag.BOOL:
        return reader.read_byte() != 0
    if tag == Tag.SINT:
        return reader.read_varint()
    if tag == Tag.FLOAT:
        return reader.read_f32le()
    if tag == Tag.STRING:
        return read_string(reader, options)
    if tag == Tag.VECTOR3:
        return unpack_vector3(reader)
    if tag == Tag.VECTOR2:
        return unpack_vector2(reader)
    if tag == Tag.TRANSFORM:
        return unpack_transform(reader)
    if tag == Tag.COLOR3:
        return unpack_color565(reader)
    if tag == Tag.UDIM2:
        return unpack_udim2(reader)
    if tag == Tag.DATETIME:
        return unpack_datetime(reader)
    if tag == Tag.ARRAY:
        _check_depth(depth + 1, options)
        n = reader.read_varuint()
        if n > options.max_array:
            raise SizeExceededError(f"array of {n} elements exceeds max_array ({options.max_array})")
        out = []
        for i in range(n):
            try:
                out.append(decode_value(reader, dictionary, depth + 1, options))
            except PackagerError as e:
                e.path.insert(0, i)
                raise
        return out
    if tag == Tag.MAP:
        _check_depth(depth + 1, options)
        n = reader.read_varuint()
        if n > options.max_array:
            raise SizeExceededError(f"map of {n} entries exceeds max_array ({options.max_array})")
        obj: Dict[str, Any] = {}
        for _ in range(n):
            key_id = reader.read_varuint()
            if not 1 <= key_id <= len(dictionary):
                raise BadKeyError(
                    f"bad key id {key_id} (dictionary has {len(dictionary)} entries)"
                )
            key = dictionary[key_id - 1]
            if key in obj:
                raise BadKeyError(f"duplicate key {key!r} in map")
            try:
                obj[key] = decode_value(reader, dictionary, depth + 1, options)
            except PackagerError as e:
                e.path.insert(0, key)
                raise
        return obj
    raise UnknownTagError(f"unknown tag {tag} at offset {offset}")


def unpack_auto(data: BytesLike, options: Options) -> Any:
    """Decode a complete auto-mode packet."""
    reader, _ = open_packet(data, MAGIC_AUTO)
    with reader:
        dictionary = read_dictionary(reader, options)
        value = decode_value(reader, dictionary, 0, options)
        expect_end(reader)
    return value
