from . import schema
from .config import DEFAULT_OPTIONS, Options, Tag
from .core import (
    Packager,
    dump,
    get_default_packager,
    get_packet_info,
    initialize,
    load,
    pack,
    read_stream,
    unpack,
    write_stream,
)
from .errors import (
    BadKeyError,
    BoundsExceededError,
    ConfigError,
    DepthExceededError,
    DictionaryIntegrityError,
    DuplicateKeyError,
    FormatMismatchError,
    IntegrityError,
    LengthExceededError,
    MissingFieldError,
    OutOfBoundsError,
    PackagerError,
    QuantizationRangeError,
    SchemaMismatchError,
    SizeExceededError,
    TypeMismatchError,
    UnknownEnumIdError,
    UnknownTagError,
    ValueRangeError,
    VarintOverflowError,
)
from .schema import Schema, define_schema
from .types import Color3, Transform, UDim, UDim2, Vector2, Vector3

__version__ = "1.0.0"

__all__ = [
    "DEFAULT_OPTIONS", "Options", "Tag", "Packager", "Schema", "schema",
    "initialize", "pack", "unpack", "define_schema",
    "dump", "load", "read_stream", "write_stream", "get_packet_info", "get_default_packager",
    "Vector3", "Vector2", "Transform", "Color3", "UDim", "UDim2",
    "PackagerError", "BoundsExceededError", "LengthExceededError", "SizeExceededError",
    "DepthExceededError", "TypeMismatchError", "MissingFieldError", "DuplicateKeyError",
    "ValueRangeError", "QuantizationRangeError", "FormatMismatchError", "SchemaMismatchError",
    "UnknownTagError", "BadKeyError", "UnknownEnumIdError", "VarintOverflowError",
    "IntegrityError", "OutOfBoundsError", "DictionaryIntegrityError", "ConfigError",
]
