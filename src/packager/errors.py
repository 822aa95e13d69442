"""Error codes and exception classes for Packager.

Every exception carries a stable ``code`` string and a ``path``: the chain of
struct fields, array indexes and map keys leading to the offending value,
filled in as the error propagates out of nested containers.
"""

from typing import List, Union

# Bounds exceeded (caller data, recoverable by adjusting input or limits)
ERR_LIMIT_STRING = "ERR_LIMIT_STRING"
ERR_LIMIT_SIZE = "ERR_LIMIT_SIZE"
ERR_LIMIT_DEPTH = "ERR_LIMIT_DEPTH"
# Caller value does not fit the requested encoding
ERR_TYPE = "ERR_TYPE"
ERR_MISSING_FIELD = "ERR_MISSING_FIELD"
ERR_DUP_KEY = "ERR_DUP_KEY"
ERR_RANGE = "ERR_RANGE"
ERR_QUANT_RANGE = "ERR_QUANT_RANGE"
# Envelope disagrees with expectations
ERR_FORMAT = "ERR_FORMAT"
ERR_SCHEMA = "ERR_SCHEMA"
# Corrupt or foreign payload
ERR_UNKNOWN_TAG = "ERR_UNKNOWN_TAG"
ERR_BAD_KEY = "ERR_BAD_KEY"
ERR_UNKNOWN_ENUM = "ERR_UNKNOWN_ENUM"
ERR_VARINT = "ERR_VARINT"
ERR_INTEGRITY = "ERR_INTEGRITY"
ERR_OUT_OF_BOUNDS = "ERR_OUT_OF_BOUNDS"
# Internal invariant
ERR_DICTIONARY = "ERR_DICTIONARY"
ERR_CONFIG = "ERR_CONFIG"


class PackagerError(ValueError):
    """Base class for all Packager errors."""

    code = "ERR_PACKAGER"

    def __init__(self, msg: str = "") -> None:
        super().__init__(msg or self.code)
        self.msg = msg or self.code
        self.path: List[Union[str, int]] = []

    def __str__(self) -> str:
        if not self.path:
            return self.msg
        where = "".join(f"[{p}]" if isinstance(p, int) else f".{p}" for p in self.path)
        return f"{self.msg} (at {where.lstrip('.')})"


class BoundsExceededError(PackagerError):
    """A string, collection or nesting limit was exceeded."""


class LengthExceededError(BoundsExceededError):
    code = ERR_LIMIT_STRING


class SizeExceededError(BoundsExceededError):
    code = ERR_LIMIT_SIZE


class DepthExceededError(BoundsExceededError):
    code = ERR_LIMIT_DEPTH


class TypeMismatchError(PackagerError, TypeError):
    code = ERR_TYPE


class MissingFieldError(TypeMismatchError):
    code = ERR_MISSING_FIELD


class DuplicateKeyError(TypeMismatchError):
    code = ERR_DUP_KEY


class ValueRangeError(PackagerError):
    code = ERR_RANGE


class QuantizationRangeError(PackagerError):
    code = ERR_QUANT_RANGE


class FormatMismatchError(PackagerError):
    code = ERR_FORMAT


class SchemaMismatchError(FormatMismatchError):
    code = ERR_SCHEMA


class CorruptDataError(PackagerError):
    """The payload holds a value the format cannot produce."""


class UnknownTagError(CorruptDataError):
    code = ERR_UNKNOWN_TAG


class BadKeyError(CorruptDataError):
    code = ERR_BAD_KEY


class UnknownEnumIdError(CorruptDataError):
    code = ERR_UNKNOWN_ENUM


class VarintOverflowError(CorruptDataError):
    code = ERR_VARINT


class IntegrityError(CorruptDataError):
    code = ERR_INTEGRITY


class OutOfBoundsError(PackagerError, EOFError):
    code = ERR_OUT_OF_BOUNDS


class DictionaryIntegrityError(PackagerError):
    code = ERR_DICTIONARY


class ConfigError(PackagerError):
    code = ERR_CONFIG
