"""
Configuration and Protocol Constants for Packager.
"""

import math
from dataclasses import dataclass, fields, replace
from enum import IntEnum
from typing import Any, Mapping, Optional, Union

import numpy as np

from .errors import ConfigError

MAGIC_AUTO = b"PKA"  #: Mode marker for schema-less packets
MAGIC_SCHEMA = b"PKS"  #: Mode marker for schema packets
VERSION = 1  #: Wire format version
ENVELOPE_SIZE = 5  #: Marker + version + flags

# --- Flags ---
FLAG_INTEGRITY = 1  #: Packet ends with an 8-byte XXH3 checksum footer
KNOWN_FLAGS = FLAG_INTEGRITY
FOOTER_SIZE = 8

# --- Security Limits (DoS Protection) ---
MAX_VARINT_BYTES = 10  #: Longest varint accepted (64-bit payload)
MAX_PACKET_BYTES = 1 << 30  #: Largest framed packet accepted from a stream
MAX_DEPTH_LIMIT = 512  #: Upper bound for max_depth; deeper recursion nears the interpreter limit
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# --- Quantization Bounds ---
POS_MIN = np.array([-2048.0, -256.0, -2048.0])  #: Position volume lower corner
POS_MAX = np.array([2048.0, 512.0, 2048.0])  #: Position volume upper corner
ROT_MIN = np.full(3, -math.pi)  #: Orientation lower bound per axis
ROT_MAX = np.full(3, math.pi)  #: Orientation upper bound per axis
Q16_MAX = 65535


class Tag(IntEnum):
    """One-byte type codes for auto mode. Adding a tag requires a VERSION bump."""

    NIL = 0
    BOOL = 1
    SINT = 2
    FLOAT = 3
    STRING = 4
    VECTOR3 = 5
    VECTOR2 = 6
    TRANSFORM = 7
    ARRAY = 8
    MAP = 9
    COLOR3 = 10
    UDIM2 = 11
    DATETIME = 12


PROFILES = ("realtime", "datastore", "lossless")

_ALIASES = {
    "maxArray": "max_array",
    "maxStringBytes": "max_string_bytes",
    "maxDepth": "max_depth",
    "failOnQuantClamp": "fail_on_quant_clamp",
    "checkIntegrity": "check_integrity",
}


@dataclass(frozen=True)
class Options:
    """Per-call encoding options. Instances are immutable."""

    profile: str = "realtime"
    max_array: int = 200_000
    max_string_bytes: int = 1_000_000
    max_depth: int = 64
    fail_on_quant_clamp: bool = False
    check_integrity: bool = False

    def __post_init__(self) -> None:
        if self.profile not in PROFILES:
            raise ConfigError(
                f"Unknown profile {self.profile!r} (expected one of {', '.join(PROFILES)})"
            )
        for name in ("max_array", "max_string_bytes", "max_depth"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        if self.max_depth > MAX_DEPTH_LIMIT:
            raise ConfigError(f"max_depth must be at most {MAX_DEPTH_LIMIT}, got {self.max_depth}")
        for name in ("fail_on_quant_clamp", "check_integrity"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be a bool")

    @property
    def strict_quantization(self) -> bool:
        return self.fail_on_quant_clamp or self.profile == "lossless"

    def merged(self, overrides: "OptionsLike") -> "Options":
        """Overlay the supplied fields onto this instance."""
        if overrides is None:
            return self
        if isinstance(overrides, Options):
            return overrides
        if not isinstance(overrides, Mapping):
            raise ConfigError(
                f"Options must be an Options instance or a mapping, got {type(overrides).__name__}"
            )
        return replace(self, **normalize_overrides(overrides))


OptionsLike = Union[Options, Mapping[str, Any], None]

_FIELD_NAMES = frozenset(f.name for f in fields(Options))


def normalize_overrides(overrides: Mapping[str, Any]) -> dict:
    """Map camelCase aliases to field names and reject unknown fields."""
    out = {}
    for key, value in overrides.items():
        name = _ALIASES.get(key, key)
        if name not in _FIELD_NAMES:
            raise ConfigError(f"Unknown option {key!r}")
        out[name] = value
    return out


def make_options(options: OptionsLike = None, base: Optional[Options] = None) -> Options:
    """Build a complete Options value from built-in defaults (or ``base``)."""
    return (base or DEFAULT_OPTIONS).merged(options)


DEFAULT_OPTIONS = Options()
