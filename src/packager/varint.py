"""
Variable-length integer codecs.

Unsigned values use little-endian base-128 groups with the high bit set on
every byte but the last. Signed values are zigzag-mapped first so that
small magnitudes of either sign stay short.
"""

from typing import Any

from .config import INT64_MAX, INT64_MIN, MAX_VARINT_BYTES
from .errors import OutOfBoundsError, ValueRangeError, VarintOverflowError


def encode_varuint(n: int) -> bytes:
    """Encode a non-negative integer as a varint."""
    n = int(n)
    if n < 0:
        raise ValueRangeError(f"varuint cannot encode negative value {n}")
    if n > 0xFFFFFFFFFFFFFFFF:
        raise ValueRangeError(f"varuint value {n} exceeds 64 bits")
    out = bytearray()
    while n >= 0x80:
        out.append((n & 0x7F) | 0x80)
        n >>= 7
    out.append(n)
    return bytes(out)


def decode_varuint(reader: Any) -> int:
    """Read a varint from ``reader``; the position is unchanged on failure."""
    start = reader.position
    result = 0
    try:
        for index in range(MAX_VARINT_BYTES):
            b = reader.read_byte()
            result |= (b & 0x7F) << (7 * index)
            if not b & 0x80:
                return result
    except OutOfBoundsError:
        reader.seek(start)
        raise
    reader.seek(start)
    raise VarintOverflowError(
        f"varint longer than {MAX_VARINT_BYTES} bytes at offset {start}"
    )


def zigzag_encode(i: int) -> int:
    i = int(i)
    if i < INT64_MIN or i > INT64_MAX:
        raise ValueRangeError(f"integer {i} outside the signed 64-bit range")
    return ((i << 1) ^ (i >> 63)) & 0xFFFFFFFFFFFFFFFF


def zigzag_decode(u: int) -> int:
    return (u >> 1) ^ -(u & 1)


def encode_varint(i: int) -> bytes:
    return encode_varuint(zigzag_encode(i))


def decode_varint(reader: Any) -> int:
    return zigzag_decode(decode_varuint(reader))
