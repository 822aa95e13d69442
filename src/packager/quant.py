"""
Fixed-point quantization codecs for spatial, color and time values.

Every bounded real maps onto the full unsigned 16-bit range, so the
reconstruction error of :func:`uq16` is at most ``(hi - lo) / 65535``.
"""

import math
from datetime import datetime, timezone
from typing import Sequence

import numpy as np

from .bitstream import ByteReader, ByteWriter
from .config import POS_MAX, POS_MIN, Q16_MAX, ROT_MAX, ROT_MIN, Options
from .errors import QuantizationRangeError, ValueRangeError
from .types import Color3, Transform, UDim, UDim2, Vector2, Vector3

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def q16(v: float, lo: float, hi: float, options: Options) -> int:
    """Quantize ``v`` in ``[lo, hi]`` to an integer in ``[0, 65535]``."""
    v = float(v)
    if not (lo <= v <= hi):
        if options.strict_quantization:
            raise QuantizationRangeError(f"quant clamp: {v:.3f} not in [{lo:.3f}, {hi:.3f}]")
        v = lo if math.isnan(v) else min(max(v, lo), hi)
    norm = (v - lo) / (hi - lo)
    return int(math.floor(norm * Q16_MAX + 0.5))


def uq16(q: int, lo: float, hi: float) -> float:
    return lo + (q / Q16_MAX) * (hi - lo)


def q16_array(values: Sequence[float], lo: np.ndarray, hi: np.ndarray, options: Options) -> np.ndarray:
    """Vectorized :func:`q16` over matching component and bound arrays."""
    v = np.asarray(values, dtype=np.float64)
    out_of_range = ~((v >= lo) & (v <= hi))
    if out_of_range.any():
        if options.strict_quantization:
            i = int(np.flatnonzero(out_of_range)[0])
            raise QuantizationRangeError(
                f"quant clamp: component {i} = {v[i]:.3f} not in [{lo[i]:.3f}, {hi[i]:.3f}]"
            )
        v = np.clip(np.where(np.isnan(v), lo, v), lo, hi)
    norm = (v - lo) / (hi - lo)
    return np.floor(norm * Q16_MAX + 0.5).astype(np.uint16)


def uq16_array(q: np.ndarray, lo: np.ndarray, hi: np.ndarray) -> np.ndarray:
    return lo + (np.asarray(q, dtype=np.float64) / Q16_MAX) * (hi - lo)


def _put_u16s(writer: ByteWriter, codes: np.ndarray) -> None:
    writer.put_bytes(codes.astype("<u2").tobytes())


def _read_u16s(reader: ByteReader, count: int) -> np.ndarray:
    return np.frombuffer(reader.read_bytes(2 * count), dtype="<u2")


def pack_vector3(writer: ByteWriter, v: Vector3, options: Options) -> None:
    _put_u16s(writer, q16_array(v, POS_MIN, POS_MAX, options))


def unpack_vector3(reader: ByteReader) -> Vector3:
    x, y, z = uq16_array(_read_u16s(reader, 3), POS_MIN, POS_MAX)
    return Vector3(float(x), float(y), float(z))


def pack_vector2(writer: ByteWriter, v: Vector2, options: Options) -> None:
    _put_u16s(writer, q16_array(v, POS_MIN[:2], POS_MAX[:2], options))


def unpack_vector2(reader: ByteReader) -> Vector2:
    x, y = uq16_array(_read_u16s(reader, 2), POS_MIN[:2], POS_MAX[:2])
    return Vector2(float(x), float(y))


def pack_transform(writer: ByteWriter, t: Transform, options: Options) -> None:
    pack_vector3(writer, t.position, options)
    _put_u16s(writer, q16_array(t.to_orientation(), ROT_MIN, ROT_MAX, options))


def unpack_transform(reader: ByteReader) -> Transform:
    position = unpack_vector3(reader)
    rx, ry, rz = uq16_array(_read_u16s(reader, 3), ROT_MIN, ROT_MAX)
    return Transform.from_orientation(position, float(rx), float(ry), float(rz))


def pack_color565(writer: ByteWriter, c: Color3) -> None:
    ch = np.clip(np.nan_to_num(np.asarray(c, dtype=np.float64), nan=0.0), 0.0, 1.0)
    r, g, b = np.floor(ch * (31, 63, 31) + 0.5).astype(int)
    writer.put_u16le((int(r) << 11) | (int(g) << 5) | int(b))


def unpack_color565(reader: ByteReader) -> Color3:
    v = reader.read_u16le()
    return Color3(((v >> 11) & 31) / 31, ((v >> 5) & 63) / 63, (v & 31) / 31)


def pack_udim2(writer: ByteWriter, u: UDim2) -> None:
    for axis in (u.x, u.y):
        writer.put_f32le(axis.scale)
        writer.put_f32le(axis.offset)


def unpack_udim2(reader: ByteReader) -> UDim2:
    x = UDim(reader.read_f32le(), reader.read_f32le())
    y = UDim(reader.read_f32le(), reader.read_f32le())
    return UDim2(x, y)


def pack_datetime(writer: ByteWriter, dt: datetime) -> None:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    seconds = math.floor((dt - _EPOCH).total_seconds())
    if seconds < 0:
        raise ValueRangeError(f"timestamp {dt.isoformat()} is before the Unix epoch")
    writer.put_varuint(seconds)


def unpack_datetime(reader: ByteReader) -> datetime:
    seconds = reader.read_varuint()
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        raise ValueRangeError(f"timestamp {seconds} is outside the supported range") from None
