"""
Byte stream primitives: an append-only writer and a bounds-checked reader.
"""

import struct
from typing import List, Union

import numpy as np

from .errors import OutOfBoundsError
from .varint import decode_varint, decode_varuint, encode_varint, encode_varuint

BytesLike = Union[bytes, bytearray, memoryview]


class ByteWriter:
    """Accumulates byte chunks; :meth:`getvalue` joins them."""

    def __init__(self) -> None:
        self.chunks: List[bytes] = []

    def put_byte(self, b: Union[int, float]) -> None:
        """Append one byte. Out-of-range values are clamped into [0, 255], NaN writes 0."""
        if b != b:
            b = 0
        v = int(min(max(b, 0), 255))
        self.chunks.append(bytes((v,)))

    def put_bytes(self, data: BytesLike) -> None:
        self.chunks.append(bytes(data))

    def put_u16le(self, n: Union[int, float]) -> None:
        self.chunks.append(struct.pack("<H", int(n) % 65536))

    def put_f32le(self, x: float) -> None:
        # Values beyond the float32 range become +/-inf rather than failing.
        with np.errstate(over="ignore"):
            self.chunks.append(np.array(x, dtype="<f4").tobytes())

    def put_varuint(self, n: int) -> None:
        self.chunks.append(encode_varuint(n))

    def put_varint(self, i: int) -> None:
        self.chunks.append(encode_varint(i))

    def __len__(self) -> int:
        return sum(len(c) for c in self.chunks)

    def getvalue(self) -> bytes:
        return b"".join(self.chunks)


class ByteReader:
    """Sequential reader over a fixed byte sequence.

    Parameters
    ----------
    data : bytes, bytearray, memoryview or mmap.mmap
        The bytes to read. The buffer is not copied.
    """

    def __init__(self, data: BytesLike) -> None:
        self._mv = memoryview(data).cast("B")
        self._pos = 0

    def release(self) -> None:
        """Drop the view so the underlying buffer (e.g. an mmap) can be closed."""
        self._mv.release()

    def __enter__(self) -> "ByteReader":
        return self

    def __exit__(self, *exc) -> None:
        self.release()

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._mv) - self._pos

    def seek(self, pos: int) -> None:
        if pos < 0 or pos > len(self._mv):
            raise OutOfBoundsError(f"seek to {pos} outside buffer of {len(self._mv)} bytes")
        self._pos = pos

    def _take(self, n: int, what: str) -> memoryview:
        if n < 0 or self._pos + n > len(self._mv):
            raise OutOfBoundsError(
                f"{what}: need {n} bytes at offset {self._pos}, {self.remaining} remain"
            )
        view = self._mv[self._pos : self._pos + n]
        self._pos += n
        return view

    def read_byte(self) -> int:
        return self._take(1, "read_byte")[0]

    def read_bytes(self, n: int) -> bytes:
        return bytes(self._take(n, "read_bytes"))

    def read_u16le(self) -> int:
        return struct.unpack("<H", self._take(2, "read_u16le"))[0]

    def read_f32le(self) -> float:
        return struct.unpack("<f", self._take(4, "read_f32le"))[0]

    def read_varuint(self) -> int:
        return decode_varuint(self)

    def read_varint(self) -> int:
        return decode_varint(self)
