"""
Packet envelope: mode marker, format version, flags and optional checksum footer.
"""

import struct
from typing import Tuple

import xxhash

from .bitstream import ByteReader, ByteWriter, BytesLike
from .config import (
    ENVELOPE_SIZE,
    FLAG_INTEGRITY,
    FOOTER_SIZE,
    KNOWN_FLAGS,
    MAGIC_AUTO,
    MAGIC_SCHEMA,
    VERSION,
    Options,
)
from .errors import FormatMismatchError, IntegrityError

_MODE_NAMES = {MAGIC_AUTO: "auto", MAGIC_SCHEMA: "schema"}


def write_envelope(writer: ByteWriter, magic: bytes, options: Options) -> None:
    writer.put_bytes(magic)
    writer.put_byte(VERSION)
    writer.put_byte(FLAG_INTEGRITY if options.check_integrity else 0)


def finish_packet(writer: ByteWriter, options: Options) -> bytes:
    """Join the writer's chunks, appending the XXH3 footer when requested."""
    body = writer.getvalue()
    if options.check_integrity:
        body += struct.pack("<Q", xxhash.xxh3_64_intdigest(body))
    return body


def parse_envelope(mv: memoryview) -> Tuple[bytes, int, int]:
    """Return (magic, version, flags) without validating them."""
    if len(mv) < ENVELOPE_SIZE:
        raise FormatMismatchError(f"Packet too short ({len(mv)} bytes)")
    magic, version, flags = struct.unpack("<3sBB", mv[:ENVELOPE_SIZE])
    return magic, version, flags


def open_packet(data: BytesLike, magic: bytes) -> Tuple[ByteReader, int]:
    """Validate the envelope of ``data`` and return a reader positioned after it.

    The reader's view excludes the integrity footer, if any, so payload
    decoders see exactly the payload bytes.
    """
    with memoryview(data).cast("B") as mv:
        found, version, flags = parse_envelope(mv)
        if found != magic:
            raise FormatMismatchError(
                f"Not a packager {_MODE_NAMES[magic]} packet (marker {found!r}, expected {magic!r})"
            )
        if version != VERSION:
            raise FormatMismatchError(f"Format version mismatch ({version}, expected {VERSION})")
        if flags & ~KNOWN_FLAGS:
            raise FormatMismatchError(f"Unsupported flags 0x{flags:02x}")

        end = len(mv)
        if flags & FLAG_INTEGRITY:
            if end < ENVELOPE_SIZE + FOOTER_SIZE:
                raise FormatMismatchError("Packet too short for integrity footer")
            end -= FOOTER_SIZE
            expected = struct.unpack("<Q", mv[end:])[0]
            if xxhash.xxh3_64_intdigest(mv[:end]) != expected:
                raise IntegrityError("Integrity check failed: XXH3 mismatch")

        reader = ByteReader(mv[:end])
    reader.seek(ENVELOPE_SIZE)
    return reader, flags


def expect_end(reader: ByteReader) -> None:
    if reader.remaining:
        raise FormatMismatchError(
            f"{reader.remaining} trailing bytes after payload at offset {reader.position}"
        )
