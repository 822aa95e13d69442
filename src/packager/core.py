"""
Core Serialization Engine for Packager.
"""

import logging
import mmap
import struct
from typing import Any, BinaryIO, Dict, Optional, Tuple, Union

from .auto import pack_auto, read_dictionary, read_string, unpack_auto
from .bitstream import ByteReader, BytesLike
from .config import (
    ENVELOPE_SIZE,
    FLAG_INTEGRITY,
    MAGIC_AUTO,
    MAGIC_SCHEMA,
    MAX_PACKET_BYTES,
    Options,
    OptionsLike,
    make_options,
)
from .envelope import parse_envelope
from .errors import FormatMismatchError, SizeExceededError
from .schema import Schema, pack_schema, unpack_schema

logger = logging.getLogger(__name__)

SchemaOrOptions = Union[Schema, OptionsLike]

_FRAME_HEADER = struct.Struct("<I")


class Packager:
    """Engine handle owning the default options for its pack/unpack calls.

    Parameters
    ----------
    options : Options or mapping, optional
        Defaults for this engine. Fields not given take the built-in defaults.
    """

    def __init__(self, options: OptionsLike = None) -> None:
        self._options = make_options(options)

    @property
    def options(self) -> Options:
        return self._options

    def initialize(self, options: OptionsLike = None) -> Options:
        """Replace this engine's default options wholesale.

        Fields not supplied are reset to the built-in defaults, not kept from
        the previous value.
        """
        self._options = make_options(options)
        logger.debug("packager defaults replaced: %s", self._options)
        return self._options

    def effective_options(self, overrides: OptionsLike = None) -> Options:
        return self._options.merged(overrides)

    def _resolve(
        self, schema_or_options: SchemaOrOptions, options: OptionsLike
    ) -> Tuple[Optional[Schema], Options]:
        if isinstance(schema_or_options, Schema):
            return schema_or_options, self.effective_options(options)
        if schema_or_options is None:
            return None, self.effective_options(options)
        if options is not None:
            raise TypeError("options given twice: pass a Schema as the second argument or omit options")
        return None, self.effective_options(schema_or_options)

    def pack(
        self, value: Any, schema_or_options: SchemaOrOptions = None, options: OptionsLike = None
    ) -> bytes:
        """
        Serialize a value to a packet.

        Parameters
        ----------
        value : Any
            The value to serialize.
        schema_or_options : Schema, Options or mapping, optional
            A Schema selects schema mode; anything else is taken as options
            for auto mode.
        options : Options or mapping, optional
            Options for schema mode, overlaid on the engine defaults.

        Returns
        -------
        bytes
            The serialized packet.
        """
        schema, opts = self._resolve(schema_or_options, options)
        if schema is not None:
            return pack_schema(value, schema, opts)
        return pack_auto(value, opts)

    def unpack(
        self,
        data: Union[bytes, bytearray, memoryview, mmap.mmap],
        schema_or_options: SchemaOrOptions = None,
        options: OptionsLike = None,
    ) -> Any:
        """
        Deserialize a packet produced by :meth:`pack`.

        Parameters
        ----------
        data : bytes, bytearray, memoryview or mmap.mmap
            The packet bytes.
        schema_or_options : Schema, Options or mapping, optional
            The Schema the packet was written with, or options for auto mode.
        options : Options or mapping, optional
            Options for schema mode.

        Returns
        -------
        Any
            The reconstructed value.
        """
        schema, opts = self._resolve(schema_or_options, options)
        if schema is not None:
            return unpack_schema(data, schema, opts)
        return unpack_auto(data, opts)

    def dump(
        self, value: Any, fp: BinaryIO, schema_or_options: SchemaOrOptions = None,
        options: OptionsLike = None,
    ) -> int:
        """Serialize a value and write the packet to a binary file.

        Returns
        -------
        int
            Number of bytes written.
        """
        packet = self.pack(value, schema_or_options, options)
        fp.write(packet)
        return len(packet)

    def load(
        self, fp: BinaryIO, schema_or_options: SchemaOrOptions = None,
        options: OptionsLike = None, mmap_mode: bool = False,
    ) -> Any:
        """Deserialize the single packet held by a binary file.

        Parameters
        ----------
        fp : BinaryIO
            The binary file pointer to read from.
        mmap_mode : bool, optional
            Whether to decode from a memory map instead of reading the file.
            Default is False.
        """
        if mmap_mode:
            with mmap.mmap(fp.fileno(), 0, access=mmap.ACCESS_READ) as mm:
                return self.unpack(mm, schema_or_options, options)
        data = fp.read()
        if not data:
            raise EOFError("Empty file or stream")
        return self.unpack(data, schema_or_options, options)

    def write_stream(
        self, value: Any, dest: Any, schema_or_options: SchemaOrOptions = None,
        options: OptionsLike = None,
    ) -> int:
        """Write one length-prefixed packet to a file or socket.

        Returns
        -------
        int
            Number of bytes written, including the 4-byte frame header.
        """
        frame = frame_packet(self.pack(value, schema_or_options, options))
        if hasattr(dest, "sendall"):
            dest.sendall(frame)
        else:
            dest.write(frame)
        return len(frame)

    def read_stream(
        self, source: Any, schema_or_options: SchemaOrOptions = None,
        options: OptionsLike = None,
    ) -> Optional[Any]:
        """Read one length-prefixed packet from a stream source.

        Returns None when the stream ends cleanly before a new frame.
        """
        header = bytearray(_FRAME_HEADER.size)
        try:
            if not _read_into_buffer(source, header):
                return None
        except EOFError as e:
            raise EOFError(f"Stream ended during frame header read. {e}") from None

        (length,) = _FRAME_HEADER.unpack(header)
        check_frame_length(length)
        body = bytearray(length)
        try:
            if not _read_into_buffer(source, body):
                raise EOFError("Stream ended during packet read")
        except EOFError as e:
            raise EOFError(f"Stream ended during packet read. {e}") from None
        return self.unpack(body, schema_or_options, options)


def frame_packet(packet: bytes) -> bytes:
    return _FRAME_HEADER.pack(len(packet)) + packet


def check_frame_length(length: int) -> None:
    if length > MAX_PACKET_BYTES:
        raise SizeExceededError(f"Frame exceeds maximum packet size ({length} > {MAX_PACKET_BYTES})")
    if length < ENVELOPE_SIZE:
        raise FormatMismatchError(f"Frame of {length} bytes is shorter than the envelope")


def _read_into_buffer(source: Any, buf: Union[bytearray, memoryview]) -> bool:
    """Fill a buffer from a source, handling various I/O types."""
    view = memoryview(buf)
    n = view.nbytes
    if n == 0:
        return True
    pos = 0
    while pos < n:
        read = 0
        if hasattr(source, "readinto"):
            read = source.readinto(view[pos:])
        elif hasattr(source, "recv_into"):
            try:
                read = source.recv_into(view[pos:])
            except BlockingIOError:
                continue
        else:
            remaining = n - pos
            chunk = (
                source.recv(remaining)
                if hasattr(source, "recv")
                else source.read(remaining)
            )
            if chunk:
                view[pos : pos + len(chunk)] = chunk
                read = len(chunk)
            else:
                read = 0
        if not read:
            if pos == 0:
                return False
            raise EOFError(f"Expected {n} bytes, got {pos}")
        pos += read
    return True


def get_packet_info(data: BytesLike, options: OptionsLike = None) -> Dict[str, Any]:
    """Describe a packet's envelope without decoding its payload.

    Returns
    -------
    dict
        ``mode`` ("auto" or "schema"), ``version``, ``flags``,
        ``check_integrity`` and either ``dictionary`` (auto) or
        ``schema_name`` / ``schema_version`` (schema).
    """
    opts = _default.effective_options(options)
    with memoryview(data).cast("B") as mv, ByteReader(mv) as reader:
        magic, version, flags = parse_envelope(mv)
        if magic not in (MAGIC_AUTO, MAGIC_SCHEMA):
            raise FormatMismatchError(f"Unknown mode marker {magic!r}")
        info: Dict[str, Any] = {
            "mode": "auto" if magic == MAGIC_AUTO else "schema",
            "version": version,
            "flags": flags,
            "check_integrity": bool(flags & FLAG_INTEGRITY),
        }
        reader.seek(ENVELOPE_SIZE)
        if magic == MAGIC_AUTO:
            info["dictionary"] = read_dictionary(reader, opts)
        else:
            info["schema_name"] = read_string(reader, opts)
            info["schema_version"] = reader.read_varuint()
    return info


# --- Process-wide default engine ---

_default = Packager()


def get_default_packager() -> Packager:
    return _default


def initialize(options: OptionsLike = None) -> Options:
    """Replace the process-wide default options."""
    return _default.initialize(options)


def pack(value: Any, schema_or_options: SchemaOrOptions = None, options: OptionsLike = None) -> bytes:
    return _default.pack(value, schema_or_options, options)


def unpack(data: BytesLike, schema_or_options: SchemaOrOptions = None, options: OptionsLike = None) -> Any:
    return _default.unpack(data, schema_or_options, options)


def dump(value: Any, fp: BinaryIO, schema_or_options: SchemaOrOptions = None, options: OptionsLike = None) -> int:
    return _default.dump(value, fp, schema_or_options, options)


def load(fp: BinaryIO, schema_or_options: SchemaOrOptions = None, options: OptionsLike = None,
         mmap_mode: bool = False) -> Any:
    return _default.load(fp, schema_or_options, options, mmap_mode=mmap_mode)


def write_stream(value: Any, dest: Any, schema_or_options: SchemaOrOptions = None,
                 options: OptionsLike = None) -> int:
    return _default.write_stream(value, dest, schema_or_options, options)


def read_stream(source: Any, schema_or_options: SchemaOrOptions = None,
                options: OptionsLike = None) -> Optional[Any]:
    return _default.read_stream(source, schema_or_options, options)
