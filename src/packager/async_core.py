"""
Async I/O Support for Packager.
"""

import asyncio
from typing import Any, Optional

from .core import SchemaOrOptions, _FRAME_HEADER, check_frame_length, frame_packet, get_default_packager
from .config import OptionsLike


async def aread_stream(
    reader: asyncio.StreamReader,
    schema_or_options: SchemaOrOptions = None,
    options: OptionsLike = None,
) -> Optional[Any]:
    """Asynchronously read one length-prefixed packet from a StreamReader.

    Parameters
    ----------
    reader : asyncio.StreamReader
        The stream reader to read from.
    schema_or_options : Schema, Options or mapping, optional
        Schema for schema-mode packets, or auto-mode options.
    options : Options or mapping, optional
        Options for schema mode.

    Returns
    -------
    Optional[Any]
        The decoded value, or None if the stream ended before a new frame.
    """
    try:
        header = await reader.readexactly(_FRAME_HEADER.size)
    except asyncio.IncompleteReadError as e:
        if len(e.partial) == 0:
            return None
        raise
    (length,) = _FRAME_HEADER.unpack(header)
    check_frame_length(length)
    body = await reader.readexactly(length)
    return get_default_packager().unpack(body, schema_or_options, options)


async def awrite_stream(
    value: Any,
    writer: asyncio.StreamWriter,
    schema_or_options: SchemaOrOptions = None,
    options: OptionsLike = None,
) -> int:
    """Asynchronously write one length-prefixed packet to a StreamWriter.

    Returns
    -------
    int
        Number of bytes written, including the frame header.
    """
    frame = frame_packet(get_default_packager().pack(value, schema_or_options, options))
    writer.write(frame)
    await writer.drain()
    return len(frame)
