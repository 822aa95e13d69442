import asyncio
import io
import mmap
import os
import struct
import tempfile

import pytest

import packager
from packager import FormatMismatchError, SizeExceededError
from packager import schema as S
from packager.async_core import aread_stream, awrite_stream

VALUE = {"HP": 87, "Name": "UserName", "inventory": [1, 2, 3], "flags": {"pvp": True}}


class FragmentedStream:
    """Simulates a slow network connection that yields data in tiny chunks."""
    def __init__(self, data, chunk_size=10):
        self.data = data
        self.chunk_size = chunk_size
        self.pos = 0

    def read(self, n):
        if self.pos >= len(self.data):
            return b''
        end = min(self.pos + n, self.pos + self.chunk_size)
        chunk = self.data[self.pos:end]
        self.pos += len(chunk)
        return chunk

    def recv(self, n):
        return self.read(n)


def framed(value, *args):
    buf = io.BytesIO()
    packager.write_stream(value, buf, *args)
    return buf.getvalue()


def test_write_stream_frame_layout():
    """Frames are a little-endian u32 length followed by the packet."""
    packet = packager.pack(VALUE)
    frame = framed(VALUE)
    assert frame == struct.pack("<I", len(packet)) + packet


def test_read_stream_perfect():
    """Test reading from a perfect, non-fragmented stream (like a file)."""
    stream = io.BytesIO(framed(VALUE))
    assert packager.read_stream(stream) == VALUE
    assert packager.read_stream(stream) is None


def test_read_stream_fragmented():
    """Test reading from a stream that arrives in tiny pieces."""
    stream = FragmentedStream(framed(VALUE), chunk_size=1)
    assert packager.read_stream(stream) == VALUE


def test_read_stream_socket_simulation():
    """Test using the recv attribute specifically."""
    class MockSocket:
        def __init__(self, data):
            self.stream = io.BytesIO(data)
        def recv(self, n):
            return self.stream.read(n)

    sock = MockSocket(framed([1, 2, 3]))
    assert packager.read_stream(sock) == [1, 2, 3]


def test_write_stream_to_socket():
    class MockSocket:
        def __init__(self):
            self.sent = b""
        def sendall(self, data):
            self.sent += data

    sock = MockSocket()
    written = packager.write_stream(VALUE, sock)
    assert written == len(sock.sent)
    assert packager.read_stream(io.BytesIO(sock.sent)) == VALUE


def test_multiple_frames_in_sequence():
    player = S.define_schema("Player", 1, S.struct({"id": S.uint(), "name": S.string()}))
    buf = io.BytesIO()
    packager.write_stream({"id": 1, "name": "a"}, buf, player)
    packager.write_stream({"id": 2, "name": "b"}, buf, player)
    buf.seek(0)
    assert packager.read_stream(buf, player) == {"id": 1, "name": "a"}
    assert packager.read_stream(buf, player) == {"id": 2, "name": "b"}
    assert packager.read_stream(buf, player) is None


def test_stream_disconnect_header():
    """Test graceful handling of disconnects before/during header."""
    stream = io.BytesIO(b'')
    # Empty stream should return None (graceful close)
    assert packager.read_stream(stream) is None

    stream = io.BytesIO(b'\x05\x00')
    with pytest.raises(EOFError, match="Stream ended during frame header read"):
        packager.read_stream(stream)


def test_stream_disconnect_body():
    """Test disconnect in the middle of the packet."""
    truncated = framed(VALUE)[:-10]
    with pytest.raises(EOFError, match="Stream ended during packet read"):
        packager.read_stream(io.BytesIO(truncated))


def test_frame_length_guards():
    with pytest.raises(SizeExceededError):
        packager.read_stream(io.BytesIO(struct.pack("<I", 0xFFFFFFFF)))
    with pytest.raises(FormatMismatchError):
        packager.read_stream(io.BytesIO(struct.pack("<I", 2) + b"PK"))

# --- Files ---

@pytest.mark.parametrize("mmap_mode", [False, True])
def test_dump_and_load(mmap_mode):
    with tempfile.NamedTemporaryFile(delete=False) as f:
        path = f.name
    try:
        with open(path, "wb") as f:
            written = packager.dump(VALUE, f)
        assert written == os.path.getsize(path)
        with open(path, "rb") as f:
            assert packager.load(f, mmap_mode=mmap_mode) == VALUE
    finally:
        os.remove(path)


@pytest.fixture
def opened_maps(monkeypatch):
    real_mmap = mmap.mmap
    opened = []

    def tracking_mmap(*args, **kwargs):
        mm = real_mmap(*args, **kwargs)
        opened.append(mm)
        return mm

    monkeypatch.setattr(mmap, "mmap", tracking_mmap)
    return opened


def write_file(tmp_path, data):
    path = tmp_path / "packet.pk"
    path.write_bytes(data)
    return path


def test_mmap_load_closes_map(tmp_path, opened_maps):
    path = write_file(tmp_path, packager.pack(VALUE))
    with open(path, "rb") as f:
        assert packager.load(f, mmap_mode=True) == VALUE
    assert len(opened_maps) == 1
    assert opened_maps[0].closed


@pytest.mark.parametrize("corrupt", [
    lambda p: p + b"\x00",
    lambda p: b"XKA" + p[3:],
])
def test_mmap_load_closes_map_on_bad_packet(tmp_path, opened_maps, corrupt):
    path = write_file(tmp_path, corrupt(packager.pack(VALUE)))
    with open(path, "rb") as f:
        with pytest.raises(FormatMismatchError):
            packager.load(f, mmap_mode=True)
    assert opened_maps[0].closed


def test_load_empty_file():
    with pytest.raises(EOFError, match="Empty"):
        packager.load(io.BytesIO(b""))

# --- Async ---

def test_async_roundtrip():
    class MemoryWriter:
        def __init__(self):
            self.data = b""
        def write(self, chunk):
            self.data += chunk
        async def drain(self):
            pass

    async def run():
        writer = MemoryWriter()
        written = await awrite_stream(VALUE, writer)
        assert written == len(writer.data)
        reader = asyncio.StreamReader()
        reader.feed_data(writer.data)
        reader.feed_eof()
        first = await aread_stream(reader)
        second = await aread_stream(reader)
        return first, second

    first, second = asyncio.run(run())
    assert first == VALUE
    assert second is None


def test_async_partial_frame():
    async def run():
        reader = asyncio.StreamReader()
        reader.feed_data(b"\x10\x00")
        reader.feed_eof()
        return await aread_stream(reader)

    with pytest.raises(asyncio.IncompleteReadError):
        asyncio.run(run())
