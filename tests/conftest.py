"""
pytest configuration and fixtures.
"""

import asyncio
import threading
from typing import Generator, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rawhttp import HTTPServer, ServerConfig
from rawhttp.core import StreamConnection


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /missing HTTP/1.1\r\n"
        b"Host: localhost:1234\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request to the echo endpoint."""
    return (
        b"POST /echo HTTP/1.1\r\n"
        b"Host: localhost:1234\r\n"
        b"Content-Length: 5\r\n"
        b"\r\n"
        b"hello"
    )


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        log_level="WARNING",
    )


# =============================================================================
# IN-MEMORY TRANSPORT
# =============================================================================

class FakeTransport(asyncio.Transport):
    """
    Records what a StreamConnection does to its transport.

    Writes are collected in ``written``; ``reading`` mirrors the
    pause_reading()/resume_reading() calls.
    """

    def __init__(self, peername: Tuple[str, int] = ("127.0.0.1", 50000)):
        super().__init__()
        self.written = bytearray()
        self.writes: List[bytes] = []
        self.reading = True
        self.resume_count = 0
        self.closed = False
        self.high_water: Optional[int] = None
        self.fail_writes = False
        self._extra = {"peername": peername}

    def get_extra_info(self, name, default=None):
        return self._extra.get(name, default)

    def pause_reading(self):
        self.reading = False

    def resume_reading(self):
        self.reading = True
        self.resume_count += 1

    def is_reading(self):
        return self.reading

    def set_write_buffer_limits(self, high=None, low=None):
        self.high_water = high

    def write(self, data):
        if self.fail_writes:
            raise ConnectionResetError("write failed")
        self.writes.append(bytes(data))
        self.written += data

    def is_closing(self):
        return self.closed

    def close(self):
        self.closed = True


def make_connection(transport: Optional[FakeTransport] = None, **kwargs) -> Tuple[StreamConnection, FakeTransport]:
    """Create a StreamConnection attached to a FakeTransport. Needs a running loop."""
    transport = transport or FakeTransport()
    conn = StreamConnection(**kwargs)
    conn.connection_made(transport)
    return conn, transport


async def drive(conn: StreamConnection, transport: FakeTransport, task: asyncio.Task,
                chunks: List[bytes], eof: bool = True, max_steps: int = 10000) -> None:
    """
    Play the peer: deliver each chunk only while the connection is reading,
    then end the stream. Returns when ``task`` finishes.
    """
    pending = list(chunks)
    for _ in range(max_steps):
        if task.done():
            break
        if transport.reading and not transport.closed:
            if pending:
                conn.data_received(pending.pop(0))
            elif eof:
                conn.eof_received()
                eof = False
        await asyncio.sleep(0)
    else:
        task.cancel()
        raise AssertionError("connection task did not finish")
    await task


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


# =============================================================================
# LIVE SERVER
# =============================================================================

class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(
            target=asyncio.run,
            args=(self.server.serve(),),
            daemon=True
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A live server on a free port, using the default handler."""
    test_srv = TestServer(HTTPServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def make_conn():
    """Factory: ``conn, transport = make_conn()`` (call inside a running loop)."""
    return make_connection


@pytest.fixture
def peer():
    """The scripted peer: ``await peer(conn, transport, task, chunks)``."""
    return drive
