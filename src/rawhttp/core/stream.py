"""
=============================================================================
STREAM CONNECTION
=============================================================================

Wraps one accepted TCP connection and turns asyncio's push-style protocol
callbacks into a pull-style API that a coroutine can await:

    data = await conn.read()     # b"" means the peer finished sending
    await conn.write(response)   # returns once the transport accepted it

=============================================================================
PUSH VS PULL
=============================================================================

asyncio delivers data by CALLING US (data_received) whenever bytes arrive.
Left alone, a fast client can push megabytes while we are still busy with
the previous request. So reading is PAUSED at all times except while a
read() is actually waiting:

    read() ──► create future ──► resume_reading()
                                      │
                 data_received() ◄────┘
                      │
                      ├── pause_reading()       (no more deliveries)
                      └── future.set_result()   (read() returns chunk)

The kernel's socket buffer fills up while we are paused and TCP flow
control slows the sender down. That is BACKPRESSURE: the consumer decides
the pace, and this class never buffers data on its own.

Writing has the mirror problem. transport.write() never blocks; it queues.
asyncio tells us via pause_writing()/resume_writing() when that queue
crosses its high-water mark, and write() waits for resume_writing().

=============================================================================
LATCHED STATE
=============================================================================

    OPEN ───── eof_received / clean connection_lost ─────► ENDED
      │
      └─────── connection_lost(exc) ─────────────────────► FAILED

Once ENDED or FAILED, every later read() answers the same way (b"" or the
same exception) without touching the transport again.

=============================================================================
"""

import asyncio
import logging
import uuid
from enum import Enum
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class StreamState(Enum):
    """Read-side state of a connection."""
    OPEN = "open"
    ENDED = "ended"      # Peer closed cleanly, reads return b""
    FAILED = "failed"    # Transport error, reads raise it


class StreamConnection(asyncio.Protocol):
    """
    Sequential read/write adapter over an asyncio transport.

    Attributes:
        id: Short identifier used in log lines.
        state: Latched read state (see StreamState).
        error: The transport error once state is FAILED.
        response_started: Set by write_response while a response is on
            the wire.
    """

    def __init__(
        self,
        on_connect: Optional[Callable[["StreamConnection"], None]] = None,
        write_high_water: Optional[int] = None,
    ):
        self.id = str(uuid.uuid4())[:8]
        self.state = StreamState.OPEN
        self.error: Optional[BaseException] = None

        self._on_connect = on_connect
        self._write_high_water = write_high_water
        self._transport: Optional[asyncio.Transport] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        # Single slot: at most one read in flight
        self._reader: Optional[asyncio.Future] = None
        # A chunk delivered while no read was pending (see data_received)
        self._held: Optional[bytes] = None

        self._write_paused = False
        self._drain_waiter: Optional[asyncio.Future] = None
        self._lost = False

        # True between a response head going out and its body completing
        self.response_started = False

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def peername(self) -> str:
        """Client address as "ip:port" for logging."""
        if self._transport is None:
            return "-"
        peer = self._transport.get_extra_info("peername")
        if not peer:
            return "-"
        return f"{peer[0]}:{peer[1]}"

    @property
    def is_closed(self) -> bool:
        return self._lost or self._transport is None or self._transport.is_closing()

    # =========================================================================
    # PROTOCOL CALLBACKS (called by the event loop)
    # =========================================================================

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._transport = transport  # type: ignore[assignment]
        self._loop = asyncio.get_running_loop()

        # Pause on connect: nothing is delivered until the first read()
        self._transport.pause_reading()

        if self._write_high_water is not None:
            self._transport.set_write_buffer_limits(high=self._write_high_water)

        logger.debug(f"[{self.id}] Connection from {self.peername}")

        if self._on_connect is not None:
            self._on_connect(self)

    def data_received(self, data: bytes) -> None:
        self._transport.pause_reading()

        reader = self._take_reader()
        if reader is None:
            # The transport may deliver one chunk that was already in flight
            # when reading was paused. Keep it for the next read().
            self._held = data if self._held is None else self._held + data
            return
        reader.set_result(data)

    def eof_received(self) -> bool:
        if self.state is StreamState.OPEN:
            self.state = StreamState.ENDED

        reader = self._take_reader()
        if reader is not None:
            reader.set_result(b"")

        # Keep the write side open so a response can still be sent
        return True

    def connection_lost(self, exc: Optional[BaseException]) -> None:
        self._lost = True

        if self.state is StreamState.OPEN:
            if exc is None:
                self.state = StreamState.ENDED
            else:
                self.state = StreamState.FAILED
                self.error = exc

        reader = self._take_reader()
        if reader is not None:
            if self.state is StreamState.FAILED:
                reader.set_exception(self.error)
            else:
                reader.set_result(b"")

        # Wake a blocked writer; it will notice the connection is gone
        waiter = self._drain_waiter
        self._drain_waiter = None
        if waiter is not None and not waiter.done():
            if exc is None:
                waiter.set_exception(ConnectionResetError("Connection lost"))
            else:
                waiter.set_exception(exc)

        logger.debug(f"[{self.id}] Connection lost ({self.state.value})")

    def pause_writing(self) -> None:
        self._write_paused = True

    def resume_writing(self) -> None:
        self._write_paused = False
        waiter = self._drain_waiter
        self._drain_waiter = None
        if waiter is not None and not waiter.done():
            waiter.set_result(None)

    # =========================================================================
    # READING
    # =========================================================================

    async def read(self) -> bytes:
        """
        Wait for the next chunk from the peer.

        Returns:
            A non-empty chunk, or b"" once the peer has finished sending.

        Raises:
            RuntimeError: If another read() is still pending.
            OSError: The transport error, once the connection failed.
        """
        if self._reader is not None:
            raise RuntimeError(f"[{self.id}] read() called while another read is pending")

        if self._held is not None:
            data, self._held = self._held, None
            return data

        # Latched: answer without re-arming delivery
        if self.state is StreamState.ENDED:
            return b""
        if self.state is StreamState.FAILED:
            raise self.error

        self._reader = self._loop.create_future()
        reader = self._reader
        self._transport.resume_reading()
        try:
            return await reader
        finally:
            # Cancelled while waiting: free the slot and stop deliveries
            if self._reader is reader:
                self._reader = None
                if not self.is_closed:
                    self._transport.pause_reading()

    def _take_reader(self) -> Optional[asyncio.Future]:
        reader = self._reader
        self._reader = None
        if reader is not None and reader.done():
            return None
        return reader

    # =========================================================================
    # WRITING
    # =========================================================================

    async def write(self, data: bytes) -> None:
        """
        Send bytes and wait until the transport has accepted them.

        Raises:
            ConnectionError: If the connection is already gone.
        """
        if not data:
            return
        if self.error is not None:
            raise self.error
        if self.is_closed:
            raise ConnectionResetError("Connection lost")

        self._transport.write(data)

        if self._write_paused:
            if self._drain_waiter is None or self._drain_waiter.done():
                self._drain_waiter = self._loop.create_future()
            await self._drain_waiter

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """Close the transport. Safe to call more than once."""
        if self._transport is not None and not self._transport.is_closing():
            self._transport.close()
