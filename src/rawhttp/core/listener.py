"""
=============================================================================
LISTENING SOCKET + ACCEPT LOOP
=============================================================================

Binds the listening socket and hands every accepted connection to the
HTTP layer as its own asyncio Task:

    ┌───────────────────────┐
    │   Listening socket    │   One socket, never sends/receives data
    └───────────┬───────────┘
                │ accept (done by the event loop)
    ┌───────────┼───────────────────────┬───────────────────────┐
    ▼           ▼                       ▼                       ▼
  Task #1     Task #2                 Task #3                 ...
  StreamConnection + serve loop, one per client

Tasks share nothing. They interleave on one thread only where they await
(socket reads, socket writes, the handler), so there are no locks anywhere.

=============================================================================
SHUTDOWN
=============================================================================

    SIGINT / SIGTERM / shutdown()
        └─ stop accepting (close the listening socket)
        └─ cancel every connection task (each one closes its socket
           in its own `finally`)
        └─ wait for the tasks to finish

shutdown() may be called from any thread: it only schedules the stop on
the loop's own thread.

=============================================================================
"""

import asyncio
import logging
import signal
import socket
import threading
from typing import Awaitable, Callable, Optional, Set, Tuple

from ..config import ServerConfig
from .stream import StreamConnection


logger = logging.getLogger(__name__)

ConnectionHandler = Callable[[StreamConnection], Awaitable[None]]


class SocketServer:
    """
    asyncio TCP listener that runs one task per accepted connection.

    Usage:
        async def handle(conn: StreamConnection):
            data = await conn.read()
            ...

        server = SocketServer(config)
        await server.serve(handle)   # Returns after shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._server: Optional[asyncio.AbstractServer] = None
        self._stop: Optional[asyncio.Event] = None
        self._tasks: Set[asyncio.Task] = set()
        self._address: Tuple[str, int] = (config.host, config.port)

        # Set once the socket is listening; lets other threads wait on it
        self._ready = threading.Event()

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port). With port 0 this is the OS-chosen port."""
        return self._address

    def _create_socket(self) -> socket.socket:
        """Create, configure and bind the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restarting must not fail with "Address already in use"
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Send responses immediately instead of waiting to coalesce packets
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        try:
            sock.bind((self.config.host, self.config.port))
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        sock.setblocking(False)
        return sock

    def _setup_signals(self) -> None:
        """Stop on SIGINT/SIGTERM. Only possible from the main thread."""
        if threading.current_thread() is not threading.main_thread():
            return
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                self._loop.add_signal_handler(sig, self._on_signal, sig)
            except NotImplementedError:
                # Windows event loops have no add_signal_handler
                pass

    def _restore_signals(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                self._loop.remove_signal_handler(sig)
            except NotImplementedError:
                pass

    def _on_signal(self, sig: int) -> None:
        logger.info(f"Received {signal.Signals(sig).name}, initiating shutdown...")
        self._stop.set()

    def _protocol_factory(self, connection_handler: ConnectionHandler) -> Callable[[], StreamConnection]:
        def on_connect(conn: StreamConnection) -> None:
            task = self._loop.create_task(connection_handler(conn))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        def factory() -> StreamConnection:
            return StreamConnection(
                on_connect=on_connect,
                write_high_water=self.config.write_high_water,
            )

        return factory

    async def serve(self, connection_handler: ConnectionHandler) -> None:
        """
        Listen and serve until shutdown() is called or a signal arrives.

        Args:
            connection_handler: Coroutine function run as a new task for
                                every accepted connection.
        """
        self._loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()

        sock = self._create_socket()
        self._server = await self._loop.create_server(
            self._protocol_factory(connection_handler),
            sock=sock,
            backlog=self.config.backlog,
        )
        self._address = sock.getsockname()[:2]
        self._setup_signals()

        logger.info(f"Server listening on {self._address[0]}:{self._address[1]}")
        self._ready.set()

        try:
            await self._stop.wait()
        finally:
            await self._cleanup()

    async def _cleanup(self) -> None:
        self._restore_signals()

        # Stop accepting first; wait_closed() also waits for open
        # connections, so the connection tasks must be gone before it
        self._server.close()

        tasks = list(self._tasks)
        if tasks:
            logger.info(f"Closing {len(tasks)} open connection(s)...")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        await self._server.wait_closed()

        self._ready.clear()
        logger.info("Socket server stopped")

    def shutdown(self) -> None:
        """Stop the server. Safe to call from any thread, and more than once."""
        if self._loop is None or self._stop is None:
            return
        logger.info("Shutting down socket server...")
        try:
            self._loop.call_soon_threadsafe(self._stop.set)
        except RuntimeError:
            pass  # Loop already closed

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block the calling thread until the socket is listening."""
        return self._ready.wait(timeout)
