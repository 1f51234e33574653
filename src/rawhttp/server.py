"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together. For each accepted connection:

    ┌──────────────────────────────────────────────────────────────────┐
    │                     serve_client(conn)                            │
    ├──────────────────────────────────────────────────────────────────┤
    │                                                                   │
    │   ┌──► cut_message(buffer) ── None ──► read() ──► append ──┐      │
    │   │         │                              ▲               │      │
    │   │         │                              └───────────────┘      │
    │   │      request                                                  │
    │   │         │                                                     │
    │   │   reader_from_request  (lazy body over buffer + socket)       │
    │   │         │                                                     │
    │   │   await handler(request, body)                                │
    │   │         │                                                     │
    │   │   await write_response(conn, response)                        │
    │   │         │                                                     │
    │   │   HTTP/1.0 or "Connection: close"? ── yes ──► return          │
    │   │         │                                                     │
    │   │   drain what the handler left of the body                     │
    │   └─────────┘                                                     │
    │                                                                   │
    └──────────────────────────────────────────────────────────────────┘

Ending conditions while waiting for a header block:
    - peer closed, nothing buffered       → clean return
    - peer closed, partial request buffer → HTTPError 400 "Unexpected EOF"

=============================================================================
ERROR HANDLING
=============================================================================

handle_connection() is the one place errors are caught:

    HTTPError        → one best-effort error response, then close.
                       If that write fails too, it is ignored. If a
                       response was already being written, just close.
    anything else    → logged, no response (the socket may be dead, and a
                       handler bug has no status code), then close.

Every path ends with the connection closed.

=============================================================================
"""

import asyncio
import logging
from typing import Optional

from .config import ServerConfig
from .core import DynamicBuffer, SocketServer, StreamConnection
from .handlers import DefaultHandler
from .http import (
    HTTPError,
    cut_message,
    error_response,
    reader_from_request,
    write_response,
)
from .middleware import Handler, LoggingMiddleware, Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Asyncio HTTP/1.x server.

    Usage:
        server = HTTPServer(ServerConfig(port=1234))
        server.use(LoggingMiddleware())
        server.run()                      # blocks until Ctrl+C

    With an application handler:
        async def app(request, body):
            return HTTPResponse(200, [], reader_from_memory(b"hi\\n"))

        HTTPServer(config, handler=app).run()
    """

    def __init__(self, config: Optional[ServerConfig] = None, handler: Optional[Handler] = None):
        """
        Args:
            config: Server configuration. Defaults are used if omitted.
            handler: Request handler; DefaultHandler if omitted.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._middleware = MiddlewarePipeline()
        self._app: Handler = handler or DefaultHandler(self.config)

        # Built when serving starts: middleware wrapped around the app
        self._handler: Optional[Handler] = None

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware. Returns self for chaining."""
        self._middleware.add(middleware)
        self._handler = None
        return self

    @property
    def handler(self) -> Handler:
        """The full handler chain: middleware wrapped around the app."""
        if self._handler is None:
            self._handler = self._middleware.wrap(self._app)
        return self._handler

    @property
    def address(self):
        return self._socket_server.address

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """
        Start the server and block until it is stopped.

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()

        try:
            asyncio.run(self.serve())
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

    async def serve(self) -> None:
        """Serve connections on the running event loop until shutdown()."""
        self._handler = self._middleware.wrap(self._app)
        logger.info(f"Starting HTTP server on {self.config.host}:{self.config.port}")
        try:
            await self._socket_server.serve(self.handle_connection)
        finally:
            logger.info("Server stopped")

    def shutdown(self) -> None:
        """Stop accepting and close open connections. Thread-safe."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self) -> None:
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("rawhttp").setLevel(level)

    # =========================================================================
    # PER-CONNECTION HANDLING
    # =========================================================================

    async def handle_connection(self, conn: StreamConnection) -> None:
        """
        Run the serve loop for one connection and translate its errors.

        This is the task body started for every accepted connection.
        """
        try:
            await self.serve_client(conn)
        except HTTPError as e:
            logger.info(f"[{conn.id}] {conn.peername} HTTP error {e.status_code}: {e}")
            if conn.response_started:
                # Mid-response: another status line would corrupt the stream
                return
            try:
                await write_response(conn, error_response(e.status_code, e.message))
            except Exception as write_error:
                logger.debug(f"[{conn.id}] Could not send error response: {write_error}")
        except OSError as e:
            logger.warning(f"[{conn.id}] Connection error: {e}")
        except Exception as e:
            logger.exception(f"[{conn.id}] Unhandled error: {e}")
        finally:
            conn.close()

    async def serve_client(self, conn: StreamConnection) -> None:
        """
        Serve requests on one connection until it ends.

        Raises:
            HTTPError: For anything the client got wrong.
            ConnectionError: If the transport fails.
        """
        buf = DynamicBuffer()
        handler = self.handler

        while True:
            # ─────────────────────────────────────────────────────────────
            # AWAITING HEADERS
            # ─────────────────────────────────────────────────────────────
            request = cut_message(buf, self.config.max_header_size)
            if request is None:
                data = await conn.read()
                buf.append(data)

                if not data and buf.length == 0:
                    return  # Peer is done, nothing pending
                if not data:
                    raise HTTPError("Unexpected EOF")
                continue

            # ─────────────────────────────────────────────────────────────
            # DISPATCHING
            # ─────────────────────────────────────────────────────────────
            request.client_address = conn.peername
            body = reader_from_request(conn, buf, request)

            response = await handler(request, body)
            await write_response(conn, response, head_only=request.method == "HEAD")

            if not self.config.keep_alive or not request.is_keep_alive:
                return

            # The next request starts after this one's body
            await body.drain()


def create_app(config: Optional[ServerConfig] = None, handler: Optional[Handler] = None) -> HTTPServer:
    """Factory for a server with the access log installed."""
    server = HTTPServer(config, handler)
    server.use(LoggingMiddleware(log_format=server.config.log_format))
    return server
