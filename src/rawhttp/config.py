"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables in one dataclass, with three ways to fill it in:

    1. Defaults          ServerConfig()
    2. Environment       ServerConfig.from_env()
    3. Command line      python -m rawhttp --port 3000  (see __main__.py)

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    HTTP_HOST             Bind address            (default: 127.0.0.1)
    HTTP_PORT             Listen port             (default: 1234)
    HTTP_BACKLOG          Accept queue length     (default: 128)
    HTTP_MAX_HEADER_SIZE  Header block cap, bytes (default: 8192)
    HTTP_LOG_LEVEL        DEBUG/INFO/WARNING/...  (default: INFO)
    HTTP_LOG_FORMAT       text or json            (default: text)

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """Configuration for the HTTP server."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces
    """

    port: int = 1234
    """The port to listen on. 0 lets the OS pick a free one (tests)."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    write_high_water: Optional[int] = None
    """
    Per-connection write buffer size (bytes) above which write() waits
    for the peer to catch up. None keeps asyncio's default (64 KiB).
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_header_size: int = 8 * 1024
    """
    Largest header block buffered while waiting for the blank line.
    Bigger blocks are rejected with 413 instead of growing memory.
    """

    keep_alive: bool = True
    """Serve more than one request per HTTP/1.1 connection."""

    default_body: bytes = b"hello world.\n"
    """Body returned by the default handler for any path but /echo."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """
    Access log format: 'text' (Apache style, for humans) or 'json'
    (for log aggregators).
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "rawhttp/1.0"
    """Value of the Server header sent by the default handler."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        Unset variables fall back to the dataclass defaults.
        """
        defaults = cls()
        return cls(
            host=os.getenv("HTTP_HOST", defaults.host),
            port=int(os.getenv("HTTP_PORT", str(defaults.port))),
            backlog=int(os.getenv("HTTP_BACKLOG", str(defaults.backlog))),
            max_header_size=int(os.getenv("HTTP_MAX_HEADER_SIZE", str(defaults.max_header_size))),
            log_level=os.getenv("HTTP_LOG_LEVEL", defaults.log_level),
            log_format=os.getenv("HTTP_LOG_FORMAT", defaults.log_format),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at server construction, so a bad value fails at startup
        rather than on the first request.

        Raises:
            ValueError: On the first invalid setting found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.max_header_size < 64:
            raise ValueError("max_header_size must be >= 64")

        if self.write_high_water is not None and self.write_high_water < 0:
            raise ValueError("write_high_water must be >= 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
