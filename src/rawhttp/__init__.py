"""
=============================================================================
rawhttp: HTTP/1.x FROM A RAW BYTE STREAM
=============================================================================

A small asyncio HTTP/1.x server that does its own protocol work instead of
leaning on an HTTP library:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  core.StreamConnection  await read()/write() with backpressure      │
    │  core.DynamicBuffer     bytes received but not yet framed           │
    │  http.cut_message       find the end of a header block              │
    │  http.parse_request     request line + raw header lines             │
    │  http.BodyReader        lazy body, bounded by Content-Length        │
    │  http.write_response    status line, headers, streamed body         │
    │  HTTPServer             one task per connection, keep-alive loop    │
    └─────────────────────────────────────────────────────────────────────┘

Quick start:

    python -m rawhttp --port 1234

    curl http://127.0.0.1:1234/               → hello world.
    curl -d hello http://127.0.0.1:1234/echo  → hello

Known limitations: no TLS, no HTTP/2, no chunked transfer-encoding in
either direction (chunked request bodies are read as empty), no timeouts.

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer, create_app

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
