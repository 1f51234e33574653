"""
=============================================================================
HTTP RESPONSE ENCODER
=============================================================================

Serializes an HTTPResponse onto the wire:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                 ← status line                  │
    │  Server: rawhttp/1.0\r\n             ← handler's header lines       │
    │  Content-Length: 5\r\n               ← always synthesized by us     │
    │  \r\n                                ← blank line                   │
    │  hello                               ← body, streamed chunk by chunk│
    └─────────────────────────────────────────────────────────────────────┘

The head (status line + headers + blank line) goes out as ONE write, then
the body is pulled from its BodyReader and written chunk by chunk, so a
large body never has to sit in memory all at once.

=============================================================================
WHY CONTENT-LENGTH IS MANDATORY HERE
=============================================================================

On a keep-alive connection the client needs to know where this response
ends and the next one begins. That is either Content-Length or chunked
transfer-encoding. We only implement Content-Length, so a body of unknown
length (BodyReader.length == -1) cannot be sent and write_response()
refuses it.

=============================================================================
"""

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import List, Union

from ..core.stream import StreamConnection
from .body import BodyReader, reader_from_memory


HTTP_VERSION = "HTTP/1.1"


def reason_phrase(status: int) -> str:
    """Standard reason phrase for a status code ("Unknown" if unregistered)."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"


@dataclass
class HTTPResponse:
    """
    A response ready to be written.

    Attributes:
        status:  Numeric status code.
        headers: Raw header lines ("Name: value", no CRLF). Content-Length
                 must NOT be included; the writer adds it.
        body:    Where the body bytes come from.
    """

    status: int = 200
    headers: List[bytes] = field(default_factory=list)
    body: BodyReader = field(default_factory=lambda: reader_from_memory(b""))

    @property
    def status_line(self) -> str:
        return f"{HTTP_VERSION} {self.status} {reason_phrase(self.status)}"

    def add_header(self, name: str, value: Union[str, bytes]) -> "HTTPResponse":
        """Append a header line. Returns self for chaining."""
        if isinstance(value, str):
            value = value.encode("latin-1")
        self.headers.append(name.encode("latin-1") + b": " + value)
        return self


def encode_response(resp: HTTPResponse) -> bytes:
    """
    Encode the status line, header lines and blank line.

    The Content-Length header is synthesized from ``resp.body.length``.

    Raises:
        NotImplementedError: If the body length is unknown.
    """
    if resp.body.length < 0:
        raise NotImplementedError("Chunked transfer-encoding is not supported")

    lines = [resp.status_line.encode("latin-1")]
    lines.extend(resp.headers)
    lines.append(f"Content-Length: {resp.body.length}".encode("latin-1"))

    # Status line and each header end with CRLF, then one more CRLF
    return b"\r\n".join(lines) + b"\r\n\r\n"


async def write_response(conn: StreamConnection, resp: HTTPResponse, head_only: bool = False) -> int:
    """
    Write a full response: head in one write, then the body chunks.

    With ``head_only`` (a HEAD request) the declared Content-Length is
    still sent but the body is not. From the head write until the body is
    complete ``conn.response_started`` is True: a failure in between cannot
    be answered with another response on the same stream.

    Returns:
        Number of body bytes written.

    Raises:
        NotImplementedError: If the body length is unknown.
        ConnectionError: If the connection is lost mid-write.
    """
    head = encode_response(resp)
    conn.response_started = True
    await conn.write(head)

    written = 0
    while not head_only:
        data = await resp.body.read()
        if not data:
            break
        await conn.write(data)
        written += len(data)
    conn.response_started = False
    return written


def error_response(status: int, message: str) -> HTTPResponse:
    """The plain-text response sent for an HTTPError."""
    return HTTPResponse(
        status=status,
        headers=[],
        body=reader_from_memory(message.encode("utf-8") + b"\n"),
    )
