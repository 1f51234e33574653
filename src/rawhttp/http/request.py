"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns one complete header block (everything up to and including the blank
line) into a structured HTTPRequest. The body is NOT part of this: it is
streamed separately by a BodyReader (see body.py).

=============================================================================
HTTP REQUEST HEADER BLOCK
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  POST /echo HTTP/1.1\r\n             ← request line (3 tokens)       │
    │  Host: localhost:1234\r\n            ← header lines "Name: value"    │
    │  Content-Length: 5\r\n                                               │
    │  \r\n                                ← blank line ends the block     │
    └─────────────────────────────────────────────────────────────────────┘

Headers are kept as the RAW LINES they arrived as, in order, duplicates and
all. Lookup by name is case-insensitive and returns the first match. This
keeps parsing cheap and loses nothing a handler might want.

Text is decoded as latin-1: every byte maps to exactly one character, so
arbitrary octets in a target or header value round-trip unchanged.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


class HTTPError(Exception):
    """
    An error the client caused, with the HTTP status to answer it with.

        400 Bad Request        - Malformed request line or header,
                                 bad Content-Length, truncated request
        413 Payload Too Large  - Header block exceeds the size cap

    Anything that is not an HTTPError (a reset socket, a handler bug) is not
    answered at all; the connection is simply closed.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code  # HTTP status to return

    @property
    def message(self) -> str:
        return str(self)


@dataclass
class HTTPRequest:
    """
    A parsed request line plus its raw header lines.

    Attributes:
        method:  Request method token, e.g. "GET".
        uri:     Request target exactly as sent (bytes, not decoded).
        version: Protocol version digits, e.g. "1.1".
        headers: Raw header lines without CRLF, in arrival order.
        client_address: "ip:port" of the peer, filled in by the server.
    """

    method: str
    uri: bytes
    version: str = "1.1"
    headers: List[bytes] = field(default_factory=list)

    # Metadata
    client_address: str = "-"

    def get_header(self, name: str) -> Optional[bytes]:
        """Value of the first header called ``name`` (any case), or None."""
        return field_get(self.headers, name)

    @property
    def target(self) -> str:
        """The request target as text, for logs and routing."""
        return self.uri.decode("latin-1")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection may carry another request after this one.

        HTTP/1.0 has no persistent connections here, whatever the client
        asks for. HTTP/1.1 is persistent unless the client sends
        "Connection: close".
        """
        if self.version == "1.0":
            return False
        connection = self.get_header("Connection")
        if connection is not None and connection.lower() == b"close":
            return False
        return True


# =============================================================================
# PARSING
# =============================================================================

PROTOCOL_PATTERN = re.compile(r"HTTP/(\d\.\d)", re.ASCII)


def split_lines(data: bytes) -> List[bytes]:
    """Split on CRLF. A trailing terminator yields trailing empty lines."""
    return data.split(b"\r\n")


def parse_request_line(line: bytes) -> Tuple[str, bytes, str]:
    """
    Parse "METHOD SP target SP HTTP/x.y".

    Returns:
        Tuple of (method, raw target, version digits).

    Raises:
        HTTPError: If there are not exactly three tokens or the protocol
                   token is not HTTP/<digit>.<digit>.
    """
    parts = line.split(b" ")
    if len(parts) != 3:
        raise HTTPError("Bad request line")

    method, uri, protocol = parts
    if not method or not uri:
        raise HTTPError("Bad request line")

    match = PROTOCOL_PATTERN.fullmatch(protocol.decode("latin-1"))
    if not match:
        raise HTTPError("Bad version")

    return method.decode("latin-1"), uri, match.group(1)


def validate_header(line: bytes) -> bool:
    return b":" in line


def parse_request(data: bytes) -> HTTPRequest:
    """
    Parse a complete header block into an HTTPRequest.

    Args:
        data: Bytes from the request line through the terminating
              "\\r\\n\\r\\n".

    Raises:
        HTTPError: On a malformed request line or header line.
    """
    lines = split_lines(data)
    if not lines or not lines[0]:
        raise HTTPError("Missing request line")

    method, uri, version = parse_request_line(lines[0])

    headers: List[bytes] = []
    # The last element is the empty string after the final CRLF
    for line in lines[1:-1]:
        if not line:
            continue  # Tolerate blank lines
        if not validate_header(line):
            raise HTTPError("Invalid header field")
        headers.append(line)

    return HTTPRequest(method=method, uri=uri, version=version, headers=headers)


def field_get(headers: List[bytes], name: str) -> Optional[bytes]:
    """
    Case-insensitive header lookup over raw header lines.

    Returns:
        The trimmed value of the FIRST line whose name matches, or None.
    """
    wanted = name.lower().encode("latin-1")
    for line in headers:
        idx = line.find(b":")
        if idx < 0:
            continue
        if line[:idx].strip().lower() == wanted:
            return line[idx + 1:].strip()
    return None
