"""
Message framing: find where one request's header block ends.

TCP is a byte stream, so a header block may arrive split across any number
of reads, or glued to the body and to the next pipelined request. The
framer only looks at what is buffered so far:

    buffered:  GET / HTTP/1.1\\r\\nHost: a\\r\\n\\r\\nPOST /echo HTT...
               └──────────── cut here ───────────┘└── left for later ──

If the terminator is not there yet the caller must read more, unless the
buffer has already reached the header size cap, in which case waiting
longer would only let a slow or hostile client grow our memory.
"""

from typing import Optional

from ..core.buffer import DynamicBuffer
from .request import HTTPError, HTTPRequest, parse_request


HEADER_TERMINATOR = b"\r\n\r\n"

# Largest header block we will buffer while waiting for the terminator
MAX_HEADER_SIZE = 8 * 1024


def cut_message(buf: DynamicBuffer, max_header_size: int = MAX_HEADER_SIZE) -> Optional[HTTPRequest]:
    """
    Extract one request header block from the front of ``buf``.

    Returns:
        The parsed request (its bytes are consumed from ``buf``), or None if
        the block is still incomplete.

    Raises:
        HTTPError: 413 if no terminator was found within ``max_header_size``
                   bytes; 400 if the block is malformed.
    """
    idx = buf.find(HEADER_TERMINATOR)
    if idx < 0:
        if buf.length >= max_header_size:
            raise HTTPError("Header too large", status_code=413)
        return None

    end = idx + len(HEADER_TERMINATOR)
    request = parse_request(bytes(buf.data[:end]))
    buf.consume(end)
    return request
