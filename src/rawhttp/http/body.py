"""
=============================================================================
BODY READERS
=============================================================================

A BodyReader is a lazy, forward-only source of body bytes:

    reader.length      → declared size in bytes, or -1 if unknown
    await reader.read() → next chunk, or b"" once the body is complete

Nothing is read from the socket until someone asks. A handler that ignores
the request body costs nothing; the server drains whatever is left before
the next keep-alive request.

=============================================================================
WHERE DOES THE REQUEST BODY END?
=============================================================================

    ┌───────────────────────────┬───────────────────────────────────────┐
    │ Request has...            │ Body reader                           │
    ├───────────────────────────┼───────────────────────────────────────┤
    │ GET / HEAD                │ empty                                 │
    │ Content-Length: N         │ exactly N bytes from buffer + socket  │
    │ Transfer-Encoding: chunked│ NOT SUPPORTED: empty (logged)         │
    │ neither                   │ empty                                 │
    └───────────────────────────┴───────────────────────────────────────┘

Content-Length wins when both framing headers are present.

=============================================================================
"""

import logging
from typing import AsyncIterable, Awaitable, Callable, Iterable, Union

from ..core.buffer import DynamicBuffer
from ..core.stream import StreamConnection
from .request import HTTPError, HTTPRequest


logger = logging.getLogger(__name__)

# Declared length of a body whose size is not known up front
UNKNOWN_LENGTH = -1

# Methods whose requests never carry a payload
NO_BODY_METHODS = frozenset({"GET", "HEAD"})


class BodyReader:
    """
    Pull-based body source.

    Attributes:
        length: Declared size in bytes, or UNKNOWN_LENGTH.
    """

    def __init__(self, length: int, read: Callable[[], Awaitable[bytes]]):
        self.length = length
        self._read = read

    async def read(self) -> bytes:
        """Next chunk of the body, or b"" when complete."""
        return await self._read()

    async def read_all(self) -> bytes:
        """Collect the rest of the body into memory."""
        chunks = []
        while True:
            chunk = await self.read()
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    async def drain(self) -> int:
        """Read and discard the rest of the body. Returns bytes discarded."""
        total = 0
        while True:
            chunk = await self.read()
            if not chunk:
                return total
            total += len(chunk)

    def __repr__(self) -> str:
        return f"BodyReader(length={self.length})"


def reader_from_memory(data: Union[bytes, str]) -> BodyReader:
    """A body that is already in memory. Yields it once, then b""."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    done = False

    async def read() -> bytes:
        nonlocal done
        if done:
            return b""
        done = True
        return data

    return BodyReader(len(data), read)


def reader_from_connection(conn: StreamConnection, buf: DynamicBuffer, remain: int) -> BodyReader:
    """
    A body of exactly ``remain`` bytes that follows the header block.

    Bytes already sitting in ``buf`` are used first; after that the reader
    pulls from the connection. Anything past ``remain`` stays in ``buf``
    for the next request.

    Raises (from read()):
        HTTPError: If the peer stops sending before ``remain`` bytes.
    """

    async def read() -> bytes:
        nonlocal remain
        if remain == 0:
            return b""

        if buf.length == 0:
            data = await conn.read()
            if not data:
                raise HTTPError("Unexpected EOF")
            buf.append(data)

        consume = min(buf.length, remain)
        remain -= consume
        return buf.take(consume)

    return BodyReader(remain, read)


def reader_from_chunks(chunks: Union[Iterable[bytes], AsyncIterable[bytes]]) -> BodyReader:
    """
    A body of unknown length produced by an (async) iterable of chunks.

    Such a body can only be sent with chunked transfer-encoding, which the
    response writer does not implement; write_response() rejects it.
    """
    if hasattr(chunks, "__aiter__"):
        iterator = chunks.__aiter__()

        async def read() -> bytes:
            while True:
                try:
                    chunk = await iterator.__anext__()
                except StopAsyncIteration:
                    return b""
                if chunk:
                    return chunk
    else:
        iterator = iter(chunks)

        async def read() -> bytes:
            for chunk in iterator:
                if chunk:
                    return chunk
            return b""

    return BodyReader(UNKNOWN_LENGTH, read)


def parse_content_length(value: bytes) -> int:
    """
    Parse a Content-Length value: digits only, no sign, no spaces.

    Raises:
        HTTPError: If the value is not a non-negative decimal integer.
    """
    if not value or not value.isdigit():
        raise HTTPError("Bad Content-Length")
    return int(value)


def reader_from_request(conn: StreamConnection, buf: DynamicBuffer, req: HTTPRequest) -> BodyReader:
    """
    Choose the body reader for a request based on its framing headers.

    Raises:
        HTTPError: If Content-Length is present but invalid.
    """
    if req.method in NO_BODY_METHODS:
        return reader_from_memory(b"")

    content_length = req.get_header("Content-Length")
    if content_length is not None:
        return reader_from_connection(conn, buf, parse_content_length(content_length))

    transfer_encoding = req.get_header("Transfer-Encoding")
    if transfer_encoding is not None and transfer_encoding.lower() == b"chunked":
        logger.warning(
            f"[{conn.id}] Chunked request body is not supported, "
            f"treating {req.method} {req.target} as empty"
        )
        return reader_from_memory(b"")

    return reader_from_memory(b"")
