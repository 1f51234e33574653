"""
=============================================================================
DYNAMIC BYTE BUFFER
=============================================================================

Accumulates bytes that have arrived from the connection but have not yet
been framed into a complete HTTP message.

=============================================================================
WHY NOT JUST `buffer += chunk`?
=============================================================================

Concatenating immutable bytes copies the whole buffer on every read:

    recv #1:  b"GET /ind"                  (copy 8 bytes)
    recv #2:  b"GET /index.html HT"        (copy 18 bytes)
    recv #3:  b"GET /index.html HTTP/1.1"  (copy 24 bytes)

For N small reads that is O(N^2) bytes copied. Instead we keep an owned
region with spare capacity and track how much of it is occupied:

    ┌──────────────────────────────┬──────────────────────┐
    │  occupied: [0, length)       │  spare capacity      │
    └──────────────────────────────┴──────────────────────┘
    0                           length               capacity

- append(): grows capacity by DOUBLING (min 32) only when needed, then
  copies the new bytes after the occupied prefix.
- consume(n): shifts [n, length) down to index 0.

Both amortize to O(1) per byte over the life of a connection.

=============================================================================
"""

from typing import Optional


class DynamicBuffer:
    """
    Growable byte buffer with an explicit occupied length.

    Attributes:
        data: The owned storage. ``len(data)`` is the capacity.
        length: Number of occupied bytes at the front of ``data``.
    """

    MIN_CAPACITY = 32

    def __init__(self, initial: bytes = b""):
        self.data = bytearray()
        self.length = 0
        if initial:
            self.append(initial)

    @property
    def capacity(self) -> int:
        return len(self.data)

    def __len__(self) -> int:
        return self.length

    def __bool__(self) -> bool:
        return self.length > 0

    def __repr__(self) -> str:
        return f"DynamicBuffer(length={self.length}, capacity={self.capacity})"

    def append(self, chunk: bytes) -> None:
        """
        Append bytes after the occupied prefix, growing storage if needed.

        Args:
            chunk: Bytes to append. Empty input is a no-op.
        """
        new_length = self.length + len(chunk)

        # ─────────────────────────────────────────────────────────────────
        # GROW: double until it fits
        # ─────────────────────────────────────────────────────────────────
        if self.capacity < new_length:
            cap = max(self.capacity, self.MIN_CAPACITY)
            while cap < new_length:
                cap *= 2
            grown = bytearray(cap)
            grown[:self.length] = self.data[:self.length]
            self.data = grown

        self.data[self.length:new_length] = chunk
        self.length = new_length

    def consume(self, n: int) -> None:
        """
        Drop the first ``n`` occupied bytes.

        Raises:
            ValueError: If ``n`` is negative or larger than ``length``.
        """
        if n < 0 or n > self.length:
            raise ValueError(f"Cannot consume {n} bytes from buffer of length {self.length}")
        self.data[0:self.length - n] = self.data[n:self.length]
        self.length -= n

    def take(self, n: int) -> bytes:
        """Copy out the first ``n`` bytes and consume them."""
        out = bytes(self.data[:n])
        self.consume(n)
        return out

    def find(self, sub: bytes, start: int = 0) -> int:
        """Search the occupied prefix only. Returns -1 if absent."""
        return self.data.find(sub, start, self.length)

    def view(self, end: Optional[int] = None) -> memoryview:
        """Zero-copy view of ``[0, end)`` (defaults to the occupied prefix)."""
        if end is None or end > self.length:
            end = self.length
        return memoryview(self.data)[:end]

    def getvalue(self) -> bytes:
        return bytes(self.data[:self.length])
