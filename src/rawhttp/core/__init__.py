"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

The plumbing underneath the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer      Listens, accepts, starts one task per connection  │
    ├─────────────────────────────────────────────────────────────────────┤
    │  StreamConnection  await read() / await write() over one transport   │
    ├─────────────────────────────────────────────────────────────────────┤
    │  DynamicBuffer     Bytes read but not yet framed                     │
    └─────────────────────────────────────────────────────────────────────┘

Everything runs on ONE asyncio event loop thread. Connections interleave
only at await points (read, write, handler), so no locks are needed.

=============================================================================
"""

from .buffer import DynamicBuffer
from .stream import StreamConnection, StreamState
from .listener import SocketServer

__all__ = [
    "DynamicBuffer",     # Growable byte buffer
    "StreamConnection",  # Sequential read/write over a transport
    "StreamState",       # OPEN / ENDED / FAILED
    "SocketServer",      # Accept loop
]
