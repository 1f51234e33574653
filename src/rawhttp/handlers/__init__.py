"""
=============================================================================
REQUEST HANDLERS
=============================================================================

A handler is any coroutine function with the signature:

    async def handler(request: HTTPRequest, body: BodyReader) -> HTTPResponse

It may read the request body through ``body.read()``, or return ``body``
itself as the response body to stream it straight back. It must not rely
on chunked request bodies: those arrive empty.

=============================================================================
"""

from .echo import DefaultHandler

__all__ = ["DefaultHandler"]
