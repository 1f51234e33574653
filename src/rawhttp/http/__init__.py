"""
=============================================================================
HTTP/1.x PROTOCOL LAYER
=============================================================================

Framing, parsing and encoding on top of the core stream API:

    bytes ──► framing.cut_message ──► HTTPRequest
                                          │
              body.reader_from_request ◄──┘  (lazy body)
                                          │
                                     handler(request, body)
                                          │
    bytes ◄── response.write_response ◄── HTTPResponse

=============================================================================
"""

from .request import HTTPError, HTTPRequest, parse_request, field_get
from .framing import cut_message, MAX_HEADER_SIZE
from .body import (
    BodyReader,
    UNKNOWN_LENGTH,
    reader_from_memory,
    reader_from_connection,
    reader_from_chunks,
    reader_from_request,
)
from .response import HTTPResponse, encode_response, write_response, error_response

__all__ = [
    # Requests
    "HTTPError",
    "HTTPRequest",
    "parse_request",
    "field_get",

    # Framing
    "cut_message",
    "MAX_HEADER_SIZE",

    # Bodies
    "BodyReader",
    "UNKNOWN_LENGTH",
    "reader_from_memory",
    "reader_from_connection",
    "reader_from_chunks",
    "reader_from_request",

    # Responses
    "HTTPResponse",
    "encode_response",
    "write_response",
    "error_response",
]
