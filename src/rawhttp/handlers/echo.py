"""
Default request handler.

    /echo       → responds with the request body, streamed back as it is read
    anything    → responds with the configured default body
"""

from typing import Optional

from ..config import ServerConfig
from ..http.body import BodyReader, reader_from_memory
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


ECHO_TARGET = b"/echo"


class DefaultHandler:
    """
    Echo-or-greeting handler used when no application handler is given.

    Attributes:
        default_body: Body for every target other than /echo.
        server_name: Value of the Server header.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        config = config or ServerConfig()
        self.default_body = config.default_body
        self.server_name = config.server_name

    async def __call__(self, request: HTTPRequest, body: BodyReader) -> HTTPResponse:
        if request.uri == ECHO_TARGET:
            # The request body IS the response body: the writer pulls it
            # from the connection chunk by chunk
            response_body = body
        else:
            response_body = reader_from_memory(self.default_body)

        return HTTPResponse(
            status=200,
            headers=[b"Server: " + self.server_name.encode("latin-1")],
            body=response_body,
        )
