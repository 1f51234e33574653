"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

Emits one access log line per request on the "rawhttp.access" logger:

    text:  127.0.0.1:51234 - - [19/Oct/2026:10:00:00 +0000] "POST /echo HTTP/1.1" 200 5 0.42ms
    json:  {"request_id": "1f2e3d4c", "method": "POST", "target": "/echo", ...}

The logged length is the response body's DECLARED length. The body itself
is streamed after the handler returns, so the timing covers the handler
only, not the write.

Route or silence these lines independently of the server's own logs:

    logging.getLogger("rawhttp.access").setLevel(logging.WARNING)

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Optional

from ..http.body import BodyReader
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .base import Handler, Middleware


logger = logging.getLogger("rawhttp.access")


@dataclass
class RequestLog:
    """One access log entry."""

    request_id: str
    method: str
    target: str
    version: str
    client: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "target": self.target,
            "version": self.version,
            "client": self.client,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Apache-style access log line."""
        return (
            f'{self.client} - - [{self.timestamp}] '
            f'"{self.method} {self.target} HTTP/{self.version}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Should be added FIRST so its timing covers every other middleware.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = False,
        log_level: int = logging.INFO,
        skip_targets: Optional[list] = None,
    ):
        """
        Args:
            log_format: "text" or "json".
            include_request_id: Add an X-Request-ID header to responses.
            log_level: Level the access lines are logged at.
            skip_targets: Request targets that are never logged.
        """
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_targets = set(skip_targets or [])

    async def __call__(self, request: HTTPRequest, body: BodyReader, next: Handler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        try:
            response = await next(request, body)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.target} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if self.include_request_id:
            response.add_header("X-Request-ID", request_id)

        if request.target in self.skip_targets:
            return response

        log_entry = RequestLog(
            request_id=request_id,
            method=request.method,
            target=request.target,
            version=request.version,
            client=request.client_address,
            status_code=response.status,
            content_length=response.body.length,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return response
