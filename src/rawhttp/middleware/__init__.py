"""
Middleware: behaviour wrapped around every request handler.

    from rawhttp.middleware import LoggingMiddleware
    server.use(LoggingMiddleware(log_format="json"))
"""

from .base import Handler, Middleware, MiddlewarePipeline
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Handler",
    "Middleware",
    "MiddlewarePipeline",
    "LoggingMiddleware",
    "RequestLog",
]
