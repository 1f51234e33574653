"""
=============================================================================
MIDDLEWARE
=============================================================================

Middleware wraps the request handler to add behaviour around every
request (logging, headers, ...) without touching the handler itself.

    pipeline.add(LoggingMiddleware())    # first added = outermost
    handler = pipeline.wrap(DefaultHandler(config))

        ┌──────────── LoggingMiddleware ─────────────┐
        │   ┌──────────── handler ──────────────┐    │
        │   │  (request, body) → HTTPResponse   │    │
        │   └───────────────────────────────────┘    │
        └────────────────────────────────────────────┘

Everything is async: a middleware awaits ``next(request, body)`` and may
look at or change the response before returning it.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List

from ..http.body import BodyReader
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

# The handler contract: (request, body) → response, asynchronously
Handler = Callable[[HTTPRequest, BodyReader], Awaitable[HTTPResponse]]


class Middleware(ABC):
    """
    Base class for middleware.

    Subclasses implement ``__call__`` and must await ``next(request, body)``
    unless they answer the request themselves.
    """

    @abstractmethod
    async def __call__(self, request: HTTPRequest, body: BodyReader, next: Handler) -> HTTPResponse:
        pass

    @property
    def name(self) -> str:
        """Get the middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """Chains middleware around a final handler."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Add middleware; the first one added runs outermost."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: Handler) -> Handler:
        """
        Wrap ``handler`` with every middleware in the pipeline.

        Given [MW1, MW2] the result calls MW1 → MW2 → handler, so we wrap
        in reverse order.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(self, middleware: Middleware, next_handler: Handler) -> Handler:
        async def wrapped(request: HTTPRequest, body: BodyReader) -> HTTPResponse:
            return await middleware(request, body, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
