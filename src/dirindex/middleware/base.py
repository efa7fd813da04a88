"""
=============================================================================
MIDDLEWARE
=============================================================================

Middleware sits around everything the server does with a request, so it
sees directory listings, served files and router answers alike:

    request ──► mw[0] ──► mw[1] ──► ... ──► hooks ──► router
    response ◄── mw[0] ◄── mw[1] ◄── ... ◄──────┘

A middleware is called with the request and `next`. Returning without
calling next answers the request on the spot; otherwise it calls
next(request) and may adjust the response on the way out:

    class ServerTiming(Middleware):
        def __call__(self, request, next):
            start = time.perf_counter()
            response = next(request)
            return response.set_header("Server-Timing", f"app;dur={...}")

=============================================================================
"""

from abc import ABC, abstractmethod
from functools import partial, reduce
from typing import Callable, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        ...

    @property
    def name(self) -> str:
        return type(self).__name__


class MiddlewarePipeline:
    """Ordered middleware; wrap() turns it into a single handler."""

    def __init__(self):
        self._stack: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._stack.append(middleware)
        logger.debug(f"Middleware {middleware.name} added at position {len(self._stack) - 1}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for item in middleware:
            self.add(item)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """Handler running every middleware, first added first, then `handler`."""
        return reduce(
            lambda inner, middleware: partial(middleware, next=inner),
            reversed(self._stack),
            handler,
        )

    def __len__(self) -> int:
        return len(self._stack)

    def __iter__(self):
        return iter(self._stack)


class FunctionMiddleware(Middleware):
    """
    Adapts func(request, next) to the Middleware interface.

        server.use(FunctionMiddleware(add_header))
    """

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None
    ):
        self.func = func
        self._label = name or func.__name__

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self.func(request, next)

    @property
    def name(self) -> str:
        return self._label
