"""
=============================================================================
MIDDLEWARE
=============================================================================

    Middleware           base class: __call__(request, next) -> response
    MiddlewarePipeline   chains middleware around the dispatcher
    FunctionMiddleware   plain function as middleware
    LoggingMiddleware    access log on "dirindex.access" + X-Request-ID

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, FunctionMiddleware, NextHandler
from .logging import LoggingMiddleware, RequestLog


__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]
