"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Bytes in, bytes out:

    raw request bytes ──► RequestParser ──► HTTPRequest
                                                │
                                    hooks / router / handlers
                                                │
    raw response bytes ◄── HTTPResponse ◄───────┘
                          (buffered body or FileStream)

    request.py       HTTPRequest, RequestParser, HTTPParseError
    response.py      HTTPResponse, ResponseBuilder, FileStream, helpers
    router.py        Router, Route
    status_codes.py  HTTPStatus
    mime_types.py    MimeResolver and extension lookups

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    FileStream,
    format_http_date,
    ok,
    forbidden,
    not_found,
    method_not_allowed,
    internal_error,
    error_response,
)
from .router import Router, Route
from .status_codes import HTTPStatus
from .mime_types import MimeResolver, get_mime_type, get_content_type


__all__ = [
    # Request
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",

    # Response
    "HTTPResponse",
    "ResponseBuilder",
    "FileStream",
    "format_http_date",
    "ok",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "error_response",

    # Routing
    "Router",
    "Route",

    # Status / types
    "HTTPStatus",
    "MimeResolver",
    "get_mime_type",
    "get_content_type",
]
