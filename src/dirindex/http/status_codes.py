"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The subset of RFC 7231 status codes a read-only file server produces.

    2xx  200 OK                  file, index file or listing served
    3xx  304 Not Modified        (reserved for conditional requests)
    4xx  403 Forbidden           path escapes the document root
         404 Not Found           nothing at that path
         405 Method Not Allowed  route exists for other methods
         408 Request Timeout     client too slow to send the request
         413 Payload Too Large   request exceeds max_request_size
    5xx  500 Internal Error      permission denied, I/O error, handler crash
         503 Unavailable         worker queue full
         505 Version             not HTTP/1.0 or HTTP/1.1

Reason phrases come from the standard library's table.

=============================================================================
"""

import http
from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status codes used by the server. Members compare equal to ints:

        >>> HTTPStatus.FORBIDDEN == 403
        True
        >>> HTTPStatus.FORBIDDEN.phrase
        'Forbidden'
    """

    OK = 200
    NO_CONTENT = 204

    MOVED_PERMANENTLY = 301
    FOUND = 302
    NOT_MODIFIED = 304

    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414

    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        try:
            return http.HTTPStatus(int(self)).phrase
        except ValueError:
            return "Unknown"

    @property
    def category(self) -> int:
        """1 to 5, the first digit."""
        return int(self) // 100

    @property
    def is_success(self) -> bool:
        return self.category == 2

    @property
    def is_client_error(self) -> bool:
        return self.category == 4

    @property
    def is_server_error(self) -> bool:
        return self.category == 5

    @property
    def is_error(self) -> bool:
        """4xx or 5xx."""
        return self.category >= 4
