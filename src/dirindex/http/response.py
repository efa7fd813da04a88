"""
=============================================================================
HTTP RESPONSES
=============================================================================

A response carries its payload in one of two ways:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  in memory                         from disk                         │
    │  ─────────                         ─────────                         │
    │  response.body = b"<html>..."      response.stream = FileStream(..)  │
    │  listings, JSON, error pages       files under the document root     │
    │                                                                      │
    │  sent as head + body               sent as head, then 64 KiB chunks, │
    │                                    then stream.close()               │
    └─────────────────────────────────────────────────────────────────────┘

Content-Length is known in both cases (len(body) or the file size), so
HEAD answers carry the same headers as GET without reading the file.

FileStream opens the file as soon as it is created. A file that cannot
be read fails while the response is being built and turns into a 500
instead of a half-written body.

Building a response:

    ResponseBuilder().status(HTTPStatus.FORBIDDEN).json({"error": "no"}).build()
    ResponseBuilder().file_stream(path, "image/png").build()

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Optional, Dict, Any, Union, Iterator, BinaryIO
import json
import os

from .status_codes import HTTPStatus
from .mime_types import get_content_type


STREAM_CHUNK_SIZE = 64 * 1024


class FileStream:
    """
    File body read lazily in chunks. Whoever sends it closes it.

        with FileStream("/srv/www/big.iso") as stream:
            for chunk in stream:
                sock.sendall(chunk)
    """

    def __init__(self, path: str | Path, chunk_size: int = STREAM_CHUNK_SIZE):
        self.path = Path(path)
        self.chunk_size = chunk_size
        self._fh: Optional[BinaryIO] = open(self.path, "rb")
        self.size = os.fstat(self._fh.fileno()).st_size

    def __iter__(self) -> Iterator[bytes]:
        fh = self._fh
        if fh is None:
            return
        for chunk in iter(lambda: fh.read(self.chunk_size), b""):
            yield chunk

    def read_all(self) -> bytes:
        return b"".join(self)

    @property
    def closed(self) -> bool:
        return self._fh is None

    def close(self) -> None:
        fh, self._fh = self._fh, None
        if fh is not None:
            fh.close()

    def __enter__(self) -> "FileStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


@dataclass
class HTTPResponse:
    """Status, headers and either `body` or `stream` (never both)."""

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"
    stream: Optional[FileStream] = None

    @property
    def status_line(self) -> str:
        status = HTTPStatus(self.status)
        return f"{self.version} {status.value} {status.phrase}"

    @property
    def is_streamed(self) -> bool:
        return self.stream is not None

    @property
    def content_length(self) -> int:
        if "Content-Length" in self.headers:
            return int(self.headers["Content-Length"])
        return self.stream.size if self.stream is not None else len(self.body)

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def close(self) -> None:
        if self.stream is not None:
            self.stream.close()

    def serialize_head(self, server_name: str = "dirindex") -> bytes:
        """
        Status line and headers, terminated by the blank line.

        Content-Length, Date and Server are filled in unless already set.
        Content-Length describes the payload even when it is not sent (HEAD).
        """
        defaults = {
            "Content-Length": str(self.content_length),
            "Date": format_http_date(datetime.now(timezone.utc)),
            "Server": server_name,
        }
        headers = {**self.headers}
        for name, value in defaults.items():
            headers.setdefault(name, value)

        head = self.status_line + "\r\n"
        head += "".join(f"{name}: {value}\r\n" for name, value in headers.items())
        return (head + "\r\n").encode("utf-8")

    def to_bytes(self, server_name: str = "dirindex") -> bytes:
        """Whole response in one buffer; drains a streamed body into memory."""
        payload = self.stream.read_all() if self.stream is not None else self.body
        return self.serialize_head(server_name) + payload


class ResponseBuilder:
    """
    Chainable construction of an HTTPResponse.

        ResponseBuilder().html(page).header("Vary", "Accept").build()
    """

    def __init__(self):
        self._response = HTTPResponse()

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._response.status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._response.headers[name] = value
        return self

    def _payload(self, data: bytes, content_type: str) -> "ResponseBuilder":
        self._response.body = data
        return self.header("Content-Type", content_type)

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        return self._payload(text.encode("utf-8"), content_type)

    def html(self, html: str) -> "ResponseBuilder":
        return self._payload(html.encode("utf-8"), "text/html; charset=utf-8")

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """JSON body; non-ASCII file names are written as-is, not \\u-escaped."""
        encoded = json.dumps(data, indent=2 if pretty else None, ensure_ascii=False)
        return self._payload(encoded.encode("utf-8"), "application/json; charset=utf-8")

    def raw(self, data: bytes, content_type: Optional[str] = None) -> "ResponseBuilder":
        self._response.body = data
        if content_type:
            self.header("Content-Type", content_type)
        return self

    def file_stream(self, path: str | Path, content_type: Optional[str] = None) -> "ResponseBuilder":
        """
        Serve a file from disk. The file is opened here.

        Raises:
            OSError: The file is missing or unreadable.
        """
        stream = FileStream(path)
        self._response.stream = stream
        self._response.body = b""
        self.header("Content-Type", content_type or get_content_type(path))
        return self.header("Content-Length", str(stream.size))

    def close_connection(self) -> "ResponseBuilder":
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        return self._response


# =============================================================================
# DATES
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    IMF-fixdate as used by Date and Last-Modified:

        Thu, 15 Jan 2026 12:30:45 GMT

    Naive datetimes are taken to be UTC. Day and month names are always
    English regardless of locale.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def format_timestamp(timestamp: float) -> str:
    return format_http_date(datetime.fromtimestamp(timestamp, tz=timezone.utc))


# =============================================================================
# SHORTCUTS
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """200 with a JSON, text or raw body depending on the type of `body`."""
    builder = ResponseBuilder()
    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or "text/plain; charset=utf-8")
    else:
        builder.raw(body, content_type)
    return builder.build()


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """{"error": message} with the given status; the message defaults to the reason phrase."""
    status = HTTPStatus(status)
    return ResponseBuilder().status(status).json({"error": message or status.phrase}).build()


def forbidden(message: str = "Forbidden") -> HTTPResponse:
    return error_response(HTTPStatus.FORBIDDEN, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message)


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    # Details go to the log, never to the client
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    response = error_response(HTTPStatus.METHOD_NOT_ALLOWED)
    return response.set_header("Allow", ", ".join(allowed_methods))
