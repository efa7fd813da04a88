"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes read from a client socket into an HTTPRequest.

    GET /photos/summer%202024/?format=json HTTP/1.1\r\n
    Host: localhost:8080\r\n
    Accept: application/json\r\n
    \r\n

becomes

    HTTPRequest(
        method="GET",
        raw_path="/photos/summer%202024/",     ← as sent, percent-encoded
        path="/photos/summer 2024/",           ← decoded, for display/routing
        query_params={"format": ["json"]},
        headers={"host": "localhost:8080", "accept": "application/json"},
    )

=============================================================================
TWO PATHS: raw_path AND path
=============================================================================

File names are bytes on disk. "%FF" is a perfectly good file name byte
but not valid UTF-8. The directory resolver decodes raw_path itself so
undecodable bytes still reach the filesystem unchanged, while the router,
the access log and listing titles use the friendlier decoded `path`.

Path traversal ("/../../etc/passwd") is NOT rejected here: the resolver
checks it against the document root, where "/a/../b" can be told apart
from an escape.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import parse_qs, urlsplit, unquote
import re


SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

KNOWN_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"})


class HTTPParseError(Exception):
    """
    The request could not be parsed; `status_code` is what the client gets.

        400  malformed request line, headers or body
        405  unknown method
        413  request larger than the configured limit
        505  HTTP version other than 1.0 and 1.1
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """A parsed request. Header names are lower-case."""

    method: str
    path: str
    version: str = "HTTP/1.1"
    raw_path: str = ""
    query_string: str = ""

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    # Filled in by the router for ":param" and "*wildcard" segments
    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)

    def __post_init__(self):
        # Requests built by hand (tests, hooks) only give the decoded path
        if not self.raw_path:
            self.raw_path = self.path

    @property
    def content_type(self) -> Optional[str]:
        media_type = self.headers.get("content-type", "").partition(";")[0]
        return media_type.strip().lower() or None

    @property
    def content_length(self) -> int:
        value = self.headers.get("content-length", "")
        return int(value) if value.isdigit() else 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def accept(self) -> str:
        """Raw Accept header, used for listing content negotiation."""
        return self.headers.get("accept", "")

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    @property
    def is_keep_alive(self) -> bool:
        """HTTP/1.1 stays open unless told to close; HTTP/1.0 only when asked."""
        token = self.headers.get("connection", "").strip().lower()
        if self.version == "HTTP/1.0":
            return token == "keep-alive"
        return token != "close"

    def get_header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter: "?format=json&format=html" gives "json"."""
        return next(iter(self.query_params.get(name, ())), default)

    def get_query_list(self, name: str) -> list[str]:
        return list(self.query_params.get(name, ()))


def split_target(target: str) -> tuple[str, str]:
    """
    (percent-encoded path, query string) of a request target.

        /docs/?format=json           → ("/docs/", "format=json")
        //sub/deep.md                → ("//sub/deep.md", "")
        http://host/docs/?x=1        → ("/docs/", "x=1")

    In origin form a leading "//" is part of the path, never a host.
    """
    if target.startswith("/"):
        target = target.partition("#")[0]
        path, _, query = target.partition("?")
        return path or "/", query

    url = urlsplit(target)
    return url.path or "/", url.query


class RequestParser:
    """
    Raw request bytes → HTTPRequest.

        size limit ─► request line ─► headers ─► body (Content-Length bytes)
           413          400/405/505       400          400 when short
    """

    REQUEST_LINE = re.compile(r"([A-Z]+) (\S+) (HTTP/\d\.\d)")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Raises:
            HTTPParseError: The request is malformed or too large.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        head, separator, rest = data.partition(b"\r\n\r\n")
        if not separator:
            raise HTTPParseError("Incomplete request: no header terminator")

        request_line, *header_lines = head.decode("utf-8", errors="replace").split("\r\n")
        method, target, version = self._request_line(request_line)
        headers = self._headers(header_lines)

        length = headers.get("content-length", "0").strip()
        if not length.isdigit():
            raise HTTPParseError("Invalid Content-Length header")
        if len(rest) < int(length):
            raise HTTPParseError(f"Incomplete body: expected {length} bytes, got {len(rest)}")

        raw_path, query = split_target(target)

        return HTTPRequest(
            method=method,
            path=unquote(raw_path),
            raw_path=raw_path,
            version=version,
            headers=headers,
            query_string=query,
            query_params=parse_qs(query, keep_blank_values=True),
            # Bytes past Content-Length start the next pipelined request
            body=rest[:int(length)],
            client_address=client_address,
        )

    def _request_line(self, line: str) -> tuple[str, str, str]:
        match = self.REQUEST_LINE.fullmatch(line)
        if match is None:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()
        if method not in KNOWN_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)
        if version not in SUPPORTED_VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)
        return method, target, version

    @staticmethod
    def _headers(lines: list[str]) -> Dict[str, str]:
        """
        Lower-case names. Folded lines continue the previous header and
        repeated headers are joined with ", ". Lines without a colon are
        ignored.
        """
        headers: Dict[str, str] = {}
        last = None

        for line in lines:
            if line[:1] in (" ", "\t"):
                if last is not None:
                    headers[last] = f"{headers[last]} {line.strip()}"
                continue

            name, colon, value = line.partition(":")
            if not colon or not name.strip():
                continue

            last = name.strip().lower()
            value = value.strip()
            headers[last] = f"{headers[last]}, {value}" if last in headers else value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    return RequestParser(max_request_size=max_size).parse(data, client_address)
