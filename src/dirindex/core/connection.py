"""
=============================================================================
CLIENT CONNECTION
=============================================================================

One accepted client socket, alive for a whole keep-alive session.

Reading. Bytes arrive in arbitrary pieces, so they collect in a buffer
until one full request is there:

    buffer: GET /a HTTP/1.1\r\n ... \r\n\r\n [body] GET /b HTTP/1.1 ...
            └──────────── returned now ───────────┘ └── kept for next ──┘

The body length comes from Content-Length (listing requests normally
have none). Anything past it belongs to the next pipelined request.

Timeouts. The first request must arrive within `timeout`; later ones
within `keep_alive_timeout`. An idle keep-alive connection running out
of time is a normal end of the session.

Writing. Either one sendall() of a complete response, or the head
followed by file chunks as they are read from disk.

    NEW → READING → PROCESSING → WRITING → KEEP_ALIVE → READING → ...
                                  any state → CLOSING → CLOSED

=============================================================================
"""

import logging
import re
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional


logger = logging.getLogger(__name__)


HEADER_END = b"\r\n\r\n"

_CONTENT_LENGTH = re.compile(rb"^content-length[ \t]*:[ \t]*(\d+)[ \t]*$", re.IGNORECASE | re.MULTILINE)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


def body_length(head: bytes) -> int:
    """Content-Length found in raw header bytes; 0 when missing or malformed."""
    match = _CONTENT_LENGTH.search(head.replace(b"\r\n", b"\n"))
    return int(match.group(1)) if match else 0


@dataclass
class Connection:
    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    opened_at: float = field(default_factory=time.monotonic)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: float = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _pending: bytearray = field(default_factory=bytearray, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout or None)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Return the bytes of the next complete request.

        None means the session is over: the peer closed the socket, or an
        idle keep-alive connection timed out.

        Raises:
            TimeoutError: The first request did not arrive within `timeout`.
            ValueError: The request grew beyond max_request_size.
        """
        self.state = ConnectionState.READING
        if self.requests_handled:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            if not self._fill_until(lambda: HEADER_END in self._pending):
                return None

            body_start = self._pending.index(HEADER_END) + len(HEADER_END)
            end = body_start + body_length(bytes(self._pending[:body_start]))
            # A peer closing mid-body leaves a short request for the parser to reject
            self._fill_until(lambda: len(self._pending) >= end)
        except socket.timeout:
            if self.requests_handled:
                logger.debug(f"[{self.id}] Idle keep-alive connection timed out")
                return None
            raise TimeoutError("Request read timeout") from None
        finally:
            self.socket.settimeout(self.timeout or None)

        request = bytes(self._pending[:end])
        del self._pending[:end]
        self.requests_handled += 1
        self.state = ConnectionState.PROCESSING
        return request

    def _fill_until(self, done) -> bool:
        """recv() into the buffer until done() holds. False if the peer hung up first."""
        while not done():
            try:
                chunk = self.socket.recv(self.buffer_size)
            except (ConnectionResetError, BrokenPipeError):
                chunk = b""
            if not chunk:
                return False
            self._pending += chunk
            if len(self._pending) > self.max_request_size:
                raise ValueError(f"Request too large: more than {self.max_request_size} bytes")
        return True

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """Send everything in `data`. False if the client is gone."""
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        return True

    def send_stream(self, head: bytes, chunks: Iterable[bytes]) -> bool:
        """
        Send `head`, then each chunk. Stops at the first failed write.

        Closing the source of `chunks` is left to the caller.
        """
        if not self.send_response(head):
            return False
        sent = 0
        try:
            for chunk in chunks:
                self.socket.sendall(chunk)
                sent += len(chunk)
        except OSError as e:
            logger.warning(f"[{self.id}] Stream interrupted after {sent} bytes: {e}")
            return False
        return True

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def close(self):
        """Half-close, drain briefly, then release the socket. Safe to repeat."""
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING

        # The peer may already be gone at any of these steps
        try:
            self.socket.shutdown(socket.SHUT_WR)
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass
        finally:
            self.socket.close()

        self.state = ConnectionState.CLOSED
        lifetime = time.monotonic() - self.opened_at
        logger.debug(f"[{self.id}] Closed after {self.requests_handled} requests ({lifetime:.1f}s)")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info):
        self.close()
