"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

The bottom of the stack: a listening TCP socket and an accept loop.

    bind + listen ──► accept() ──► Connection(client socket)
                          ▲                 │
                          └──── loop ───────┴──► connection_handler(conn)
                                                 (HTTPServer → thread pool)

Socket options:

    SO_REUSEADDR   restart immediately, even with sockets in TIME_WAIT
    TCP_NODELAY    send small responses (headers, short listings) at once
    timeout 1.0s   accept() wakes up every second to notice shutdown()

Port 0 asks the OS for any free port; `address` reports the real one once
the socket is bound.

SIGINT and SIGTERM trigger a graceful shutdown. Only the main thread may
install signal handlers, so a server started from another thread is
stopped with shutdown() instead.

=============================================================================
"""

import contextlib
import logging
import signal
import socket
import threading
from typing import Callable, Iterator, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_POLL_INTERVAL = 1.0

ConnectionHandler = Callable[[Connection], None]


class SocketServer:
    """
    Accepts TCP connections and hands each one to a callback.

        server = SocketServer(config)
        server.start(handle_connection)     # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._listener: Optional[socket.socket] = None
        self._bound: Optional[Tuple[str, int]] = None
        self._running = False
        self._ready = threading.Event()
        self._stopped = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The (host, port) actually bound, or the configured one before start()."""
        if self._bound is not None:
            return self._bound
        return (self.config.host, self.config.port)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, connection_handler: ConnectionHandler):
        """
        Listen and accept until shutdown().

        Raises:
            OSError: The address cannot be bound.
        """
        self._listener = self._listen()
        self._bound = self._listener.getsockname()[:2]
        self._running = True
        self._stopped.clear()

        logger.info(f"Server listening on {self._bound[0]}:{self._bound[1]}")

        try:
            with self._signal_handlers():
                self._ready.set()
                self._serve(connection_handler)
        finally:
            self._close_listener()

    def shutdown(self):
        """Stop the accept loop. Safe to call more than once, from any thread."""
        if self._running:
            logger.info("Stopping accept loop")
        self._running = False
        self._stopped.set()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _listen(self) -> socket.socket:
        host, port = self.config.host, self.config.port
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            listener.bind((host, port))
            listener.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Cannot listen on {host}:{port}: {e}")
            listener.close()
            raise
        listener.settimeout(ACCEPT_POLL_INTERVAL)
        return listener

    def _serve(self, connection_handler: ConnectionHandler):
        while self._running:
            try:
                client, peer = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"accept() failed: {e}")
                break

            logger.debug(f"Connection from {peer[0]}:{peer[1]}")
            connection_handler(self._wrap(client, peer))

    def _wrap(self, client: socket.socket, peer: Tuple[str, int]) -> Connection:
        return Connection(
            socket=client,
            address=peer,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            keep_alive_timeout=self.config.keep_alive_timeout,
            max_request_size=self.config.max_request_size,
        )

    @contextlib.contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        """SIGINT/SIGTERM call shutdown() while the server runs (main thread only)."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, signal handlers not installed")
            yield
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        previous = {sig: signal.signal(sig, on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def _close_listener(self):
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        self._running = False
        self._ready.clear()
        logger.info("Socket server stopped")
