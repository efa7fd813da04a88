"""
=============================================================================
HTTP SERVER
=============================================================================

Glue between the socket layer and request handling:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  accept thread          SocketServer ── one Connection per client    │
    │                                 │                                    │
    │  worker thread          ThreadPool ── keep-alive loop per connection │
    │                                 │                                    │
    │                         read ── parse ── handle_request() ── send    │
    │                                             │                        │
    │                    middleware ──► before_dispatch hooks ──► Router   │
    │                                   (DirectoryIndex)                   │
    └─────────────────────────────────────────────────────────────────────┘

Hooks run in registration order and the first one to return a response
answers the request. When every hook returns None the router gets it,
which answers with a registered handler, a 405 or a 404.

Exceptions raised anywhere in that chain become a 500 with a generic
body; the traceback goes to the log.

=============================================================================
"""

import logging
from typing import Optional, Callable, Dict, List

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router,
)
from .http.response import error_response, internal_error
from .middleware import MiddlewarePipeline, Middleware


logger = logging.getLogger(__name__)


Hook = Callable[[HTTPRequest], Optional[HTTPResponse]]

HOOK_NAMES = ("before_dispatch",)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class HTTPServer:
    """
    Threaded HTTP/1.1 server.

        server = HTTPServer(ServerConfig(port=8080))
        server.use(LoggingMiddleware())
        DirectoryIndex(DirectoryConfig(root="./public")).register(server)
        server.run()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self.router = Router()
        self._hooks: Dict[str, List[Hook]] = {name: [] for name in HOOK_NAMES}
        self._middleware = MiddlewarePipeline()
        self._chain: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._listener = SocketServer(self.config)
        self._workers = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._serving = False

    # =========================================================================
    # EXTENSION POINTS
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Append middleware. The first one added sees the request first."""
        self._middleware.add(middleware)
        self._chain = None
        return self

    def hook(self, name: str, func: Hook) -> "HTTPServer":
        """
        Attach `func` to the hook `name`.

        Raises:
            ValueError: `name` is not one of HOOK_NAMES.
        """
        try:
            self._hooks[name].append(func)
        except KeyError:
            raise ValueError(f"Unknown hook: {name!r} (known: {', '.join(HOOK_NAMES)})") from None
        logger.debug(f"Registered {name} hook {getattr(func, '__qualname__', func)!r}")
        return self

    def route(self, path: str, method: Optional[str] = None, **meta):
        return self.router.route(path, method, **meta)

    def get(self, path: str, **meta):
        return self.router.get(path, **meta)

    def post(self, path: str, **meta):
        return self.router.post(path, **meta)

    # =========================================================================
    # HANDLING
    # =========================================================================

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        for hook in self._hooks["before_dispatch"]:
            response = hook(request)
            if response is not None:
                return response
        return self.router.handle(request)

    def handle_request(self, request: HTTPRequest) -> HTTPResponse:
        """
        Produce the response for one parsed request.

        Never raises. The caller owns the returned response and closes it
        once sent, which releases a streamed file.
        """
        if self._chain is None:
            self._chain = self._middleware.wrap(self._dispatch)

        try:
            return self._chain(request)
        except Exception as e:
            logger.exception(f"Unhandled error for {request.method} {request.path}: {e}")
            return internal_error()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def address(self) -> tuple[str, int]:
        """(host, port) being served; holds the real port when port 0 was asked for."""
        return self._listener.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._listener.wait_until_ready(timeout)

    def run(self):
        """Serve until stop(), SIGINT or SIGTERM."""
        self._configure_logging()
        self._chain = self._middleware.wrap(self._dispatch)
        self._workers.start()
        self._serving = True

        try:
            self._listener.start(self._on_connection)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self._serving = False
            logger.info("Waiting for workers to finish")
            self._workers.shutdown(wait=True, timeout=30.0)
            logger.info("Server stopped")

    def stop(self):
        self._listener.shutdown()

    def _configure_logging(self):
        level = logging.getLevelName(self.config.log_level.upper())
        if not isinstance(level, int):
            level = logging.INFO
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        logging.getLogger("dirindex").setLevel(level)

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    def _on_connection(self, conn: Connection):
        if self._workers.submit(self._serve_connection, args=(conn,), block=False):
            return
        logger.warning(f"[{conn.id}] All workers busy, refusing connection")
        self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
        conn.close()

    def _serve_connection(self, conn: Connection):
        with conn:
            while self._serving:
                try:
                    if not self._serve_one(conn):
                        return
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    return
                except ValueError as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    return
                conn.set_keep_alive()

    def _serve_one(self, conn: Connection) -> bool:
        """Read and answer one request. False ends the connection."""
        raw = conn.read_request()
        if raw is None:
            return False

        try:
            request = self._parser.parse(raw, conn.address)
        except HTTPParseError as e:
            logger.info(f"[{conn.id}] Malformed request: {e}")
            self._send_error(conn, e.status_code, str(e))
            return False

        response = self.handle_request(request)
        keep_alive = self.config.keep_alive and request.is_keep_alive
        if keep_alive:
            response.headers.setdefault("Connection", "keep-alive")
            response.headers.setdefault("Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}")
        else:
            response.headers["Connection"] = "close"

        return self._send(conn, request, response) and keep_alive

    def _send(self, conn: Connection, request: HTTPRequest, response: HTTPResponse) -> bool:
        try:
            head = response.serialize_head(self.config.server_name)
            if request.is_head:
                return conn.send_response(head)
            if response.is_streamed:
                return conn.send_stream(head, response.stream)
            return conn.send_response(head + response.body)
        finally:
            response.close()

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        response = error_response(status, message).set_header("Connection", "close")
        conn.send_response(response.to_bytes(self.config.server_name))
