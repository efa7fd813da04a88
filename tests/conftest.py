"""
pytest configuration and fixtures.
"""

import os
import threading
from typing import Callable, Generator

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dirindex import HTTPServer, ServerConfig, DirectoryConfig
from dirindex.http import HTTPRequest


# Fixed mtime for files in the document root: Sat, 17 Oct 2026 09:12:00 GMT
FIXED_MTIME = 1792228320


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """
    A small document root:

        docs/
        ├── a b.txt
        ├── Makefile
        ├── notes.xyz
        ├── photo.PNG
        ├── site/
        │   └── index.html
        └── sub/
            └── deep.md
    """
    root = tmp_path / "docs"
    root.mkdir()

    (root / "a b.txt").write_text("hello world\n")
    (root / "Makefile").write_text("all:\n")
    (root / "notes.xyz").write_bytes(b"\x00\x01\x02")
    (root / "photo.PNG").write_bytes(b"\x89PNG....")

    (root / "site").mkdir()
    (root / "site" / "index.html").write_text("<h1>site home</h1>")

    (root / "sub").mkdir()
    (root / "sub" / "deep.md").write_text("# deep\n")

    for path in root.rglob("*"):
        os.utime(path, (FIXED_MTIME, FIXED_MTIME))

    return root


@pytest.fixture
def deny_stat(monkeypatch) -> Callable[[str], None]:
    """
    deny_stat("deep.md") makes the path resolver's os.stat() raise
    PermissionError for paths ending in that name; others stat normally.
    """
    import dirindex.directory.resolver as resolver

    real_stat = os.stat

    def install(suffix: str):
        def stat(path, *args, **kwargs):
            if os.fspath(path).endswith(suffix):
                raise PermissionError(13, "Permission denied", os.fspath(path))
            return real_stat(path, *args, **kwargs)

        monkeypatch.setattr(resolver.os, "stat", stat)

    return install


@pytest.fixture
def make_request() -> Callable[..., HTTPRequest]:
    """
    Build an HTTPRequest the way the parser would.

        make_request("/docs/?format=json", accept="application/json")
    """
    from urllib.parse import parse_qs, unquote

    def factory(target: str = "/", method: str = "GET", **headers: str) -> HTTPRequest:
        raw_path, _, query = target.partition("?")
        return HTTPRequest(
            method=method,
            path=unquote(raw_path) or "/",
            raw_path=raw_path or "/",
            query_string=query,
            query_params=parse_qs(query, keep_blank_values=True),
            headers={name.replace("_", "-").lower(): value for name, value in headers.items()},
        )

    return factory


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


class RunningServer:
    """Server running in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    @property
    def base_url(self) -> str:
        host, port = self.server.address
        return f"http://{host}:{port}"

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def serve(config: ServerConfig) -> Generator[Callable[..., RunningServer], None, None]:
    """
    Start a server with the directory plugin registered:

        running = serve(root=doc_root, enable_json=True)
        urlopen(running.base_url + "/")
    """
    from dirindex.plugin import DirectoryIndex

    started: list[RunningServer] = []

    def factory(**options) -> RunningServer:
        server = HTTPServer(config)
        DirectoryIndex(DirectoryConfig(**options)).register(server)
        running = RunningServer(server)
        running.start()
        started.append(running)
        return running

    yield factory

    for running in started:
        running.stop()
