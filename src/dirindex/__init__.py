"""
=============================================================================
dirindex
=============================================================================

Serve a directory over HTTP, with an Apache mod_autoindex style listing
for directories that have no index file, optionally as JSON.

    $ dirindex ./public --port 8080 --index index.html --json

    $ curl http://127.0.0.1:8080/docs/?format=json
    {"files": [{"url": "../", "name": "Parent Directory", ...}, ...],
     "current": "/docs/"}

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP SERVER            server.py, core/, http/, middleware/        │
    │  sockets, threads, parsing, routing, access log                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │  PLUGIN                 plugin.py (before_dispatch hook)            │
    ├─────────────────────────────────────────────────────────────────────┤
    │  DIRECTORY SERVING      directory/                                  │
    │  resolve → handler → file | index | listing → HTML/JSON             │
    └─────────────────────────────────────────────────────────────────────┘

Embedding:

    from dirindex import HTTPServer, ServerConfig, DirectoryConfig, DirectoryIndex

    server = HTTPServer(ServerConfig(port=8080))
    DirectoryIndex(DirectoryConfig(root="./public", enable_json=True)).register(server)
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig, DirectoryConfig
from .plugin import DirectoryIndex, register

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "DirectoryConfig",
    "DirectoryIndex",
    "register",
    "__version__",
]
