"""
=============================================================================
DIRECTORY INDEX PLUGIN
=============================================================================

Hooks directory serving into an HTTPServer:

    server = HTTPServer(ServerConfig(port=8080))
    DirectoryIndex(DirectoryConfig(
        root="/srv/www",
        dir_index=["index.html", "index.htm"],
        enable_json=True,
    )).register(server)
    server.run()

or, with keyword options:

    register(server, root="/srv/www", enable_json=True)

The plugin runs as a before_dispatch hook. It answers GET and HEAD for
anything that exists under the root (or that the content handler claims)
and returns None otherwise, so routes registered on the server still see
everything else.

=============================================================================
"""

import logging
from typing import Any, Optional

from .config import DirectoryConfig
from .directory.context import RequestContext
from .directory.dispatcher import RequestDispatcher
from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .server import HTTPServer


logger = logging.getLogger(__name__)


class DirectoryIndex:
    """The plugin: a dispatcher bound to one DirectoryConfig."""

    METHODS = ("GET", "HEAD")

    def __init__(
        self,
        config: Optional[DirectoryConfig] = None,
        dispatcher: Optional[RequestDispatcher] = None,
    ):
        self.config = config or DirectoryConfig()
        self.config.validate()
        self.dispatcher = dispatcher or RequestDispatcher(self.config)

    def register(self, server: HTTPServer) -> "DirectoryIndex":
        server.hook("before_dispatch", self.before_dispatch)
        logger.info(f"Serving {self.config.root}")
        return self

    def before_dispatch(self, request: HTTPRequest) -> Optional[HTTPResponse]:
        """Hook entry point: the response to send, or None to pass."""
        if request.method not in self.METHODS:
            return None

        context = RequestContext(request)
        self.dispatcher.dispatch(context)
        return context.response


def register(server: HTTPServer, **options: Any) -> DirectoryIndex:
    """
    Register the plugin with DirectoryConfig options.

        register(server, root="./public", dir_index="index.html")
    """
    return DirectoryIndex(DirectoryConfig(**options)).register(server)
