"""
=============================================================================
CONFIGURATION
=============================================================================

Two dataclasses, one per layer:

    ServerConfig      the HTTP server: address, timeouts, workers, logging
    DirectoryConfig   the directory plugin: document root, index files,
                      JSON listings, templates

Both can be built in code, from environment variables (`from_env()`), or
by the CLI, and both validate eagerly so a bad setting fails at startup
rather than on the first request.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │   1. Command-line arguments    dirindex ./public --port 3000       │
    │   2. Environment variables     DIRINDEX_ROOT=./public dirindex     │
    │   3. Defaults (below)                                              │
    └─────────────────────────────────────────────────────────────────────┘

DirectoryConfig is FROZEN: every request thread reads it concurrently, and
nothing may change it after the plugin is registered.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Union


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

        Development:  ServerConfig(port=8080, log_level="DEBUG")
        Production:   ServerConfig(host="0.0.0.0", port=80, max_workers=32)

    port=0 binds any free port (tests).
    """

    # Network
    host: str = "127.0.0.1"
    port: int = 8080
    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    # HTTP
    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024  # GET-only plugin, no big bodies

    # Threading
    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json" access log lines

    server_name: str = "dirindex"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

            HTTP_HOST        Server host (default: 127.0.0.1)
            HTTP_PORT        Server port (default: 8080)
            HTTP_WORKERS     Max worker threads (default: 16)
            HTTP_TIMEOUT     Request timeout in seconds (default: 30)
            HTTP_LOG_LEVEL   Logging level (default: INFO)
            HTTP_LOG_FORMAT  Access log format, text or json (default: text)
        """
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            max_workers=int(os.getenv("HTTP_WORKERS", "16")),
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {self.log_format!r}")


# Defaults merged under user-supplied render options
DEFAULT_RENDER_OPTS = {
    "format": "html",
    "handler": "j2",
    "template_dirs": (),
}


@dataclass(frozen=True)
class DirectoryConfig:
    """
    Configuration for the directory plugin.

    Attributes:
        root:          Document root; a directory, or a single file that is
                       served for every request.
        handler:       Optional content handler (a ContentHandler or a plain
                       callable taking (context, path)), offered every
                       request before the built-in serving.
        dir_index:     Index file name(s) served instead of a listing,
                       tried in order ("index.html" or a sequence).
        enable_json:   Allow JSON listings for clients asking for JSON.
        css:           Name of the style template embedded in listings.
        dir_template:  Name of the listing template.
        render_opts:   "format" and "handler" pick the template file
                       suffixes ("list" → "list.html.j2"); "template_dirs"
                       are searched before the bundled templates.

    Example:
        DirectoryConfig(
            root="/srv/www",
            dir_index=("index.html", "index.htm"),
            enable_json=True,
        )
    """

    root: Union[str, Path] = field(default_factory=os.getcwd)
    handler: Optional[Any] = None
    dir_index: Union[str, Sequence[str], None] = ()
    enable_json: bool = False
    css: str = "style"
    dir_template: str = "list"
    render_opts: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Frozen: normalize through object.__setattr__
        object.__setattr__(self, "root", Path(self.root).absolute())

        index = self.dir_index
        if not index:
            index = ()
        elif isinstance(index, str):
            index = (index,)
        else:
            index = tuple(index)
        object.__setattr__(self, "dir_index", index)

        opts = dict(DEFAULT_RENDER_OPTS)
        opts.update(self.render_opts or {})
        dirs = opts.get("template_dirs") or ()
        if isinstance(dirs, (str, Path)):
            dirs = (dirs,)
        opts["template_dirs"] = tuple(str(d) for d in dirs)
        object.__setattr__(self, "render_opts", MappingProxyType(opts))

    @property
    def template_format(self) -> str:
        return self.render_opts["format"]

    @property
    def template_handler(self) -> str:
        return self.render_opts["handler"]

    @property
    def template_dirs(self) -> tuple[str, ...]:
        return self.render_opts["template_dirs"]

    @classmethod
    def from_env(cls, **overrides: Any) -> "DirectoryConfig":
        """
        Create configuration from environment variables.

            DIRINDEX_ROOT           Document root (default: current directory)
            DIRINDEX_INDEX          Index file names, comma separated
            DIRINDEX_JSON           "1", "true", "yes" or "on" enable JSON
            DIRINDEX_CSS            Style template name (default: style)
            DIRINDEX_TEMPLATE       Listing template name (default: list)
            DIRINDEX_TEMPLATE_DIRS  Extra template directories, os.pathsep
                                    separated

        Keyword overrides win over the environment (handler, for example,
        cannot come from a variable).
        """
        values: dict[str, Any] = {}

        if os.getenv("DIRINDEX_ROOT"):
            values["root"] = os.environ["DIRINDEX_ROOT"]

        index = os.getenv("DIRINDEX_INDEX", "")
        values["dir_index"] = tuple(n.strip() for n in index.split(",") if n.strip())

        values["enable_json"] = os.getenv("DIRINDEX_JSON", "").lower() in ("1", "true", "yes", "on")
        values["css"] = os.getenv("DIRINDEX_CSS", "style")
        values["dir_template"] = os.getenv("DIRINDEX_TEMPLATE", "list")

        template_dirs = os.getenv("DIRINDEX_TEMPLATE_DIRS", "")
        values["render_opts"] = {
            "template_dirs": tuple(d for d in template_dirs.split(os.pathsep) if d),
        }

        values.update(overrides)
        return cls(**values)

    def validate(self) -> None:
        """
        Fail fast on settings that would break every request.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not self.root.exists():
            raise ValueError(f"Document root does not exist: {self.root}")

        if not (self.root.is_dir() or self.root.is_file()):
            raise ValueError(f"Document root is neither a file nor a directory: {self.root}")

        for name in self.dir_index:
            if not name or "/" in name or os.sep in name or name in (".", ".."):
                raise ValueError(f"Invalid index file name: {name!r}")

        if not self.css:
            raise ValueError("css template name must not be empty")

        if not self.dir_template:
            raise ValueError("dir_template must not be empty")

        if self.handler is not None and not (
            callable(self.handler) or hasattr(self.handler, "handle")
        ):
            raise ValueError(f"handler must be callable or have handle(): {self.handler!r}")

        for directory in self.template_dirs:
            if not Path(directory).is_dir():
                raise ValueError(f"Template directory does not exist: {directory}")
