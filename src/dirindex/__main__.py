"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    python -m dirindex [ROOT] [options]
    dirindex [ROOT] [options]          (console script)

Reads options (falling back to DIRINDEX_* / HTTP_* environment
variables), builds the server, registers the directory plugin and runs
until Ctrl+C.

=============================================================================
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .config import DirectoryConfig, ServerConfig
from .middleware import LoggingMiddleware
from .plugin import DirectoryIndex
from .server import HTTPServer


logger = logging.getLogger("dirindex")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dirindex",
        description="Serve a directory over HTTP with stylish directory listings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dirindex                              # Serve the current directory
  dirindex ./public --port 3000         # Custom root and port
  dirindex --index index.html --index index.htm
  dirindex --json                       # Allow ?format=json listings
  dirindex --template-dir ./tpl --template mylist
        """
    )

    parser.add_argument(
        "root",
        nargs="?",
        default=None,
        help="Document root, a directory or a single file (default: DIRINDEX_ROOT or .)"
    )
    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)"
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Number of worker threads (max will be 2x this)"
    )
    parser.add_argument(
        "--index", "-i",
        action="append",
        default=None,
        metavar="NAME",
        help="Index file name served instead of a listing; repeat for more"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        default=None,
        help="Enable JSON listings (?format=json or Accept: application/json)"
    )
    parser.add_argument(
        "--css",
        default=None,
        metavar="NAME",
        help="Style template name (default: style)"
    )
    parser.add_argument(
        "--template",
        default=None,
        metavar="NAME",
        help="Listing template name (default: list)"
    )
    parser.add_argument(
        "--template-dir",
        action="append",
        default=None,
        metavar="DIR",
        help="Extra template directory, searched before the bundled ones"
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format (default: text)"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"dirindex {__version__}"
    )

    return parser


def configs_from_args(args: argparse.Namespace) -> tuple[ServerConfig, DirectoryConfig]:
    """Environment defaults, overridden by whatever was given on the command line."""
    server_config = ServerConfig.from_env()
    if args.host is not None:
        server_config.host = args.host
    if args.port is not None:
        server_config.port = args.port
    if args.workers is not None:
        server_config.min_workers = args.workers
        server_config.max_workers = args.workers * 2
    if args.log_level is not None:
        server_config.log_level = args.log_level
    if args.log_format is not None:
        server_config.log_format = args.log_format

    overrides = {}
    if args.root is not None:
        overrides["root"] = args.root
    if args.index:
        overrides["dir_index"] = tuple(args.index)
    if args.json:
        overrides["enable_json"] = True
    if args.css is not None:
        overrides["css"] = args.css
    if args.template is not None:
        overrides["dir_template"] = args.template
    if args.template_dir:
        overrides["render_opts"] = {"template_dirs": tuple(args.template_dir)}

    return server_config, DirectoryConfig.from_env(**overrides)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        server_config, directory_config = configs_from_args(args)
        server = HTTPServer(server_config)
        server.use(LoggingMiddleware(log_format=server_config.log_format))
        DirectoryIndex(directory_config).register(server)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
