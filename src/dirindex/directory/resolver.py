"""
=============================================================================
PATH RESOLUTION
=============================================================================

Maps the path of a request URL onto the filesystem under the document
root, and says what is there:

    root = /srv/www

    "/"                      → /srv/www                 DIRECTORY
    "/docs/"                 → /srv/www/docs            DIRECTORY
    "/docs/a%20b.txt"        → /srv/www/docs/a b.txt    FILE
    "/nope"                  → /srv/www/nope            MISSING
    "/docs/../img/"          → /srv/www/img             DIRECTORY
    "/../etc/passwd"         → InvalidPathError
    "/a%00b"                 → InvalidPathError

=============================================================================
DECODING
=============================================================================

The percent-encoded path is decoded twice, for two audiences:

    filesystem   unquote(errors="surrogateescape")
                 "%FF" survives as a lone surrogate, which os functions
                 turn back into the original 0xFF byte
    display      unquote(errors="replace")
                 "%FF" becomes U+FFFD, safe to print and to put in HTML

=============================================================================
TRAVERSAL
=============================================================================

".." is resolved LEXICALLY, before touching the filesystem: each ".."
removes the previous segment, and one with nothing left to remove means
the path climbs above the root. Symlinks inside the root are followed as
the filesystem resolves them.

=============================================================================
"""

import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union
from urllib.parse import unquote

from .errors import InvalidPathError


class TargetKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"
    MISSING = "missing"


@dataclass(frozen=True)
class ResolvedTarget:
    """
    Where a request path points.

    Attributes:
        path:          Absolute filesystem path, always inside the root.
        kind:          FILE, DIRECTORY or MISSING.
        display_path:  The decoded URL path, for titles and JSON.
    """

    path: Path
    kind: TargetKind
    display_path: str

    @property
    def is_file(self) -> bool:
        return self.kind is TargetKind.FILE

    @property
    def is_dir(self) -> bool:
        return self.kind is TargetKind.DIRECTORY

    @property
    def exists(self) -> bool:
        return self.kind is not TargetKind.MISSING


def display_path(raw_path: str) -> str:
    """Decoded URL path for display; "/" when empty."""
    return unquote(raw_path or "/", errors="replace") or "/"


def split_request_path(raw_path: str) -> list[str]:
    """
    Decode a request path and normalize it to root-relative segments.

    Raises:
        InvalidPathError: The path leaves the root or contains NUL.
    """
    decoded = unquote(raw_path or "", errors="surrogateescape")

    if "\x00" in decoded:
        raise InvalidPathError("Path contains a NUL byte", path=raw_path)

    parts: list[str] = []
    for segment in decoded.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                raise InvalidPathError("Path escapes the document root", path=raw_path)
            parts.pop()
            continue
        if os.sep != "/" and os.sep in segment:
            raise InvalidPathError("Path contains a separator", path=raw_path)
        parts.append(segment)

    return parts


def is_root_file(root: Union[str, Path]) -> bool:
    """True if the document root is a single regular file."""
    return os.path.isfile(root)


def classify(path: Union[str, Path]) -> TargetKind:
    """
    FILE, DIRECTORY or MISSING for a filesystem path (symlinks followed).

    Not found and "a file where a directory was expected" are MISSING, as
    is anything that is neither a regular file nor a directory (sockets,
    FIFOs, devices). Other OSErrors propagate.
    """
    try:
        st = os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return TargetKind.MISSING

    if stat.S_ISDIR(st.st_mode):
        return TargetKind.DIRECTORY
    if stat.S_ISREG(st.st_mode):
        return TargetKind.FILE
    return TargetKind.MISSING


def resolve(document_root: Union[str, Path], request_path: str) -> ResolvedTarget:
    """
    Resolve a percent-encoded request path against the document root.

    Raises:
        InvalidPathError: Traversal above the root, or NUL in the path.
        OSError: The target could not be inspected (e.g. PermissionError).
    """
    root = Path(document_root).absolute()
    parts = split_request_path(request_path)
    path = root.joinpath(*parts)

    return ResolvedTarget(
        path=path,
        kind=classify(path),
        display_path=display_path(request_path),
    )


class PathResolver:
    """
    resolve() bound to one document root.

        resolver = PathResolver("/srv/www")
        target = resolver.resolve(request.raw_path)
    """

    def __init__(self, document_root: Union[str, Path]):
        self.root = Path(document_root).absolute()

    @property
    def root_is_file(self) -> bool:
        return is_root_file(self.root)

    def resolve(self, request_path: str) -> ResolvedTarget:
        return resolve(self.root, request_path)
