"""
Index file lookup.

For a directory request, the first existing name out of the configured
candidates is served instead of a generated listing:

    locate(["index.html", "index.htm"], "/srv/www/docs")
        → /srv/www/docs/index.htm     (no index.html there)
        → None                        (neither exists)

Only exact names directly inside the directory are tried. A candidate with
a path separator or ".." in it is skipped.
"""

import logging
import os
from pathlib import Path
from typing import Iterator, Optional, Sequence, Union


logger = logging.getLogger(__name__)


Candidates = Union[str, Sequence[str], None]


def normalize_candidates(candidates: Candidates) -> tuple[str, ...]:
    """A single name becomes a one-element tuple; None/empty becomes ()."""
    if not candidates:
        return ()
    if isinstance(candidates, str):
        return (candidates,)
    return tuple(candidates)


def _is_plain_name(name: str) -> bool:
    if not name or name in (".", ".."):
        return False
    if "/" in name or os.sep in name or (os.altsep and os.altsep in name):
        return False
    return ".." not in name


def locate(candidates: Candidates, directory: Union[str, Path]) -> Optional[Path]:
    """
    First candidate that exists in directory (file or directory entry).

    Existence is checked with os.path.exists, so a dangling symlink does
    not count. The search stops at the first hit even when it is a
    directory: with ["index.html", "index.htm"] and an index.html/
    subdirectory, index.htm is never tried, and the dispatcher, which only
    serves regular files, falls back to the listing.
    """
    directory = Path(directory)

    for name in normalize_candidates(candidates):
        if not _is_plain_name(name):
            logger.debug(f"Ignoring index candidate {name!r}")
            continue

        path = directory / name
        if os.path.exists(path):
            return path

    return None


class IndexLocator:
    """locate() with a fixed candidate list."""

    def __init__(self, candidates: Candidates = None):
        self.candidates = normalize_candidates(candidates)

    def __iter__(self) -> Iterator[str]:
        return iter(self.candidates)

    def __bool__(self) -> bool:
        return bool(self.candidates)

    def locate(self, directory: Union[str, Path]) -> Optional[Path]:
        return locate(self.candidates, directory)
