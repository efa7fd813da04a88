"""
=============================================================================
DIRECTORY LISTINGS
=============================================================================

Builds the data behind an "Index of /docs/" page:

    Listing(
        current="/docs/",
        files=(
            Entry(url="../",               name="Parent Directory", size="", type="", mtime=""),
            Entry(url="/docs/img/",        name="img/",      size=0,    type="directory",  mtime="Sat, 17 Oct 2026 09:12:00 GMT"),
            Entry(url="/docs/notes",       name="notes",     size=12,   type="text/plain", mtime="..."),
            Entry(url="/docs/read%20me.md", name="read me.md", size=4096, type="text/markdown", mtime="..."),
        ),
    )

=============================================================================
RULES
=============================================================================

    order      by name, plain code-point comparison ("B" < "a"), files and
               directories mixed; no locale collation
    parent     one "Parent Directory" entry first, unless current is "/"
    url        current path without trailing slash + "/" + escaped name,
               plus "/" for directories
    name       file name, plus "/" for directories
    size       bytes; 0 for directories
    type       "directory", or the MIME type of the lower-cased extension
               (no extension → as "txt"; unknown → "text/plain")
    mtime      HTTP-date in GMT

A child that vanishes between readdir and stat (or a dangling symlink) is
left out. Any other stat error, such as permission denied, fails the whole
listing: no partial pages.

=============================================================================
"""

import logging
import os
import stat
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Optional, Union
from urllib.parse import quote

from ..http.mime_types import MimeResolver, default_resolver
from ..http.response import format_timestamp


logger = logging.getLogger(__name__)


# Characters left unescaped in a URL path segment (RFC 3986 pchar)
SEGMENT_SAFE = "!$&'()*+,;=:@~"

PARENT_NAME = "Parent Directory"


@dataclass(frozen=True)
class Entry:
    """One row of a listing. The parent entry uses "" for size, type and mtime."""

    url: str
    name: str
    size: Union[int, str]
    type: str
    mtime: str

    @property
    def is_dir(self) -> bool:
        return self.type == "directory"

    def to_dict(self) -> dict:
        return asdict(self)


PARENT_ENTRY = Entry(url="../", name=PARENT_NAME, size="", type="", mtime="")


@dataclass(frozen=True)
class Listing:
    current: str
    files: tuple[Entry, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        """The JSON shape: {"files": [...], "current": "..."}."""
        return {
            "files": [entry.to_dict() for entry in self.files],
            "current": self.current,
        }

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self):
        return iter(self.files)


def decode_name(name: str) -> str:
    """
    File name as UTF-8 text. Bytes that are not valid UTF-8 (kept by the
    OS layer as surrogate escapes) become U+FFFD.
    """
    return os.fsencode(name).decode("utf-8", errors="replace")


def entry_url(current: str, name: str, is_dir: bool) -> str:
    """
    URL of a child of `current`.

        entry_url("/docs/", "a b.txt", False)   → "/docs/a%20b.txt"
        entry_url("/",      "img",     True)    → "/img/"
    """
    parts = [quote(part, safe=SEGMENT_SAFE) for part in current.split("/") if part]
    # Escape the on-disk bytes so undecodable names still link back to the file
    parts.append(quote(os.fsencode(name), safe=SEGMENT_SAFE))
    url = "/" + "/".join(parts)
    return url + "/" if is_dir else url


class ListingBuilder:
    """
    Turns a directory into a Listing.

        builder = ListingBuilder()
        listing = builder.build("/srv/www/docs", "/docs/")
    """

    def __init__(self, mime_resolver: Optional[MimeResolver] = None):
        self.mime_resolver = mime_resolver or default_resolver

    def _stat(self, path: str) -> os.stat_result:
        return os.stat(path)

    def build(self, directory: Union[str, Path, None], current: str) -> Listing:
        """
        List the direct children of directory as seen from URL path current.

        Raises:
            OSError: The directory cannot be read, or a child cannot be
                     inspected for any reason other than having vanished.
        """
        if not directory:
            return Listing(current=current)

        entries = []
        with os.scandir(directory) as it:
            children = [(decode_name(child.name), child.name, child.path) for child in it]

        for display, name, path in sorted(children):
            entry = self._entry(display, name, path, current)
            if entry is not None:
                entries.append(entry)

        if current != "/":
            entries.insert(0, PARENT_ENTRY)

        logger.debug(f"Listed {directory}: {len(entries)} entries")
        return Listing(current=current, files=tuple(entries))

    def _entry(self, display: str, name: str, path: str, current: str) -> Optional[Entry]:
        try:
            st = self._stat(path)
        except FileNotFoundError:
            logger.debug(f"Skipping vanished entry {path!r}")
            return None

        is_dir = stat.S_ISDIR(st.st_mode)

        return Entry(
            url=entry_url(current, name, is_dir),
            name=display + "/" if is_dir else display,
            size=0 if is_dir else st.st_size,
            type="directory" if is_dir else self.mime_resolver.listing_type(display),
            mtime=format_timestamp(st.st_mtime),
        )


def build_listing(directory: Union[str, Path, None], current: str) -> Listing:
    """Build a listing with the default MIME table."""
    return ListingBuilder().build(directory, current)
