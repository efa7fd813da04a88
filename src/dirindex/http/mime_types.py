"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to MIME types. Two callers with two different
defaults use this table:

    ┌────────────────────────────────────────────────────────────────────┐
    │                    WHO ASKS FOR A MIME TYPE?                        │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │  SERVING A FILE (Content-Type header)                              │
    │  ──────────────────────────────────────────────────────────────── │
    │  get_content_type("photo.png")  → "image/png"                      │
    │  get_content_type("blob.xyz")   → "application/octet-stream"       │
    │  get_content_type("page.html")  → "text/html; charset=utf-8"       │
    │                                                                     │
    │  DIRECTORY LISTING ("Type" column)                                 │
    │  ──────────────────────────────────────────────────────────────── │
    │  listing_type("notes.txt")      → "text/plain"                     │
    │  listing_type("notes")          → "text/plain"   (no extension)    │
    │  listing_type("notes.xyz")      → "text/plain"   (unknown)         │
    │  listing_type("Photo.PNG")      → "image/png"    (case-insensitive)│
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

The table is keyed by the bare, lower-cased extension ("png", not ".png"),
because listings look types up by extension rather than by path.

=============================================================================
EXTENSION EXTRACTION
=============================================================================

An extension is a trailing ".<letters-or-digits>" suffix:

    "report.PDF"      → "pdf"
    "archive.tar.gz"  → "gz"
    "Makefile"        → None
    "notes.my-ext"    → None   (dash is not alphanumeric)
    ".bashrc"         → "bashrc"

=============================================================================
"""

import re
from pathlib import Path
from typing import Dict, Mapping, Optional


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================

MIME_TYPES: Dict[str, str] = {
    # -------------------------------------------------------------------------
    # TEXT TYPES
    # -------------------------------------------------------------------------
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "text/javascript",
    "mjs": "text/javascript",
    "json": "application/json",
    "xml": "application/xml",
    "txt": "text/plain",
    "md": "text/markdown",
    "csv": "text/csv",

    # -------------------------------------------------------------------------
    # IMAGE TYPES
    # -------------------------------------------------------------------------
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "webp": "image/webp",
    "avif": "image/avif",
    "bmp": "image/bmp",

    # -------------------------------------------------------------------------
    # FONT TYPES
    # -------------------------------------------------------------------------
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",

    # -------------------------------------------------------------------------
    # AUDIO / VIDEO TYPES
    # -------------------------------------------------------------------------
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    "mkv": "video/x-matroska",

    # -------------------------------------------------------------------------
    # DOCUMENT AND ARCHIVE TYPES
    # -------------------------------------------------------------------------
    "pdf": "application/pdf",
    "zip": "application/zip",
    "tar": "application/x-tar",
    "gz": "application/gzip",
    "7z": "application/x-7z-compressed",
    "wasm": "application/wasm",

    # -------------------------------------------------------------------------
    # SOURCE CODE TYPES
    # -------------------------------------------------------------------------
    # Served as text for viewing (not execution)
    #
    "py": "text/x-python",
    "c": "text/x-c",
    "h": "text/x-c",
    "rs": "text/x-rust",
    "go": "text/x-go",
    "sh": "text/x-shellscript",
    "yaml": "text/yaml",
    "yml": "text/yaml",
    "toml": "text/x-toml",
}

# Content-Type for served files with an unknown extension
DEFAULT_MIME_TYPE = "application/octet-stream"

# Extension assumed for listing entries that have none
DEFAULT_LISTING_EXTENSION = "txt"

# "Type" column value when the lookup itself fails
DEFAULT_LISTING_TYPE = "text/plain"

EXTENSION_PATTERN = re.compile(r"\.([0-9a-zA-Z]+)$")

# Application types that are text and get a charset parameter
_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
}


def extension_of(name: str | Path) -> Optional[str]:
    """
    Extract the lower-cased extension of a file name.

    Returns:
        The extension without its dot, or None when the name has no
        alphanumeric suffix.
    """
    match = EXTENSION_PATTERN.search(str(name))
    if not match:
        return None
    return match.group(1).lower()


class MimeResolver:
    """
    Lookup service from file extension to MIME type.

    The resolver is read-only once built. Extra types can be layered on top
    of the default table:

        resolver = MimeResolver({"epub": "application/epub+zip"})
        resolver.type("EPUB")    # "application/epub+zip"
        resolver.type("nope")    # None
    """

    def __init__(self, extra_types: Optional[Mapping[str, str]] = None):
        self._types: Dict[str, str] = dict(MIME_TYPES)
        for ext, mime in (extra_types or {}).items():
            self._types[ext.lstrip(".").lower()] = mime

    def type(self, extension: Optional[str]) -> Optional[str]:
        """Get the MIME type registered for an extension, or None."""
        if not extension:
            return None
        return self._types.get(extension.lstrip(".").lower())

    def detect(self, path: str | Path, default: Optional[str] = None) -> str:
        """Get the MIME type of a file from its name."""
        return self.type(extension_of(path)) or default or DEFAULT_MIME_TYPE

    def listing_type(self, path: str | Path) -> str:
        """
        Get the "Type" column value of a listing entry.

        Files without an extension are looked up as "txt"; anything the
        table does not know becomes "text/plain".
        """
        ext = extension_of(path) or DEFAULT_LISTING_EXTENSION
        return self.type(ext) or DEFAULT_LISTING_TYPE


# Shared default resolver (the table is never mutated after import)
default_resolver = MimeResolver()


# =============================================================================
# PUBLIC FUNCTIONS
# =============================================================================

def get_mime_type(path: str | Path, default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Examples:
        >>> get_mime_type("style.css")
        'text/css'

        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    return default_resolver.detect(path, default)


def is_text_type(mime_type: str) -> bool:
    """Check if a MIME type represents text content."""
    if mime_type.startswith("text/"):
        return True
    return mime_type in _TEXT_APPLICATION_TYPES


def get_content_type(path: str | Path, charset: str = "utf-8") -> str:
    """
    Get the full Content-Type header value for a file.

    Text types carry a charset parameter, binary types do not:

        >>> get_content_type("page.html")
        'text/html; charset=utf-8'

        >>> get_content_type("image.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type


def listing_type(path: str | Path) -> str:
    """Listing "Type" column value using the default resolver."""
    return default_resolver.listing_type(path)
