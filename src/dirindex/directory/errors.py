"""
Errors raised by the directory plugin.

    DirectoryIndexError
     ├── InvalidPathError   request path escapes the document root → 403
     └── HandlerError       the custom content handler raised → 500

Filesystem failures (permission denied, I/O errors) are not wrapped: they
propagate as the OSError the operating system raised.
"""

from typing import Optional


class DirectoryIndexError(Exception):
    """Base class for directory plugin errors."""


class InvalidPathError(DirectoryIndexError):
    """
    The request path cannot be mapped inside the document root.

    Raised for paths that climb above the root ("/../etc/passwd") or that
    contain a NUL byte.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class HandlerError(DirectoryIndexError):
    """
    The configured content handler raised an exception.

    The original exception is available as __cause__.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
