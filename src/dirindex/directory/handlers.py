"""
=============================================================================
CONTENT HANDLERS
=============================================================================

A content handler gets first refusal on EVERY request the plugin sees,
before any file, index or listing is served, for files, directories and
missing paths alike:

    handler.handle(context, path)
        context   RequestContext; write a response through it to take over
        path      absolute filesystem path the URL resolves to (may not exist)

Writing a response is what counts. The boolean return value only reports
it; the dispatcher reads the response slot, not the return value.

    class MarkdownHandler(ContentHandler):
        def handle(self, context, path):
            if path.suffix != ".md" or not path.is_file():
                return False
            return context.render_html(markdown(path.read_text()))

Plain callables work too and are wrapped in FunctionHandler:

    def handler(context, path):
        ...

    DirectoryConfig(root="./public", handler=handler)

=============================================================================
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Optional

from .context import RequestContext


HandlerFunc = Callable[[RequestContext, Path], Any]


class ContentHandler(ABC):
    """Base class for content handlers."""

    @abstractmethod
    def handle(self, context: RequestContext, path: Path) -> bool:
        """Optionally write a response for path. Returns True if it did."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class FunctionHandler(ContentHandler):
    """A plain function (context, path) as a ContentHandler."""

    def __init__(self, func: HandlerFunc, name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", repr(func))

    def handle(self, context: RequestContext, path: Path) -> bool:
        self._func(context, path)
        return context.responded

    @property
    def name(self) -> str:
        return self._name


def as_handler(handler: Any) -> Optional[ContentHandler]:
    """
    Adapt the configured handler: None stays None, ContentHandler
    instances pass through, callables are wrapped.

    Raises:
        TypeError: Neither a ContentHandler nor callable.
    """
    if handler is None or isinstance(handler, ContentHandler):
        return handler
    if hasattr(handler, "handle") and callable(handler.handle):
        return FunctionHandler(handler.handle, name=type(handler).__name__)
    if callable(handler):
        return FunctionHandler(handler)
    raise TypeError(f"Not a content handler: {handler!r}")
