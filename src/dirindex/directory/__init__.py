"""
=============================================================================
DIRECTORY SERVING
=============================================================================

    resolver.py    URL path → filesystem path under the root (+ kind)
    index.py       first existing index file of a directory
    listing.py     directory → Listing of Entry rows
    responder.py   Listing → HTML (Jinja2) or JSON response
    context.py     RequestContext / ResponseState (one response per request)
    handlers.py    ContentHandler strategy for custom content
    dispatcher.py  RequestDispatcher tying it all together
    errors.py      DirectoryIndexError, InvalidPathError, HandlerError

=============================================================================
"""

from .errors import DirectoryIndexError, InvalidPathError, HandlerError
from .resolver import PathResolver, ResolvedTarget, TargetKind, resolve, is_root_file
from .index import IndexLocator, locate
from .listing import Entry, Listing, ListingBuilder, build_listing
from .context import RequestContext, ResponseState
from .handlers import ContentHandler, FunctionHandler
from .responder import Responder, negotiate
from .dispatcher import RequestDispatcher, DispatchOutcome


__all__ = [
    "DirectoryIndexError",
    "InvalidPathError",
    "HandlerError",
    "PathResolver",
    "ResolvedTarget",
    "TargetKind",
    "resolve",
    "is_root_file",
    "IndexLocator",
    "locate",
    "Entry",
    "Listing",
    "ListingBuilder",
    "build_listing",
    "RequestContext",
    "ResponseState",
    "ContentHandler",
    "FunctionHandler",
    "Responder",
    "negotiate",
    "RequestDispatcher",
    "DispatchOutcome",
]
