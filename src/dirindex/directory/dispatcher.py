"""
=============================================================================
REQUEST DISPATCHER
=============================================================================

Decides what a request for a path under the document root gets:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         DISPATCH FLOW                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   root is a file? ── yes ──► serve it                   ROOT_FILE    │
    │        │ no                                                          │
    │        ▼                                                             │
    │   resolve path ── escapes root / NUL ──► 403            REJECTED     │
    │        │                                                             │
    │        ▼                                                             │
    │   content handler configured? ── call it first                       │
    │        │                         wrote a response? ──►  HANDLED      │
    │        ▼                                                             │
    │   FILE ──────────────────────────► stream it             FILE        │
    │   DIRECTORY ── index file found ──► stream it             INDEX      │
    │             └─ otherwise ─────────► listing (HTML/JSON)   LISTING    │
    │   MISSING ───────────────────────► nothing written       UNHANDLED   │
    │                                    (the router answers 404)          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every write goes through the request's ResponseState, so a request is
answered at most once, whatever the handler did.

Filesystem errors (PermissionError and friends) are not caught here: they
propagate to the server, which answers 500 and logs the traceback.

=============================================================================
"""

import logging
import os
from enum import Enum
from typing import Optional

from ..config import DirectoryConfig
from ..http.response import forbidden
from .context import RequestContext
from .errors import HandlerError, InvalidPathError
from .handlers import ContentHandler, as_handler
from .index import IndexLocator
from .listing import ListingBuilder
from .resolver import PathResolver, ResolvedTarget
from .responder import Responder


logger = logging.getLogger(__name__)


class DispatchOutcome(Enum):
    ROOT_FILE = "root_file"
    HANDLED = "handled"
    FILE = "file"
    INDEX = "index"
    LISTING = "listing"
    UNHANDLED = "unhandled"
    REJECTED = "rejected"

    @property
    def responded(self) -> bool:
        return self is not DispatchOutcome.UNHANDLED


class RequestDispatcher:
    """
    Per-request orchestration for one DirectoryConfig.

    Collaborators default to ones built from the config and can be
    replaced (tests pass fakes):

        dispatcher = RequestDispatcher(config)
        context = RequestContext(request)
        outcome = dispatcher.dispatch(context)
        response = context.response     # None for UNHANDLED
    """

    def __init__(
        self,
        config: DirectoryConfig,
        responder: Optional[Responder] = None,
        resolver: Optional[PathResolver] = None,
        locator: Optional[IndexLocator] = None,
        builder: Optional[ListingBuilder] = None,
    ):
        self.config = config
        self.handler: Optional[ContentHandler] = as_handler(config.handler)
        self.resolver = resolver or PathResolver(config.root)
        self.locator = locator or IndexLocator(config.dir_index)
        self.builder = builder or ListingBuilder()
        self.responder = responder or Responder.from_config(config)

    def dispatch(self, context: RequestContext) -> DispatchOutcome:
        """
        Handle one request, writing at most one response into context.

        Raises:
            HandlerError: The content handler raised.
            OSError: A file or directory could not be read.
        """
        request = context.request

        if self.resolver.root_is_file:
            context.render_file(self.resolver.root)
            return self._done(context, DispatchOutcome.ROOT_FILE)

        try:
            target = self.resolver.resolve(request.raw_path)
        except InvalidPathError as e:
            logger.warning(f"Rejected {request.method} {request.raw_path!r}: {e}")
            context.reply(forbidden("Access denied"))
            return self._done(context, DispatchOutcome.REJECTED)

        if self.handler is not None:
            self._call_handler(context, target)
            if context.responded:
                return self._done(context, DispatchOutcome.HANDLED)

        if target.is_file:
            context.render_file(target.path)
            return self._done(context, DispatchOutcome.FILE)

        if target.is_dir:
            index = self.locator.locate(target.path)
            if index is not None and os.path.isfile(index):
                context.render_file(index)
                return self._done(context, DispatchOutcome.INDEX)

            listing = self.builder.build(target.path, target.display_path)
            context.reply(
                self.responder.respond(request, listing, self.config.enable_json)
            )
            return self._done(context, DispatchOutcome.LISTING)

        return self._done(context, DispatchOutcome.UNHANDLED)

    def _call_handler(self, context: RequestContext, target: ResolvedTarget) -> None:
        try:
            self.handler.handle(context, target.path)
        except Exception as e:
            # A file the handler opened before failing is never sent
            if context.response is not None:
                context.response.close()
            raise HandlerError(
                f"Content handler {self.handler.name} failed for {target.display_path}: {e}",
                path=str(target.path),
            ) from e

    def _done(self, context: RequestContext, outcome: DispatchOutcome) -> DispatchOutcome:
        logger.debug(
            f"{context.request.method} {context.request.path} -> {outcome.name}"
            f" ({context.state.code})"
        )
        return outcome
