"""
=============================================================================
REQUEST CONTEXT
=============================================================================

Everything the dispatcher and a content handler need for one request:

    RequestContext
     ├── request   the parsed HTTPRequest
     └── state     ResponseState: the single response slot

A request gets EXACTLY ONE response. Whoever writes first (the custom
handler, or the built-in file/index/listing serving) wins; later writes
are refused and write() returns False:

    context.render_text("hello")      # True, response set
    context.render_text("again")      # False, first response kept

Handlers check `context.responded` to see whether someone already
answered.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


@dataclass
class ResponseState:
    """Holds at most one response."""

    response: Optional[HTTPResponse] = None

    @property
    def responded(self) -> bool:
        return self.response is not None

    @property
    def code(self) -> Optional[int]:
        """Status code of the written response, None before any write."""
        return int(self.response.status) if self.response is not None else None

    def write(self, response: HTTPResponse) -> bool:
        """
        Store the response unless one was already written.

        A refused response that streams a file is closed right away.
        """
        if self.response is not None:
            logger.debug(
                f"Response already written ({self.code}), "
                f"ignoring {int(response.status)}"
            )
            response.close()
            return False

        self.response = response
        return True


@dataclass
class RequestContext:
    """
    A request plus its response slot, with render helpers.

        def handler(context, path):
            if path.suffix == ".md":
                context.render_html(markdown(path.read_text()))
                return True
            return False
    """

    request: HTTPRequest
    state: ResponseState = field(default_factory=ResponseState)

    @property
    def responded(self) -> bool:
        return self.state.responded

    @property
    def response(self) -> Optional[HTTPResponse]:
        return self.state.response

    def reply(self, response: HTTPResponse) -> bool:
        return self.state.write(response)

    def render_text(self, text: str, status: HTTPStatus = HTTPStatus.OK) -> bool:
        return self.reply(ResponseBuilder().status(status).text(text).build())

    def render_html(self, html: str, status: HTTPStatus = HTTPStatus.OK) -> bool:
        return self.reply(ResponseBuilder().status(status).html(html).build())

    def render_json(self, data: Any, status: HTTPStatus = HTTPStatus.OK) -> bool:
        return self.reply(ResponseBuilder().status(status).json(data).build())

    def render_file(self, path: Union[str, Path], content_type: Optional[str] = None) -> bool:
        """
        Stream a file. Nothing is opened when a response already exists.

        Raises:
            OSError: The file cannot be opened.
        """
        if self.responded:
            logger.debug(f"Response already written, not serving {path}")
            return False
        return self.reply(ResponseBuilder().file_stream(path, content_type).build())
