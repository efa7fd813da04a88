"""
=============================================================================
LISTING RESPONDER
=============================================================================

Turns a Listing into an HTTP response, as HTML or JSON:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       FORMAT NEGOTIATION                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │  enable_json off                        → HTML, always              │
    │  ?format=json                           → JSON                      │
    │  ?format=<anything else>                → HTML                      │
    │  Accept prefers application/json        → JSON                      │
    │  anything else (browsers, */*, none)    → HTML                      │
    └─────────────────────────────────────────────────────────────────────┘

HTML is rendered with Jinja2. Template files are named
"<name>.<format>.<handler>", so with the defaults:

    dir_template="list"  →  list.html.j2
    css="style"          →  style.html.j2
                            layouts/default.html.j2 (extended by list)

User template directories are searched before the bundled templates, so a
file named list.html.j2 there replaces the built-in page. Templates get:

    files     list of entry dicts (url, name, size, type, mtime)
    current   the decoded URL path
    css       file name of the style template, for {% include css %}

Autoescaping is on: file names are never trusted as markup.

=============================================================================
"""

import logging
from typing import Optional, Sequence

import jinja2

from ..config import DirectoryConfig
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from .listing import Listing


logger = logging.getLogger(__name__)


JSON_TYPE = "application/json"
HTML_TYPES = ("text/html", "application/xhtml+xml")


def _accept_quality(accept: str) -> dict[str, float]:
    """Parse an Accept header into {media-range: q}."""
    qualities: dict[str, float] = {}

    for item in accept.split(","):
        media, _, params = item.strip().partition(";")
        media = media.strip().lower()
        if not media:
            continue

        q = 1.0
        for param in params.split(";"):
            key, _, value = param.strip().partition("=")
            if key.strip() == "q":
                try:
                    q = float(value)
                except ValueError:
                    q = 0.0

        qualities[media] = max(q, qualities.get(media, 0.0))

    return qualities


def prefers_json(accept: str) -> bool:
    """
    True if the Accept header ranks application/json above HTML.

        "application/json"                    → True
        "text/html,application/json;q=0.9"    → False
        "*/*"                                 → False
    """
    if not accept:
        return False

    qualities = _accept_quality(accept)
    json_q = qualities.get(JSON_TYPE, qualities.get("application/*", 0.0))
    html_q = max(
        [qualities.get(t, 0.0) for t in HTML_TYPES] + [qualities.get("text/*", 0.0)]
    )
    return json_q > 0 and json_q > html_q


def negotiate(request: HTTPRequest, enable_json: bool) -> str:
    """Pick "json" or "html" for a listing response."""
    if not enable_json:
        return "html"

    requested = request.get_query("format")
    if requested is not None:
        return "json" if requested.lower() == "json" else "html"

    return "json" if prefers_json(request.accept) else "html"


def create_environment(template_dirs: Sequence[str] = ()) -> jinja2.Environment:
    """Jinja2 environment over user directories, then the bundled templates."""
    loaders: list[jinja2.BaseLoader] = []
    if template_dirs:
        loaders.append(jinja2.FileSystemLoader(list(template_dirs)))
    loaders.append(jinja2.PackageLoader("dirindex", "templates"))

    return jinja2.Environment(
        loader=jinja2.ChoiceLoader(loaders),
        autoescape=True,
        keep_trailing_newline=True,
    )


class Responder:
    """
    Renders listings.

        responder = Responder.from_config(config)
        response = responder.respond(request, listing, enable_json=True)
    """

    def __init__(
        self,
        template: str = "list",
        css: str = "style",
        template_format: str = "html",
        template_handler: str = "j2",
        template_dirs: Sequence[str] = (),
        environment: Optional[jinja2.Environment] = None,
    ):
        self.template = template
        self.css = css
        self.template_format = template_format
        self.template_handler = template_handler
        self.env = environment or create_environment(template_dirs)

    @classmethod
    def from_config(cls, config: DirectoryConfig) -> "Responder":
        return cls(
            template=config.dir_template,
            css=config.css,
            template_format=config.template_format,
            template_handler=config.template_handler,
            template_dirs=config.template_dirs,
        )

    def template_name(self, name: str) -> str:
        return f"{name}.{self.template_format}.{self.template_handler}"

    def render_html(self, listing: Listing) -> str:
        """
        Raises:
            jinja2.TemplateNotFound: The listing or style template is missing.
        """
        template = self.env.get_template(self.template_name(self.template))
        return template.render(
            files=[entry.to_dict() for entry in listing.files],
            current=listing.current,
            css=self.template_name(self.css),
        )

    def render_json(self, listing: Listing) -> HTTPResponse:
        return ResponseBuilder().json(listing.to_dict()).build()

    def respond(
        self,
        request: HTTPRequest,
        listing: Listing,
        enable_json: bool = False,
    ) -> HTTPResponse:
        fmt = negotiate(request, enable_json)
        logger.debug(f"Rendering listing of {listing.current} as {fmt}")

        if fmt == "json":
            response = self.render_json(listing)
        else:
            response = ResponseBuilder().html(self.render_html(listing)).build()

        if enable_json:
            # Same URL, different bodies depending on Accept
            response.set_header("Vary", "Accept")
        return response
