"""
=============================================================================
URL ROUTER
=============================================================================

The router is what runs when no before-dispatch hook answered a request:

    GET /docs/            → directory plugin answers (listing)
    GET /api/status       → no file there, plugin passes → router
    GET /no/such/thing    → plugin passes → router → 404
    PUT /upload           → only POST registered → 405 + Allow

Patterns:

    /status               static, exact match
    /files/:name          one segment   → {"name": "a.txt"}
    /raw/*filepath        rest of path  → {"filepath": "a/b.txt"}

Each pattern becomes one anchored regex; routes are tried in
registration order and the first match wins.

    /files/:name/meta  →  ^/files/(?P<name>[^/]+)/meta$

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .request import HTTPRequest
from .response import HTTPResponse, method_not_allowed, not_found


Handler = Callable[[HTTPRequest], HTTPResponse]

# ":name" captures one segment, "*name" the rest of the path
_PARAM = re.compile(r"/([:*])(\w*)")


def compile_pattern(path: str) -> re.Pattern:
    """Turn a route pattern into an anchored regex with named groups."""
    path = normalize_path(path)
    regex, pos = [], 0

    for match in _PARAM.finditer(path):
        regex.append(re.escape(path[pos:match.start()]))
        kind, name = match.groups()
        if kind == ":":
            regex.append(f"/(?P<{name}>[^/]+)")
        else:
            regex.append(f"/(?P<{name or 'wildcard'}>.*)")
            pos = len(path)
            break
        pos = match.end()

    regex.append(re.escape(path[pos:]))
    return re.compile("^" + "".join(regex) + "$")


def normalize_path(path: str) -> str:
    """"/a/b/" and "a/b" both become "/a/b"; the root stays "/"."""
    stripped = path.strip("/")
    return "/" + stripped if stripped else "/"


@dataclass
class Route:
    """A URL pattern bound to a handler; method None accepts any method."""

    path: str
    method: Optional[str]
    handler: Handler
    meta: Dict[str, Any] = field(default_factory=dict)
    pattern: re.Pattern = field(init=False, repr=False)

    def __post_init__(self):
        if self.method:
            self.method = self.method.upper()
        self.pattern = compile_pattern(self.path)

    def accepts(self, method: str) -> bool:
        return self.method is None or self.method == method.upper()


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """
    Method + path → handler, with 404 and 405 fallbacks.

        router = Router()

        @router.get("/status")
        def status(request):
            return ok({"status": "up"})
    """

    ALL_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]

    def __init__(self):
        self._routes: List[Route] = []

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        **meta: Any
    ) -> Route:
        route = Route(path=path, method=method, handler=handler, meta=meta)
        self._routes.append(route)
        return route

    def _candidates(self, path: str):
        path = normalize_path(path)
        for route in self._routes:
            match = route.pattern.match(path)
            if match:
                yield route, match

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        for route, match in self._candidates(path):
            if route.accepts(method):
                return RouteMatch(route=route, params=match.groupdict())
        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods registered for a path; feeds the Allow header of a 405."""
        methods = set()
        for route, _ in self._candidates(path):
            if route.method is None:
                return list(self.ALL_METHODS)
            methods.add(route.method)
        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        found = self.match(request.method, request.path)
        if found is not None:
            request.path_params = found.params
            return found.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)
        return not_found(f"No route matches {request.path}")

    # =========================================================================
    # DECORATORS
    # =========================================================================

    def route(self, path: str, method: Optional[str] = None, **meta: Any):
        def register(handler: Handler) -> Handler:
            self.add_route(path, handler, method, **meta)
            return handler
        return register

    def get(self, path: str, **meta: Any):
        return self.route(path, "GET", **meta)

    def post(self, path: str, **meta: Any):
        return self.route(path, "POST", **meta)

    def head(self, path: str, **meta: Any):
        return self.route(path, "HEAD", **meta)

    def routes(self) -> List[Route]:
        return list(self._routes)
