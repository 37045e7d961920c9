"""
=============================================================================
URL ROUTER
=============================================================================

Ordered route table mapping (method, path) to a handler.

=============================================================================
THE NAMESITE ROUTE TABLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   #  METHOD  PATTERN     HANDLER                                     │
    │   ─  ──────  ──────────  ──────────────                              │
    │   1  GET     /page1      page1                                       │
    │   2  GET     /page2      page2                                       │
    │   3  GET     /getName    get_name                                    │
    │   4  GET     /           index                                       │
    │   5  GET     /*          not_found    ← catches every other GET      │
    │   6  POST    /setName    set_name                                    │
    └─────────────────────────────────────────────────────────────────────┘

Bindings are scanned in registration order and the FIRST match wins.
There is no "most specific route" reordering: /getName works only because
it is registered before the /* wildcard.

=============================================================================
ROUTE PATTERNS
=============================================================================

1. EXACT PATHS

   Pattern: /page1
   Matches: /page1, /page1/  (one trailing slash is ignored)
   Misses:  //page1, /page%31, /page1//

   Matching runs on the path as the client sent it; percent-escapes are
   decoded only in the captured parameters.

2. PREFIX WILDCARD (trailing *)

   Pattern: /*          Matches: /, /anything, /a/b/c
   Pattern: /files*     Matches: /files, /files.txt, /files/x

   The wildcard matches zero or more characters, so /* matches "/".

3. NAMED PARAMETERS

   Pattern: /users/:id        /users/42      → {"id": "42"}
   Pattern: /static/*path     /static/a/b.js → {"path": "a/b.js"}

=============================================================================
WHAT HAPPENS WHEN NOTHING MATCHES
=============================================================================

    GET  /anything   → never happens here, binding 5 catches it
    POST /page1      → 404 {"error": "Cannot POST /page1"}
    PUT  /setName    → 404 {"error": "Cannot PUT /setName"}

No 405 is produced: a path registered for another method is treated the
same as a path that does not exist.

HEAD requests use GET bindings when no HEAD binding exists; the server
drops the body before writing.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
import logging
import re
from urllib.parse import unquote

from .request import HTTPRequest
from .response import HTTPResponse, ResponseBuilder
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


Handler = Callable[[HTTPRequest], HTTPResponse]


def compile_path(path: str) -> re.Pattern:
    """
    Translate a route pattern into a regex for fullmatch().

        "/"                 →  /
        "/page1"            →  /page1
        "/users/:id"        →  /users/(?P<id>[^/]+)
        "/static/*path"     →  /static/(?P<path>.*)
        "/*"                →  /(?P<wildcard>.*)
        "/files*"           →  /files(?P<wildcard>.*)

    Everything after the first wildcard segment is ignored.
    """
    regex = ""
    for segment in filter(None, path.split("/")):
        if segment.startswith(":"):
            regex += f"/(?P<{segment[1:]}>[^/]+)"
        elif "*" in segment:
            literal, _, capture = segment.partition("*")
            regex += f"/{re.escape(literal)}(?P<{capture or 'wildcard'}>.*)"
            break
        else:
            regex += "/" + re.escape(segment)
    return re.compile(regex or "/")


@dataclass
class Route:
    """
    One route binding; method None accepts any method.

        Route(path="/getName", method="GET", handler=get_name)
    """

    path: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None
    pattern: re.Pattern = field(init=False, repr=False)

    def __post_init__(self):
        self.pattern = compile_path(self.path)

    def accepts(self, method: str) -> bool:
        return self.method is None or self.method == method

    def captures(self, path: str) -> Optional[Dict[str, str]]:
        """Named captures, percent-decoded, when path matches; else None."""
        found = self.pattern.fullmatch(path)
        if found is None:
            return None
        return {name: unquote(value) for name, value in found.groupdict().items()}


@dataclass
class RouteMatch:
    """The matched route plus the named captures from its pattern."""
    route: Route
    params: Dict[str, str]


class Router:
    """
    First-match-wins router.

        router = Router()

        @router.get("/getName")
        def get_name(request):
            return ResponseBuilder().json({"name": "unknown"}).build()

        router.handle(request)

    The table is append-only and built once at startup.
    """

    def __init__(self):
        self._table: List[Route] = []

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        """Append a binding; ``name`` defaults to the handler's __name__."""
        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name or getattr(handler, "__name__", None),
        )
        self._table.append(route)
        logger.debug(f"Route added: {route.method or 'ANY'} {path} → {route.name}")
        return route

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        First binding accepting method and path, or None.

        Paths compare as sent, percent-escapes included. One trailing
        slash is ignored. HEAD falls back to GET bindings when no HEAD
        binding matches.
        """
        method = method.upper()
        if len(path) > 1 and path.endswith("/"):
            path = path[:-1]

        for candidate in self._fallbacks(method):
            for route in self._table:
                if not route.accepts(candidate):
                    continue
                params = route.captures(path)
                if params is not None:
                    return RouteMatch(route=route, params=params)
        return None

    @staticmethod
    def _fallbacks(method: str) -> Tuple[str, ...]:
        return (method, "GET") if method == "HEAD" else (method,)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Call the matched handler with request.path_params set, or answer
        404 {"error": "Cannot <METHOD> <path>"}.
        """
        found = self.match(request.method, request.route_path)
        if found is None:
            return (ResponseBuilder()
                .status(HTTPStatus.NOT_FOUND)
                .json({"error": f"Cannot {request.method} {request.path}"})
                .build())

        request.path_params = found.params
        return found.route.handler(request)

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        def register(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name)
            return handler
        return register

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """GET binding; it also answers HEAD."""
        return self.route(path, "GET", name)

    def post(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "POST", name)

    def routes(self) -> List[Route]:
        return list(self._table)

    def __len__(self) -> int:
        return len(self._table)
