"""
=============================================================================
FAVICON MIDDLEWARE
=============================================================================

Answers /favicon.ico from memory before the request reaches the router.

Browsers ask for /favicon.ico on every page view. Without this middleware
each of those requests would fall through to the "/*" route and log a
not-found page.

    ┌─────────────────────────────────────────────────────────────────┐
    │  GET/HEAD /favicon.ico        200 image/x-icon, cached 1 year   │
    │  ... with If-None-Match       304                               │
    │  OPTIONS  /favicon.ico        200, Allow: GET, HEAD, OPTIONS    │
    │  other    /favicon.ico        405, Allow: GET, HEAD, OPTIONS    │
    │  anything else                next(request)                     │
    └─────────────────────────────────────────────────────────────────┘

The icon is read once at construction. A missing file is a startup error,
not a per-request one.

=============================================================================
"""

import hashlib
import logging
from pathlib import Path

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


FAVICON_PATH = "/favicon.ico"
ONE_YEAR = 60 * 60 * 24 * 365
ALLOWED = "GET, HEAD, OPTIONS"


class FaviconMiddleware(Middleware):
    """
    Serve a favicon file.

        pipeline.add(FaviconMiddleware("client/img/favicon.png"))
    """

    def __init__(self, icon_path: str | Path, max_age: int = ONE_YEAR):
        """
        Args:
            icon_path: Image file to serve (any format; sent as image/x-icon)
            max_age: Cache-Control max-age in seconds

        Raises:
            FileNotFoundError: icon_path does not exist
            IsADirectoryError: icon_path is a directory
        """
        path = Path(icon_path)
        if path.is_dir():
            raise IsADirectoryError(f"Favicon path is a directory: {path}")

        self.icon = path.read_bytes()
        self.max_age = max_age
        self.etag = '"' + hashlib.md5(self.icon).hexdigest() + '"'
        logger.debug(f"Loaded favicon {path} ({len(self.icon)} bytes)")

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if request.path != FAVICON_PATH:
            return next(request)

        if request.method not in ("GET", "HEAD"):
            status = (HTTPStatus.OK if request.method == "OPTIONS"
                      else HTTPStatus.METHOD_NOT_ALLOWED)
            return (ResponseBuilder()
                .status(status)
                .header("Allow", ALLOWED)
                .build())

        if request.headers.get("if-none-match", "") == self.etag:
            return (ResponseBuilder()
                .status(HTTPStatus.NOT_MODIFIED)
                .header("ETag", self.etag)
                .build())

        return (ResponseBuilder()
            .content_type("image/x-icon")
            .header("ETag", self.etag)
            .cache(self.max_age)
            .body(self.icon)
            .build())
