"""
=============================================================================
STATIC FILES MIDDLEWARE
=============================================================================

Serves the client directory under a URL prefix:

    GET /assets/style.css         →  client/style.css
    GET /assets/img/internet.png  →  client/img/internet.png
    GET /assets/                  →  client/index.html (if present)

=============================================================================
HIT, MISS, FORBIDDEN
=============================================================================

    ┌──────────────────────────────────────────────────────────────────┐
    │  request                         outcome                          │
    ├──────────────────────────────────────────────────────────────────┤
    │  GET /assets/style.css           200, file bytes                  │
    │  same, If-None-Match: <etag>     304, no body                     │
    │  GET /assets/nope.css            next(request) → 404 page         │
    │  POST /assets/style.css          next(request) → router           │
    │  GET /other                      next(request)                    │
    │  path resolving outside root     403                              │
    └──────────────────────────────────────────────────────────────────┘

A miss is NOT an error here: the request continues down the chain, so an
unknown asset ends at the "/*" route and gets the normal not-found page.

Resolution uses Path.resolve() and then checks the result is still inside
the root, so symlinks pointing elsewhere are refused as well as "..".

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, forbidden, send_file


logger = logging.getLogger(__name__)


class StaticFiles(Middleware):
    """
    Mount a directory at a URL prefix.

        pipeline.add(StaticFiles("client", prefix="/assets"))

    Only GET and HEAD are served; everything else passes through.
    """

    def __init__(
        self,
        root_dir: str | Path,
        prefix: str = "/",
        index_file: Optional[str] = "index.html",
        cache_max_age: int = 0,
    ):
        """
        Args:
            root_dir: Directory to serve; must exist
            prefix: URL prefix the directory is mounted at
            index_file: File served for directory requests, None to disable
            cache_max_age: Cache-Control max-age in seconds

        Raises:
            ValueError: root_dir is not a directory
        """
        self.root_dir = Path(root_dir).resolve()
        self.prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
        self.index_file = index_file
        self.cache_max_age = cache_max_age

        if not self.root_dir.is_dir():
            raise ValueError(f"Static root directory does not exist: {root_dir}")

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if request.method not in ("GET", "HEAD"):
            return next(request)

        relative = self._strip_prefix(request.path)
        if relative is None:
            return next(request)

        full_path = (self.root_dir / relative).resolve()
        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {request.path}")
            return forbidden("Access denied")

        if full_path.is_dir():
            if not self.index_file:
                return next(request)
            full_path = full_path / self.index_file

        if not full_path.is_file():
            return next(request)

        try:
            return send_file(full_path, request=request, max_age=self.cache_max_age)
        except PermissionError:
            return forbidden("Permission denied")

    def _strip_prefix(self, path: str) -> Optional[str]:
        """
        Path relative to the mount, or None when outside it.

            prefix "/assets":  "/assets/a.css" → "a.css"
                               "/assets"       → ""
                               "/assetsx"      → None
        """
        if not self.prefix:
            return path.lstrip("/")
        if path == self.prefix:
            return ""
        if path.startswith(self.prefix + "/"):
            return path[len(self.prefix) + 1:].lstrip("/")
        return None
