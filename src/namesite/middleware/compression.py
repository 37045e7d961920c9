"""
=============================================================================
COMPRESSION MIDDLEWARE
=============================================================================

Gzips pages and JSON for clients that accept it.

    Client                          namesite
      │  GET /page1                    │
      │  Accept-Encoding: gzip, br     │
      │ ─────────────────────────────► │
      │                                │  page1.html  2.4 KB
      │                                │  gzip        0.9 KB
      │  Content-Encoding: gzip        │
      │  Vary: Accept-Encoding         │
      │ ◄───────────────────────────── │

A response is compressed only when ALL of these hold:

    - the request method is not HEAD (there is no body on the wire)
    - the client lists gzip in Accept-Encoding without q=0
    - the body is at least min_size bytes (default 1024)
    - the Content-Type is text-like (HTML, CSS, JS, JSON, SVG, ...)
    - the response is not already encoded
    - the gzipped body is actually smaller

Small JSON answers from /getName and /setName stay uncompressed; the
HTML views usually cross the threshold.

=============================================================================
"""

import gzip
import logging
from typing import Dict, FrozenSet, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# Binary formats (PNG, fonts, ...) are already compressed
TEXT_TYPES: FrozenSet[str] = frozenset({
    "text/html",
    "text/css",
    "text/plain",
    "text/javascript",
    "application/json",
    "application/javascript",
    "image/svg+xml",
})


def encoding_weights(accept_encoding: str) -> Dict[str, float]:
    """
    Accept-Encoding as {coding: q}; a malformed q counts as 0.

        >>> encoding_weights("gzip;q=0.5, br")
        {'gzip': 0.5, 'br': 1.0}
    """
    weights = {}
    for item in filter(None, (part.strip() for part in accept_encoding.lower().split(","))):
        coding, *params = (piece.strip() for piece in item.split(";"))
        q = 1.0
        for param in params:
            if param.startswith("q="):
                try:
                    q = float(param[2:])
                except ValueError:
                    q = 0.0
        weights[coding] = q
    return weights


def accepts_gzip(accept_encoding: str) -> bool:
    """
    Whether an Accept-Encoding value allows gzip, directly or through "*".

        >>> accepts_gzip("gzip;q=0, identity")
        False
    """
    weights = encoding_weights(accept_encoding)
    return weights.get("gzip", weights.get("*", 0.0)) > 0


class CompressionMiddleware(Middleware):
    """
    gzip Content-Encoding for text responses.

        pipeline.add(CompressionMiddleware())              # defaults
        pipeline.add(CompressionMiddleware(min_size=256))  # eager

    Args:
        min_size: Smallest body worth compressing, in bytes
        level: gzip level, 1 (fast) to 9 (small)
        compressible_types: Replaces TEXT_TYPES
    """

    def __init__(
        self,
        min_size: int = 1024,
        level: int = 6,
        compressible_types: Optional[FrozenSet[str]] = None,
    ):
        if level not in range(1, 10):
            raise ValueError(f"gzip level must be 1-9, got {level}")
        self.min_size = min_size
        self.level = level
        self.compressible_types = frozenset(compressible_types or TEXT_TYPES)

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = next(request)

        if not self._eligible(request, response):
            return response

        packed = gzip.compress(response.body, compresslevel=self.level)
        if len(packed) >= len(response.body):
            return response

        logger.debug(f"gzip {request.path}: {len(response.body)} → {len(packed)} bytes")
        response.body = packed
        response.headers["Content-Encoding"] = "gzip"
        response.headers["Content-Length"] = str(len(packed))
        _add_vary(response, "Accept-Encoding")
        return response

    def _eligible(self, request: HTTPRequest, response: HTTPResponse) -> bool:
        media_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
        return (
            request.method != "HEAD"
            and "Content-Encoding" not in response.headers
            and len(response.body) >= self.min_size
            and media_type in self.compressible_types
            and accepts_gzip(request.get_header("accept-encoding"))
        )


def _add_vary(response: HTTPResponse, header: str):
    current = response.headers.get("Vary", "")
    names = [name.strip().lower() for name in current.split(",")]
    if header.lower() not in names:
        response.headers["Vary"] = f"{current}, {header}" if current else header
