"""
=============================================================================
MIDDLEWARE
=============================================================================

Request/response processing that wraps the router. See base.py for the
onion diagram and the order namesite installs these in.

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, FunctionMiddleware, NextHandler
from .logging import LoggingMiddleware
from .static import StaticFiles
from .compression import CompressionMiddleware
from .body_parser import BodyParser, parse_form
from .favicon import FaviconMiddleware

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "NextHandler",
    "LoggingMiddleware",
    "StaticFiles",
    "CompressionMiddleware",
    "BodyParser",
    "parse_form",
    "FaviconMiddleware",
]
