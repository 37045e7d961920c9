"""
=============================================================================
HTTP LAYER
=============================================================================

Everything between raw socket bytes and application handlers:

    bytes ──► RequestParser ──► HTTPRequest ──► Router ──► handler
                                                              │
    bytes ◄── HTTPResponse.to_bytes() ◄── HTTPResponse ◄──────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    send_file,
    file_etag,
    format_http_date,
    error_response,
    forbidden,
    internal_error,
)
from .router import Router, Route, RouteMatch
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    # Requests
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "send_file",
    "file_etag",
    "format_http_date",
    "error_response",
    "forbidden",
    "internal_error",

    # Routing
    "Router",
    "Route",
    "RouteMatch",

    "HTTPStatus",
    "get_mime_type",
    "get_content_type",
]
