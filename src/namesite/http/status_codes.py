"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server actually produces, with their reason phrases.

    ┌───────────┬──────────────────────────────────────────────────────────┐
    │  Range    │ Where namesite uses it                                   │
    ├───────────┼──────────────────────────────────────────────────────────┤
    │  2xx      │ pages, /getName, /setName, static assets, favicon        │
    │  3xx      │ 304 Not Modified for views, assets and the favicon       │
    │  4xx      │ not-found page, setName validation, parser rejections    │
    │  5xx      │ handler crashes, overloaded worker pool                  │
    └───────────┴──────────────────────────────────────────────────────────┘

HTTPStatus is an IntEnum so it compares equal to plain integers:

    >>> HTTPStatus.NOT_FOUND == 404
    True
    >>> HTTPStatus.NOT_FOUND.phrase
    'Not Found'

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """Status code plus the reason phrase sent after it on the status line."""

    def __new__(cls, code: int, phrase: str):
        member = int.__new__(cls, code)
        member._value_ = code
        member.phrase = phrase
        return member

    OK = 200, "OK"

    NOT_MODIFIED = 304, "Not Modified"

    BAD_REQUEST = 400, "Bad Request"
    FORBIDDEN = 403, "Forbidden"
    NOT_FOUND = 404, "Not Found"
    METHOD_NOT_ALLOWED = 405, "Method Not Allowed"
    REQUEST_TIMEOUT = 408, "Request Timeout"
    PAYLOAD_TOO_LARGE = 413, "Payload Too Large"
    UNSUPPORTED_MEDIA_TYPE = 415, "Unsupported Media Type"

    INTERNAL_SERVER_ERROR = 500, "Internal Server Error"
    SERVICE_UNAVAILABLE = 503, "Service Unavailable"
    HTTP_VERSION_NOT_SUPPORTED = 505, "HTTP Version Not Supported"

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300
