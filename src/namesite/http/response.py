"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serialises them for the socket.

=============================================================================
THE THREE KINDS OF RESPONSE THIS APP SENDS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   FILE   send_file(views / "page1.html")                             │
    │          → Content-Type from extension, ETag, Last-Modified          │
    │                                                                      │
    │   JSON   ResponseBuilder().json({"name": "Ada Lovelace"})            │
    │          → application/json; charset=utf-8                          │
    │                                                                      │
    │   ERROR  error_response(...), forbidden(...), internal_error()       │
    │          → JSON body {"error": ...} with the matching status         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Handlers return an HTTPResponse. Middleware may modify it on the way out
(compression rewrites the body, logging adds X-Request-ID), and the server
finally calls to_bytes() to put it on the wire.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union
import json

from .status_codes import HTTPStatus
from .mime_types import get_content_type


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be sent.

        HTTPResponse(status=200, headers={...}, body=b"...")
                │
                ▼  to_bytes()
        b"HTTP/1.1 200 OK\\r\\nContent-Type: ...\\r\\n\\r\\n..."
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        status = HTTPStatus(self.status)
        return f"{self.version} {status.value} {status.phrase}"

    @property
    def json(self) -> Any:
        """The body decoded as JSON."""
        return json.loads(self.body)

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "namesite", include_body: bool = True) -> bytes:
        """
        Serialise the response.

        Content-Length, Date and Server are added unless already set.
        With include_body=False (HEAD) the head still describes the body a
        GET would have carried.
        """
        fields = {
            "Content-Length": str(len(self.body)),
            "Date": format_http_date(datetime.now(timezone.utc)),
            "Server": server_name,
        }
        fields.update(self.headers)

        head = self.status_line + "\r\n"
        head += "".join(f"{name}: {value}\r\n" for name, value in fields.items())
        head += "\r\n"
        return head.encode("utf-8") + (self.body if include_body else b"")


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.BAD_REQUEST)
            .json({"error": "...", "id": "setNameMissingParams"})
            .build())
    """

    def __init__(self):
        self._response = HTTPResponse()

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._response.status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._response.headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body; str is encoded as UTF-8. Content-Type is left alone."""
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._response.body = body
        return self

    def _payload(self, body: bytes, content_type: str) -> "ResponseBuilder":
        return self.body(body).content_type(content_type)

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        return self._payload(text.encode("utf-8"), content_type)

    def html(self, html: str) -> "ResponseBuilder":
        return self._payload(html.encode("utf-8"), "text/html; charset=utf-8")

    def json(self, data: Any) -> "ResponseBuilder":
        # Names such as "José Martí" go out as UTF-8, not \u escapes
        encoded = json.dumps(data, ensure_ascii=False).encode("utf-8")
        return self._payload(encoded, "application/json; charset=utf-8")

    def file(self, content: bytes, filename: Union[str, Path]) -> "ResponseBuilder":
        return self._payload(content, get_content_type(filename))

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        return self.header("Cache-Control", f"public, max-age={max_age}")

    def build(self) -> HTTPResponse:
        return self._response


# =============================================================================
# FILE RESPONSES
# =============================================================================

def file_etag(path: Path) -> str:
    """
    Validator for one version of a file: "<mtime>-<size>".

    send_file, the static middleware and the favicon all use it, so a file
    has the same ETag whichever way it is served.
    """
    info = Path(path).stat()
    return f'"{int(info.st_mtime)}-{info.st_size}"'


def send_file(
    path: Union[str, Path],
    request: Optional[Any] = None,
    status: HTTPStatus = HTTPStatus.OK,
    max_age: int = 0,
) -> HTTPResponse:
    """
    Read a file from disk and wrap it in a response.

        Content-Type     from the extension (views are text/html)
        ETag             "<mtime>-<size>"
        Last-Modified    file mtime as an HTTP-date
        Cache-Control    public, max-age=<max_age>

    A 2xx file whose ETag matches the request's If-None-Match becomes a
    bodiless 304. The not-found page (status 404) is always sent in full.

    Raises:
        FileNotFoundError: Handlers let it propagate; the server answers 500.
    """
    path = Path(path)
    content = path.read_bytes()
    etag = file_etag(path)
    status = HTTPStatus(status)

    if (
        request is not None
        and status.is_success
        and request.headers.get("if-none-match") == etag
    ):
        return ResponseBuilder().status(HTTPStatus.NOT_MODIFIED).header("ETag", etag).build()

    modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    return (ResponseBuilder()
        .status(status)
        .file(content, path)
        .header("ETag", etag)
        .header("Last-Modified", format_http_date(modified))
        .cache(max_age)
        .build())


def format_http_date(moment: datetime) -> str:
    """RFC 7231 HTTP-date, e.g. "Thu, 15 Jan 2026 12:30:45 GMT"."""
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


# =============================================================================
# ERROR RESPONSES
# =============================================================================

def error_response(status: HTTPStatus, message: str, **extra: Any) -> HTTPResponse:
    """JSON body {"error": message, **extra} with the given status."""
    return ResponseBuilder().status(status).json({"error": message, **extra}).build()


def forbidden(message: str = "Forbidden") -> HTTPResponse:
    return error_response(HTTPStatus.FORBIDDEN, message)


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500 with a generic message; details belong in the log."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
