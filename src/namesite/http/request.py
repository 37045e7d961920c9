"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes read from a connection into an HTTPRequest.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     WHAT THE PARSER SEES                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   POST /setName HTTP/1.1\r\n               ← request line            │
    │   Host: localhost:3000\r\n                 ┐                         │
    │   Content-Type: application/x-www-...\r\n  ├ headers                 │
    │   Content-Length: 31\r\n                   ┘                         │
    │   \r\n                                     ← separator               │
    │   firstname=Ada&lastname=Lovelace          ← body (raw bytes)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The parser only splits the message apart. It does NOT interpret the body:
turning form bytes into fields is the job of the body-parsing middleware,
which stores the result on ``request.form`` before any handler runs.

Rejections carry the status the client should see:

    400  malformed request line or Content-Length
    405  unknown method token
    413  request larger than max_request_size
    505  anything other than HTTP/1.0 or HTTP/1.1

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlsplit
import re


METHODS = frozenset({
    "GET", "HEAD", "POST", "PUT", "PATCH",
    "DELETE", "OPTIONS", "TRACE", "CONNECT",
})

SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

_METHOD_TOKEN = re.compile(r"[A-Z]+")
_VERSION_TOKEN = re.compile(r"HTTP/\d\.\d")

QueryParams = Dict[str, List[str]]


class HTTPParseError(Exception):
    """A request that cannot be parsed, with the status to answer it with."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

        method          GET, POST, HEAD, ...
        path            URL-decoded path, no query string
        version         "HTTP/1.1" or "HTTP/1.0"
        headers         lowercase name → value
        query_params    "?a=1&a=2" → {"a": ["1", "2"]}
        body            exactly Content-Length raw bytes
        form            body fields, set by BodyParser
        path_params     named captures of the matched route
        client_address  (ip, port) of the peer
        raw_path        path exactly as sent, still percent-encoded
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: QueryParams = field(default_factory=dict)
    body: bytes = b""

    form: Dict[str, Any] = field(default_factory=dict)
    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: Tuple[str, int] = ("", 0)
    raw_path: Optional[str] = None

    def _media_type(self) -> Tuple[str, Dict[str, str]]:
        """Split Content-Type into (media type, {param: value})."""
        media, *params = self.headers.get("content-type", "").split(";")
        parsed = {}
        for param in params:
            key, _, value = param.partition("=")
            parsed[key.strip().lower()] = value.strip().strip('"')
        return media.strip().lower(), parsed

    @property
    def route_path(self) -> str:
        """The path routes are matched against: as sent, not decoded."""
        return self.path if self.raw_path is None else self.raw_path

    @property
    def content_type(self) -> Optional[str]:
        """Media type without parameters, None when the header is absent."""
        return self._media_type()[0] or None

    @property
    def charset(self) -> str:
        return (self._media_type()[1].get("charset") or "utf-8").lower()

    @property
    def content_length(self) -> int:
        value = self.headers.get("content-length", "0")
        return int(value) if value.isdigit() else 0

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 stays open unless the client sent "Connection: close";
        HTTP/1.0 closes unless it sent "Connection: keep-alive".
        """
        token = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.0":
            return token == "keep-alive"
        return token != "close"

    def get_header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        return next(iter(self.query_params.get(name, ())), default)


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

        parser = RequestParser(max_request_size=1024 * 1024)
        request = parser.parse(raw, ("127.0.0.1", 51234))

    The input must hold one whole request: the head up to the blank line
    plus at least Content-Length body bytes. Bytes beyond that are ignored.
    """

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Raises:
            HTTPParseError: The request is malformed, too large, or uses a
                method or version this server does not speak.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        head, separator, rest = data.partition(b"\r\n\r\n")
        if not separator:
            raise HTTPParseError("Incomplete request: no header terminator")

        request_line, *header_lines = head.decode("utf-8", errors="replace").split("\r\n")
        method, target, version = self._split_request_line(request_line)
        raw_path, path, query = self._split_target(target)
        headers = self._read_headers(header_lines)

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query,
            body=self._take_body(headers, rest),
            client_address=client_address,
            raw_path=raw_path,
        )

    @staticmethod
    def _split_request_line(line: str) -> Tuple[str, str, str]:
        parts = line.split(" ")
        if len(parts) != 3:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, target, version = parts
        if not (_METHOD_TOKEN.fullmatch(method) and _VERSION_TOKEN.fullmatch(version)):
            raise HTTPParseError(f"Invalid request line: {line}")
        if method not in METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)
        if version not in SUPPORTED_VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        return method, target, version

    @staticmethod
    def _split_target(target: str) -> Tuple[str, str, QueryParams]:
        """Request target to (raw path, decoded path, query params)."""
        url = urlsplit(target)
        raw_path = url.path or "/"
        return raw_path, unquote(raw_path), parse_qs(url.query, keep_blank_values=True)

    @staticmethod
    def _read_headers(lines: List[str]) -> Dict[str, str]:
        """
        Lowercase the names, append folded continuation lines to the
        header above them, and join repeated headers with ", ".
        Lines without a colon are dropped.
        """
        headers: Dict[str, str] = {}
        last = None

        for line in lines:
            if line[:1] in (" ", "\t"):
                if last is not None:
                    headers[last] = f"{headers[last]} {line.strip()}"
                continue

            name, colon, value = line.partition(":")
            if not colon or not name.strip():
                continue

            last = name.strip().lower()
            value = value.strip()
            headers[last] = f"{headers[last]}, {value}" if last in headers else value

        return headers

    @staticmethod
    def _take_body(headers: Dict[str, str], rest: bytes) -> bytes:
        declared = headers.get("content-length", "0").strip()
        if not declared.isdigit():
            raise HTTPParseError(f"Invalid Content-Length header: {declared}")

        length = int(declared)
        if len(rest) < length:
            raise HTTPParseError(
                f"Incomplete body: expected {length} bytes, got {len(rest)}"
            )
        return rest[:length]


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> HTTPRequest:
    """Parse a request in one call with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
