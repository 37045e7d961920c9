"""
Unit tests for response building and file responses.
"""

from datetime import datetime, timedelta, timezone

import pytest

from namesite.http.response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    forbidden,
    internal_error,
    send_file,
    file_etag,
    format_http_date,
)
from namesite.http.request import HTTPRequest
from namesite.http.status_codes import HTTPStatus


class TestHTTPResponse:
    """Serialisation of a finished response."""

    def test_status_line(self):
        assert HTTPResponse().status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_wire_format(self):
        wire = HTTPResponse(headers={"X-Custom": "value"}, body=b"test").to_bytes()

        head, _, body = wire.partition(b"\r\n\r\n")
        lines = head.split(b"\r\n")
        assert lines[0] == b"HTTP/1.1 200 OK"
        assert b"X-Custom: value" in lines
        assert b"Content-Length: 4" in lines
        assert b"Server: namesite" in lines
        assert any(line.startswith(b"Date: ") for line in lines)
        assert body == b"test"

    def test_explicit_headers_win(self):
        wire = HTTPResponse(headers={"Server": "other"}).to_bytes(server_name="namesite")
        assert b"Server: other\r\n" in wire
        assert b"Server: namesite" not in wire

    def test_head_keeps_length_drops_body(self):
        wire = HTTPResponse(body=b"hello world").to_bytes(include_body=False)

        assert b"Content-Length: 11\r\n" in wire
        assert wire.endswith(b"\r\n\r\n")

    def test_set_header_chains(self):
        response = HTTPResponse().set_header("X-One", "1").set_header("X-Two", "2")
        assert response.headers == {"X-One": "1", "X-Two": "2"}


class TestResponseBuilder:
    """The fluent builder used by handlers and middleware."""

    def test_status(self):
        response = ResponseBuilder().status(HTTPStatus.BAD_REQUEST).build()
        assert response.status == HTTPStatus.BAD_REQUEST

    def test_status_from_int(self):
        assert ResponseBuilder().status(304).build().status is HTTPStatus.NOT_MODIFIED

    def test_json_keeps_unicode(self):
        response = ResponseBuilder().json({"name": "José Martí"}).build()

        assert response.headers["Content-Type"] == "application/json; charset=utf-8"
        assert response.json == {"name": "José Martí"}
        assert "José".encode() in response.body

    def test_html(self):
        response = ResponseBuilder().html("<p>Hello</p>").build()

        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert response.body == b"<p>Hello</p>"

    def test_text(self):
        response = ResponseBuilder().text("Hello, World!").build()

        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.body == b"Hello, World!"

    def test_raw_body_leaves_content_type(self):
        response = ResponseBuilder().body("abc").build()
        assert response.body == b"abc"
        assert "Content-Type" not in response.headers

    def test_file_detects_type(self):
        response = ResponseBuilder().file(b"body{}", "style.css").build()
        assert response.headers["Content-Type"] == "text/css; charset=utf-8"

    def test_cache(self):
        response = ResponseBuilder().cache(max_age=0).build()
        assert response.headers["Cache-Control"] == "public, max-age=0"

    def test_chaining(self):
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("X-Custom", "value")
            .json({"key": "value"})
            .build())

        assert response.headers["X-Custom"] == "value"
        assert response.json == {"key": "value"}


class TestSendFile:
    """Views and assets read from disk."""

    @pytest.fixture
    def page(self, tmp_path):
        path = tmp_path / "page1.html"
        path.write_text("<h1>Page 1</h1>")
        return path

    def test_headers(self, page):
        response = send_file(page)

        assert response.status == HTTPStatus.OK
        assert response.body == b"<h1>Page 1</h1>"
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert response.headers["Cache-Control"] == "public, max-age=0"
        assert response.headers["ETag"] == file_etag(page)
        assert response.headers["Last-Modified"].endswith(" GMT")

    def test_custom_status(self, page):
        response = send_file(page, status=HTTPStatus.NOT_FOUND)
        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"<h1>Page 1</h1>"

    def test_not_modified(self, page):
        request = HTTPRequest(
            method="GET", path="/page1",
            headers={"if-none-match": file_etag(page)},
        )
        response = send_file(page, request=request)

        assert response.status == HTTPStatus.NOT_MODIFIED
        assert response.headers["ETag"] == file_etag(page)
        assert response.body == b""

    def test_stale_validator_gets_full_body(self, page):
        request = HTTPRequest(
            method="GET", path="/page1",
            headers={"if-none-match": '"0-0"'},
        )
        assert send_file(page, request=request).status == HTTPStatus.OK

    def test_error_status_ignores_validator(self, page):
        request = HTTPRequest(
            method="GET", path="/nope",
            headers={"if-none-match": file_etag(page)},
        )
        response = send_file(page, request=request, status=HTTPStatus.NOT_FOUND)

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"<h1>Page 1</h1>"

    def test_etag_changes_with_content(self, page):
        before = file_etag(page)
        page.write_text("<h1>Page 1, now longer</h1>")
        assert file_etag(page) != before

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            send_file(tmp_path / "missing.html")


class TestErrorResponses:
    """JSON error bodies."""

    def test_error_response_extra_fields(self):
        response = error_response(HTTPStatus.PAYLOAD_TOO_LARGE, "too big", limit=10)
        assert response.status == HTTPStatus.PAYLOAD_TOO_LARGE
        assert response.json == {"error": "too big", "limit": 10}

    def test_defaults(self):
        assert forbidden().status == HTTPStatus.FORBIDDEN
        assert forbidden().json == {"error": "Forbidden"}
        assert internal_error().json == {"error": "Internal Server Error"}


class TestHTTPStatus:
    """Status codes and their reason phrases."""

    def test_phrases(self):
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.NOT_MODIFIED.phrase == "Not Modified"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.PAYLOAD_TOO_LARGE.phrase == "Payload Too Large"

    def test_success_range(self):
        assert HTTPStatus.OK.is_success
        assert not HTTPStatus.NOT_MODIFIED.is_success
        assert not HTTPStatus.NOT_FOUND.is_success
        assert not HTTPStatus.INTERNAL_SERVER_ERROR.is_success

    def test_compares_to_int(self):
        assert HTTPStatus.NOT_FOUND == 404


class TestFormatHTTPDate:
    """HTTP-date formatting."""

    def test_utc(self):
        moment = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)
        assert format_http_date(moment) == "Thu, 15 Jan 2026 12:30:45 GMT"

    def test_other_zone_converted_to_gmt(self):
        moment = datetime(2026, 1, 15, 14, 30, 45, tzinfo=timezone(timedelta(hours=2)))
        assert format_http_date(moment) == "Thu, 15 Jan 2026 12:30:45 GMT"
