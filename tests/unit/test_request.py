"""
Unit tests for turning raw bytes into HTTPRequest objects.
"""

import pytest

from namesite.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
)


SET_NAME = (
    b"POST /setName HTTP/1.1\r\n"
    b"Host: localhost:3000\r\n"
    b"User-Agent: pytest\r\n"
    b"Content-Type: application/x-www-form-urlencoded\r\n"
    b"Content-Length: 31\r\n"
    b"\r\n"
    b"firstname=Ada&lastname=Lovelace"
)


def rejection(raw: bytes, **parser_options) -> HTTPParseError:
    with pytest.raises(HTTPParseError) as exc_info:
        RequestParser(**parser_options).parse(raw)
    return exc_info.value


class TestRequestLine:
    """Method, target and version."""

    def test_page_request(self):
        request = RequestParser().parse(
            b"GET /page1 HTTP/1.1\r\nHost: localhost\r\n\r\n",
            ("127.0.0.1", 51234),
        )

        assert (request.method, request.path, request.version) == ("GET", "/page1", "HTTP/1.1")
        assert request.client_address == ("127.0.0.1", 51234)
        assert request.body == b""

    def test_query_string(self):
        request = parse_request(b"GET /getName?q=hello%20world&x=1&x=2 HTTP/1.1\r\n\r\n")

        assert request.path == "/getName"
        assert request.query_params["x"] == ["1", "2"]
        assert request.get_query("q") == "hello world"
        assert request.get_query("x") == "1"
        assert request.get_query("missing") is None
        assert request.get_query("missing", "fallback") == "fallback"

    def test_percent_decoded_path(self):
        assert parse_request(b"GET /assets/my%20file.css HTTP/1.1\r\n\r\n").path == "/assets/my file.css"

    def test_empty_path_is_root(self):
        assert parse_request(b"GET ?a=1 HTTP/1.1\r\n\r\n").path == "/"

    @pytest.mark.parametrize("line", [b"GET", b"GET /", b"GET  / HTTP/1.1", b"get / HTTP/1.1"])
    def test_malformed_line(self, line):
        assert rejection(line + b"\r\nHost: x\r\n\r\n").status_code == 400

    def test_unknown_method(self):
        assert rejection(b"BREW /pot HTTP/1.1\r\n\r\n").status_code == 405

    def test_unsupported_version(self):
        assert rejection(b"GET / HTTP/2.0\r\n\r\n").status_code == 505

    @pytest.mark.parametrize("path", ["/a..b", "/page1..", "/...", "/assets/../x"])
    def test_dots_in_path_parse(self, path):
        # Traversal is refused by StaticFiles, not the parser
        request = parse_request(f"GET {path} HTTP/1.1\r\n\r\n".encode())
        assert request.path == path

    def test_raw_path_keeps_escapes(self):
        request = parse_request(b"GET /getName%2F?x=%31 HTTP/1.1\r\n\r\n")

        assert request.path == "/getName/"
        assert request.raw_path == "/getName%2F"
        assert request.route_path == "/getName%2F"

    def test_route_path_without_raw_path(self):
        assert HTTPRequest(method="GET", path="/page1").route_path == "/page1"

    def test_versions_and_keep_alive(self):
        assert parse_request(b"GET / HTTP/1.0\r\n\r\n").is_keep_alive is False
        assert parse_request(b"GET / HTTP/1.0\r\nConnection: Keep-Alive\r\n\r\n").is_keep_alive is True
        assert parse_request(b"GET / HTTP/1.1\r\n\r\n").is_keep_alive is True
        assert parse_request(b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n").is_keep_alive is False


class TestHeadersAndBody:
    """Header block and Content-Length body."""

    def test_form_post(self):
        request = parse_request(SET_NAME)

        assert request.method == "POST"
        assert request.user_agent == "pytest"
        assert request.content_type == "application/x-www-form-urlencoded"
        assert request.body == b"firstname=Ada&lastname=Lovelace"
        # Decoding the form is the body parser's job
        assert request.form == {}

    def test_no_headers(self):
        request = parse_request(b"GET / HTTP/1.1\r\n\r\n")
        assert request.headers == {}

    def test_names_are_case_insensitive(self):
        request = parse_request(b"GET / HTTP/1.1\r\nCONTENT-TYPE: text/html\r\n\r\n")

        assert request.headers == {"content-type": "text/html"}
        assert request.get_header("Content-Type") == "text/html"

    def test_repeated_headers_joined(self):
        request = parse_request(
            b"GET / HTTP/1.1\r\nAccept: text/html\r\nAccept: application/json\r\n\r\n"
        )
        assert request.headers["accept"] == "text/html, application/json"

    def test_folded_header_continues(self):
        request = parse_request(b"GET / HTTP/1.1\r\nX-Long: first\r\n  second\r\n\r\n")
        assert request.headers["x-long"] == "first second"

    def test_line_without_colon_dropped(self):
        request = parse_request(b"GET / HTTP/1.1\r\nnonsense\r\nHost: x\r\n\r\n")
        assert request.headers == {"host": "x"}

    def test_body_cut_at_content_length(self):
        request = parse_request(b"POST / HTTP/1.1\r\nContent-Length: 9\r\n\r\ntest bodyGET /next")

        assert request.content_length == 9
        assert request.body == b"test body"

    def test_short_body(self):
        rejection(b"POST / HTTP/1.1\r\nContent-Length: 50\r\n\r\nshort")

    def test_bad_content_length(self):
        assert rejection(b"POST / HTTP/1.1\r\nContent-Length: lots\r\n\r\n").status_code == 400

    def test_missing_blank_line(self):
        rejection(b"GET / HTTP/1.1\r\nHost: test\r\n")

    def test_too_large(self):
        raw = b"GET / HTTP/1.1\r\nX-Large: " + b"A" * 200 + b"\r\n\r\n"
        assert rejection(raw, max_request_size=100).status_code == 413


class TestHTTPRequest:
    """Convenience properties on a built request."""

    def test_get_header_default(self):
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "default") == "default"

    def test_charset(self):
        request = HTTPRequest(
            method="POST",
            path="/setName",
            headers={"content-type": 'application/x-www-form-urlencoded; charset="ISO-8859-1"'},
        )
        assert request.content_type == "application/x-www-form-urlencoded"
        assert request.charset == "iso-8859-1"

    def test_charset_default(self):
        request = HTTPRequest(method="POST", path="/", headers={"content-type": "text/plain"})
        assert request.charset == "utf-8"

    def test_no_content_type(self):
        request = HTTPRequest(method="GET", path="/")
        assert request.content_type is None
        assert request.content_length == 0
