"""
Unit tests for raw HTTP request parsing.
"""

import pytest

from routekit.http import HTTPParseError, HTTPRequest, RequestParser


class TestRequestParser:
    """Tests for RequestParser."""

    def test_parse_get(self, sample_get_request):
        """Parse a simple GET request."""
        request = RequestParser().parse(sample_get_request, ("127.0.0.1", 5000))

        assert request.method == "GET"
        assert request.target == "/blog/post/12?draft=1&tag=a%20b"
        assert request.path == "/blog/post/12"
        assert request.query_string == "draft=1&tag=a%20b"
        assert request.version == "HTTP/1.1"
        assert request.host == "localhost:8000"
        assert request.get_header("User-Agent") == "pytest"
        assert request.client_address == ("127.0.0.1", 5000)
        assert request.body == b""

    def test_parse_post(self, sample_post_request):
        """Parse a POST request with body."""
        request = RequestParser().parse(sample_post_request)

        assert request.method == "POST"
        assert request.body == b"title=hello&tags=a"
        assert request.content_length == len(request.body)
        assert not request.is_keep_alive

    def test_body_trimmed_to_content_length(self):
        data = b"PUT /x HTTP/1.1\r\nContent-Length: 3\r\n\r\nabcdef"
        assert RequestParser().parse(data).body == b"abc"

    def test_any_method_token(self):
        """Method support is decided by the router, not the parser."""
        request = RequestParser().parse(b"PURGE /cache HTTP/1.1\r\n\r\n")
        assert request.method == "PURGE"

    def test_asterisk_target(self):
        request = RequestParser().parse(b"OPTIONS * HTTP/1.1\r\n\r\n")
        assert request.target == "*"

    def test_header_continuation(self):
        data = b"GET / HTTP/1.1\r\nX-Long: part one\r\n  part two\r\n\r\n"
        assert RequestParser().parse(data).headers["x-long"] == "part one part two"

    def test_repeated_headers(self):
        data = (
            b"GET / HTTP/1.1\r\n"
            b"Accept: text/html\r\nAccept: text/plain\r\n"
            b"Cookie: a=1\r\nCookie: b=2\r\n\r\n"
        )
        headers = RequestParser().parse(data).headers

        assert headers["accept"] == "text/html, text/plain"
        assert headers["cookie"] == "a=1; b=2"

    def test_latin1_header(self):
        data = b"GET / HTTP/1.1\r\nX-Name: caf\xe9\r\n\r\n"
        assert RequestParser().parse(data).headers["x-name"] == "café"

    def test_no_terminator(self):
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(b"GET / HTTP/1.1\r\nHost: x\r\n")
        assert exc_info.value.status_code == 400

    def test_invalid_request_line(self):
        with pytest.raises(HTTPParseError):
            RequestParser().parse(b"GET /\r\n\r\n")

    def test_unsupported_version(self):
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(b"GET / HTTP/2.0\r\n\r\n")
        assert exc_info.value.status_code == 505

    def test_absolute_target_rejected(self):
        with pytest.raises(HTTPParseError):
            RequestParser().parse(b"GET http://example.org/ HTTP/1.1\r\n\r\n")

    def test_invalid_content_length(self):
        with pytest.raises(HTTPParseError):
            RequestParser().parse(b"POST / HTTP/1.1\r\nContent-Length: ten\r\n\r\n")
        with pytest.raises(HTTPParseError):
            RequestParser().parse(b"POST / HTTP/1.1\r\nContent-Length: -1\r\n\r\n")

    def test_incomplete_body(self):
        with pytest.raises(HTTPParseError):
            RequestParser().parse(b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc")

    def test_too_large(self):
        parser = RequestParser(max_request_size=32)
        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(b"GET / HTTP/1.1\r\nX-Pad: " + b"a" * 64 + b"\r\n\r\n")
        assert exc_info.value.status_code == 413


class TestHTTPRequest:
    """Tests for HTTPRequest properties."""

    def test_keep_alive_http11(self):
        assert HTTPRequest("GET", "/").is_keep_alive
        assert not HTTPRequest("GET", "/", headers={"connection": "close"}).is_keep_alive

    def test_keep_alive_http10(self):
        assert not HTTPRequest("GET", "/", version="HTTP/1.0").is_keep_alive
        assert HTTPRequest(
            "GET", "/", version="HTTP/1.0", headers={"connection": "keep-alive"}
        ).is_keep_alive

    def test_bad_content_length(self):
        assert HTTPRequest("GET", "/", headers={"content-length": "x"}).content_length == 0
