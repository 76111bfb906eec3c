"""
Unit tests for HTTPResponse and the Header response writer.
"""

import json
import os

import pytest

from routekit.http import Halt, Header, HTTPResponse, HTTPStatus, format_http_date
from routekit.http.response import NO_CACHE_EXPIRES, POWERED_BY


class TestHTTPResponse:
    """Tests for HTTPResponse."""

    def test_status_line(self):
        response = HTTPResponse(status=HTTPStatus.NOT_FOUND)
        assert response.status_line == "HTTP/1.1 404 Not Found"
        assert response.wsgi_status == "404 Not Found"

    def test_headers_keep_duplicates(self):
        response = HTTPResponse()
        response.add_header("Set-Cookie", "a=1")
        response.add_header("Set-Cookie", "b=2")

        assert response.get_all("set-cookie") == ["a=1", "b=2"]
        assert response.get_header("Set-Cookie") == "b=2"

    def test_set_header_replaces(self):
        response = HTTPResponse()
        response.add_header("X-A", "1").add_header("x-a", "2")
        response.set_header("X-A", "3")

        assert response.get_all("X-A") == ["3"]

    def test_line_break_in_value_rejected(self):
        response = HTTPResponse()
        with pytest.raises(ValueError):
            response.add_header("Location", "/x\r\nSet-Cookie: sid=evil")
        with pytest.raises(ValueError):
            response.set_header("Location", "/x\nSet-Cookie: sid=evil")

        assert response.headers == []

    def test_line_break_in_name_rejected(self):
        with pytest.raises(ValueError):
            HTTPResponse().set_header("X-A\nX-B", "1")

    def test_remove_header(self):
        response = HTTPResponse().add_header("X-A", "1")
        response.remove_header("x-a")
        assert response.get_header("X-A") is None

    def test_write(self):
        response = HTTPResponse()
        response.write("héllo ").write(b"world")
        assert response.body == "héllo world".encode("utf-8")

    def test_to_bytes(self):
        response = HTTPResponse()
        response.add_header("Content-Type", "text/plain")
        response.write("Hello")

        data = response.to_bytes("testsrv")

        assert data.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Length: 5\r\n" in data
        assert b"Server: testsrv\r\n" in data
        assert b"Date: " in data
        assert data.endswith(b"\r\n\r\nHello")

    def test_to_bytes_without_body(self):
        """HEAD responses keep Content-Length but drop the body."""
        response = HTTPResponse().write("Hello")
        data = response.to_bytes(include_body=False)

        assert b"Content-Length: 5\r\n" in data
        assert data.endswith(b"\r\n\r\n")

    def test_to_bytes_keeps_explicit_length(self):
        response = HTTPResponse().add_header("Content-Length", "99")
        assert response.to_bytes().count(b"Content-Length") == 1

    def test_reset(self):
        response = HTTPResponse(status=HTTPStatus.FORBIDDEN).add_header("X", "1").write("b")
        response.reset()

        assert response.status == 200
        assert response.headers == []
        assert response.body == b""


class TestFormatHttpDate:
    """Tests for format_http_date()."""

    def test_epoch(self):
        assert format_http_date(0) == "Thu, 01 Jan 1970 00:00:00 GMT"

    def test_now(self):
        assert format_http_date().endswith(" GMT")


class TestHeaderBasics:
    """Tests for raw header lines, echo and halt."""

    def test_header_line(self):
        header = Header()
        header.header("X-Frame-Options: DENY")
        assert header.response.get_header("X-Frame-Options") == "DENY"

    def test_header_value_with_colon(self):
        header = Header()
        header.header("Location: http://example.org:8080/")
        assert header.response.get_header("Location") == "http://example.org:8080/"

    def test_header_replace(self):
        header = Header()
        header.header("X-A: 1").header("X-A: 2")
        assert header.response.get_all("X-A") == ["1", "2"]

        header.header("X-A: 3", replace=True)
        assert header.response.get_all("X-A") == ["3"]

    def test_header_without_colon_ignored(self):
        header = Header()
        header.header("garbage")
        assert header.response.headers == []

    def test_header_with_line_break_rejected(self):
        header = Header()
        with pytest.raises(ValueError):
            header.header("X-A: 1\r\nX-B: 2")
        assert header.response.get_header("X-B") is None

    def test_halt_raises(self):
        header = Header()
        with pytest.raises(Halt):
            header.halt()

    def test_halt_writes_payload(self):
        header = Header()
        with pytest.raises(Halt):
            header.halt("done")
        assert header.response.body == b"done"

    def test_halt_number_payload(self):
        header = Header()
        with pytest.raises(Halt):
            header.halt(42)
        assert header.response.body == b"42"

    def test_echo(self):
        header = Header()
        header.echo("a").echo(b"b")
        assert header.response.body == b"ab"

    def test_get_header_string(self):
        assert Header.get_header_string(201) == (HTTPStatus.CREATED, "Created")
        assert Header.get_header_string(999) == (HTTPStatus.NOT_FOUND, "Not Found")


class TestStartHeader:
    """Tests for start_header()."""

    def test_no_cache(self):
        header = Header()
        header.start_header(200)
        response = header.response

        assert response.status == 200
        assert response.get_header("Expires") == NO_CACHE_EXPIRES
        assert response.get_all("Cache-Control") == [
            "no-store, no-cache, must-revalidate",
            "post-check=0, pre-check=0",
        ]
        assert response.get_header("Pragma") == "no-cache"
        assert response.get_header("Last-Modified").endswith("GMT")
        assert response.get_header("X-Powered-By") == POWERED_BY

    def test_cache(self):
        header = Header()
        header.start_header(200, cache=3600)
        response = header.response

        assert response.get_all("Cache-Control") == ["must-revalidate"]
        assert response.get_header("Expires") != NO_CACHE_EXPIRES
        assert response.get_header("Pragma") is None

    def test_unknown_code(self):
        header = Header()
        header.start_header(299)
        assert header.response.status == HTTPStatus.NOT_FOUND

    def test_extra_headers(self):
        header = Header()
        header.start_header(200, 0, {"X-A": "1"})
        assert header.response.get_header("X-A") == "1"

        header.start_header(200, 0, ["X-B: 2"])
        assert header.response.get_header("X-B") == "2"
        assert header.response.get_header("X-A") is None

    def test_discards_earlier_output(self):
        header = Header()
        header.echo("stale")
        header.start_header(500)
        assert header.response.body == b""


class TestJSON:
    """Tests for print_json() and pj()."""

    def _sent(self, func, *args, **kwargs):
        header = Header()
        with pytest.raises(Halt):
            getattr(header, func)(*args, **kwargs)
        return header.response

    def test_print_json(self):
        response = self._sent("print_json", 0, {"id": 1})

        assert response.status == 200
        assert response.get_header("Content-Type") == "application/json"
        assert json.loads(response.body) == {"errno": 0, "data": {"id": 1}}
        assert response.get_header("Content-Length") == str(len(response.body))

    def test_print_json_defaults(self):
        response = self._sent("print_json")
        assert json.loads(response.body) == {"errno": 0, "data": []}

    def test_print_json_code(self):
        response = self._sent("print_json", 3, "bad input", 400)

        assert response.status == 400
        assert json.loads(response.body) == {"errno": 3, "data": "bad input"}

    def test_pj_success(self):
        response = self._sent("pj", (0, {"ok": True}))
        assert response.status == 200

    def test_pj_failure_default_code(self):
        response = self._sent("pj", (1, "denied"))

        assert response.status == 401
        assert json.loads(response.body)["errno"] == 1

    def test_pj_forbidden_code(self):
        response = self._sent("pj", [2], 403)

        assert response.status == 403
        assert json.loads(response.body) == {"errno": 2, "data": []}


class TestSendFile:
    """Tests for send_file()."""

    def _send(self, path, **kwargs):
        header = Header()
        with pytest.raises(Halt):
            header.send_file(path, **kwargs)
        return header.response

    def test_found(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text('{"a": 1}')

        response = self._send(path)

        assert response.status == 200
        assert response.body == b'{"a": 1}'
        assert response.get_header("Content-Type") == "application/json; charset=utf-8"
        assert response.get_header("Content-Length") == "8"
        assert response.get_header("Last-Modified") == format_http_date(os.stat(path).st_mtime)
        assert response.get_header("ETag").startswith('"')

    def test_missing(self, tmp_path):
        called = []
        response = self._send(tmp_path / "nope", callback_notfound=lambda: called.append(1))

        assert response.status == 404
        assert called == [1]

    def test_disposition(self, tmp_path):
        path = tmp_path / "report.csv"
        path.write_text("a,b")

        assert self._send(path, disposition=True).get_header("Content-Disposition") == \
            'attachment; filename="report.csv"'
        assert self._send(path, disposition="r.csv").get_header("Content-Disposition") == \
            'attachment; filename="r.csv"'

    def test_noread(self, tmp_path):
        path = tmp_path / "big.bin"
        path.write_bytes(b"\x00" * 100)

        response = self._send(path, noread=True)

        assert response.body == b""
        assert response.get_header("Content-Length") == "100"

    def test_etag_match(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("x")
        etag = self._send(path).get_header("ETag")

        response = self._send(path, reqheaders={"if-none-match": etag})

        assert response.status == 304
        assert response.body == b""
        assert response.get_header("ETag") == etag

    def test_etag_mismatch(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("x")

        response = self._send(path, reqheaders={"if-none-match": '"0-0"'})
        assert response.status == 200

    def test_if_modified_since(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("x")
        mtime = os.stat(path).st_mtime

        fresh = self._send(path, reqheaders={"if-modified-since": format_http_date(mtime + 60)})
        stale = self._send(path, reqheaders={"if-modified-since": format_http_date(mtime - 60)})
        junk = self._send(path, reqheaders={"if-modified-since": "yesterday"})

        assert fresh.status == 304
        assert stale.status == 200
        assert junk.status == 200

    def test_custom_code(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("x")
        assert self._send(path, code=203).status == 203


class TestCookies:
    """Tests for send_cookie() and delete_cookie()."""

    def test_session_cookie(self):
        header = Header()
        header.send_cookie("sid", "abc")
        cookie = header.response.get_header("Set-Cookie")

        assert cookie.startswith("sid=abc")
        assert "Path=/" in cookie
        assert "SameSite=Lax" in cookie
        assert "Max-Age" not in cookie

    def test_expiring_cookie(self):
        header = Header()
        header.send_cookie("sid", "abc", 3600, secure=True, httponly=True, domain="example.org")
        cookie = header.response.get_header("Set-Cookie")

        assert "Max-Age=3600" in cookie
        assert "expires=" in cookie.lower()
        assert "Secure" in cookie
        assert "HttpOnly" in cookie
        assert "Domain=example.org" in cookie

    def test_delete_cookie(self):
        header = Header()
        header.delete_cookie("sid")
        cookie = header.response.get_header("Set-Cookie")

        assert "Max-Age=0" in cookie
        assert "01 Jan 1970" in cookie

    def test_empty_value_deletes(self):
        header = Header()
        header.send_cookie("sid", "", 3600)
        assert "Max-Age=0" in header.response.get_header("Set-Cookie")

    def test_multiple_cookies(self):
        header = Header()
        header.send_cookie("a", "1").send_cookie("b", "2")
        assert len(header.response.get_all("Set-Cookie")) == 2
