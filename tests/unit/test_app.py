"""
Unit tests for Application: per-request dispatch and the WSGI entry point.
"""

import io
import json

import pytest

from routekit import Application, Header, RequestEnvironment, Router


def setup(router):
    header = router.header
    router.route("/", lambda args: header.print_json(0, "home"))
    router.route("/post/<id>", lambda args: header.print_json(0, args.params))
    router.route("/post/<id>", lambda args: header.print_json(0, args.put), "PUT")
    router.route("/go", lambda args: router.redirect("/"))


def wsgi_call(app, environ):
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = headers

    body = b"".join(app(environ, start_response))
    return captured["status"], dict(captured["headers"]), body


class TestHandle:
    """Tests for Application.handle()."""

    def test_dispatch(self, logger):
        response = Application(setup, logger=logger).handle(RequestEnvironment(uri="/post/3"))

        assert response.status == 200
        assert json.loads(response.body) == {"errno": 0, "data": {"id": "3"}}

    def test_fresh_router_per_request(self, logger):
        app = Application(setup, logger=logger)

        first = app.handle(RequestEnvironment(uri="/"))
        second = app.handle(RequestEnvironment(uri="/post/9"))

        assert json.loads(first.body)["data"] == "home"
        assert json.loads(second.body)["data"] == {"id": "9"}

    def test_not_found(self, logger):
        response = Application(setup, logger=logger).handle(RequestEnvironment(uri="/nope"))
        assert response.status == 404

    def test_not_implemented(self, logger):
        response = Application(setup, logger=logger).handle(
            RequestEnvironment(method="PATCH", uri="/nope")
        )
        assert response.status == 501

    def test_shutdown_disabled(self, logger):
        app = Application(setup, logger=logger, shutdown=False)
        response = app.handle(RequestEnvironment(uri="/nope"))

        assert response.status == 200
        assert response.body == b""

    def test_home(self, logger):
        app = Application(setup, logger=logger, home="/blog/")
        response = app.handle(RequestEnvironment(uri="/blog/post/5"))
        assert json.loads(response.body)["data"] == {"id": "5"}

    def test_callback_errors_propagate(self, logger):
        def broken(router):
            router.route("/", lambda args: 1 / 0)

        with pytest.raises(ZeroDivisionError):
            Application(broken, logger=logger).handle(RequestEnvironment())

    def test_custom_classes(self, logger):
        class ShoutingHeader(Header):
            def echo(self, data):
                return super().echo(data.upper() if isinstance(data, str) else data)

        class JSONErrorRouter(Router):
            def abort_default(self, code):
                self.header.start_header(code)
                self.header.echo(f"error {code}")

        app = Application(
            setup,
            logger=logger,
            router_class=JSONErrorRouter,
            header_class=ShoutingHeader,
        )
        response = app.handle(RequestEnvironment(uri="/missing"))

        assert response.status == 404
        assert response.body == b"ERROR 404"

    def test_setup_must_be_callable(self):
        with pytest.raises(TypeError):
            Application("setup")


class TestWSGI:
    """Tests for the WSGI callable."""

    def test_get(self, logger):
        status, headers, body = wsgi_call(Application(setup, logger=logger), {
            "REQUEST_METHOD": "GET",
            "PATH_INFO": "/",
            "HTTP_HOST": "localhost",
        })

        assert status == "200 OK"
        assert headers["Content-Type"] == "application/json"
        assert json.loads(body)["data"] == "home"

    def test_put_body(self, logger):
        status, _, body = wsgi_call(Application(setup, logger=logger), {
            "REQUEST_METHOD": "PUT",
            "PATH_INFO": "/post/1",
            "CONTENT_LENGTH": "5",
            "wsgi.input": io.BytesIO(b"hello"),
        })

        assert status == "200 OK"
        assert json.loads(body)["data"] == "hello"

    def test_script_name_is_home(self, logger):
        status, _, body = wsgi_call(Application(setup, logger=logger), {
            "REQUEST_METHOD": "GET",
            "SCRIPT_NAME": "/app",
            "PATH_INFO": "/post/4",
        })

        assert status == "200 OK"
        assert json.loads(body)["data"] == {"id": "4"}

    def test_head_has_no_body(self, logger):
        status, headers, body = wsgi_call(Application(setup, logger=logger), {
            "REQUEST_METHOD": "HEAD",
            "PATH_INFO": "/",
        })

        assert status == "200 OK"
        assert body == b""
        assert int(headers["Content-Length"]) > 0

    def test_redirect(self, logger):
        status, headers, _ = wsgi_call(Application(setup, logger=logger), {
            "REQUEST_METHOD": "GET",
            "PATH_INFO": "/go",
        })

        assert status == "301 Moved Permanently"
        assert headers["Location"] == "/"
        assert "Content-Length" in headers

    def test_not_implemented(self, logger):
        status, _, body = wsgi_call(Application(setup, logger=logger), {
            "REQUEST_METHOD": "DELETE",
            "PATH_INFO": "/anything",
        })

        assert status == "501 Not Implemented"
        assert b"501 Not Implemented" in body
