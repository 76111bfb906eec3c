"""
pytest configuration and fixtures.
"""

import io
import socket
import threading
import time
from typing import Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from routekit import Application, Logger, ServerConfig
from routekit.logger import DEBUG
from routekit.server import DevServer
from routekit.testing import RoutingDev


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /blog/post/12?draft=1&tag=a%20b HTTP/1.1\r\n"
        b"Host: localhost:8000\r\n"
        b"User-Agent: pytest\r\n"
        b"Cookie: sid=abc\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a urlencoded body."""
    body = b"title=hello&tags=a"
    return (
        b"POST /notes HTTP/1.1\r\n"
        b"Host: localhost:8000\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def log_stream() -> io.StringIO:
    """Buffer the router logger writes into."""
    return io.StringIO()


@pytest.fixture
def logger(log_stream: io.StringIO) -> Logger:
    """DEBUG-level Logger writing to log_stream."""
    log = Logger(DEBUG, handle=log_stream)
    yield log
    log.close()


@pytest.fixture
def routing(logger: Logger) -> RoutingDev:
    """Factory for RouterDev instances sharing one logger."""
    return RoutingDev(logger=logger)


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Development server running in a background thread."""

    __test__ = False

    def __init__(self, server: DevServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.port

    def start(self):
        """Start server in background thread."""
        self.server.bind()
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()

        for _ in range(50):  # 5 seconds max
            if self.server.is_running:
                return
            time.sleep(0.1)
        raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


def _test_setup(router):
    header = router.header

    def echo(args):
        header.print_json(0, {"params": args.params, "get": args.get, "put": args.put})

    def boom(args):
        raise RuntimeError("boom")

    router.route("/test", lambda args: header.print_json(0, "ok"))
    router.route("/echo/<name>", echo, ["GET", "PUT"])
    router.route("/form", lambda args: header.print_json(0, args.post), "POST")
    router.route("/boom", boom)


@pytest.fixture
def test_server(logger: Logger) -> Generator[TestServer, None, None]:
    """A running DevServer serving a few test routes."""
    app = Application(_test_setup, logger=logger)
    server = DevServer(app, ServerConfig(host="127.0.0.1", port=0, timeout=5.0, log_level="WARNING"))

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()
