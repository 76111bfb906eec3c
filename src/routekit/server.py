"""
=============================================================================
DEVELOPMENT SERVER
=============================================================================

A single-threaded HTTP/1.1 server for running an Application locally and
in integration tests. It answers one request per connection and then
closes, which keeps the accept loop trivial. Use a WSGI server for
anything else; Application is a WSGI callable.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      DevServer Internals                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   serve_forever()                                                    │
    │       ├──► bind() / listen()          (bind() can run up front)     │
    │       ├──► install SIGINT/SIGTERM     (main thread only)            │
    │       └──► while running:                                            │
    │               accept()                1 s timeout, re-checks flag    │
    │               Connection.read_request()                              │
    │               RequestParser.parse()   HTTPParseError → 4xx/505      │
    │               Application.handle()    exception → 500               │
    │               Connection.send()       Connection: close             │
    │                                                                      │
    │   shutdown()  clears the flag; the loop exits within a second       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Two loggers are in play. Server events go to the module logger
(logging.getLogger(__name__)), configured by the CLI with basicConfig.
Routing events go to the Application's Logger.
=============================================================================
"""

from typing import Optional, Tuple
import logging
import signal
import socket
import threading

from .app import Application
from .config import ServerConfig
from .http.environ import RequestEnvironment
from .http.request import HTTPParseError, RequestParser
from .http.response import HTTPResponse
from .http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

access_logger = logging.getLogger("routekit.access")


class Connection:
    """
    One accepted client socket.

    Buffers bytes until the header terminator is seen, then reads exactly
    Content-Length more bytes of body.
    """

    def __init__(
        self,
        sock: socket.socket,
        address: Tuple[str, int],
        buffer_size: int = 8192,
        max_request_size: int = 10 * 1024 * 1024,
        timeout: Optional[float] = 30.0,
    ):
        self.socket = sock
        self.address = address
        self.buffer_size = buffer_size
        self.max_request_size = max_request_size
        self.socket.settimeout(timeout)
        self._buffer = b""

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request.

        Returns:
            Raw request bytes, or None if the client closed the connection
            before sending anything.

        Raises:
            HTTPParseError: 413 when the request outgrows max_request_size.
            socket.timeout: When the client stalls.
        """
        while b"\r\n\r\n" not in self._buffer:
            chunk = self.socket.recv(self.buffer_size)
            if not chunk:
                return None if not self._buffer else self._buffer
            self._buffer += chunk
            self._check_size()

        header_end = self._buffer.index(b"\r\n\r\n") + 4
        content_length = self._content_length(self._buffer[:header_end])

        while len(self._buffer) < header_end + content_length:
            chunk = self.socket.recv(self.buffer_size)
            if not chunk:
                break
            self._buffer += chunk
            self._check_size()

        data = self._buffer[:header_end + content_length]
        self._buffer = self._buffer[header_end + content_length:]
        return data

    def _check_size(self) -> None:
        if len(self._buffer) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: more than {self.max_request_size} bytes",
                status_code=413,
            )

    @staticmethod
    def _content_length(head: bytes) -> int:
        for line in head.split(b"\r\n")[1:]:
            name, _, value = line.partition(b":")
            if name.strip().lower() == b"content-length":
                try:
                    return max(int(value.strip()), 0)
                except ValueError:
                    return 0
        return 0

    def send(self, data: bytes) -> bool:
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.debug(f"Send to {self.address[0]}:{self.address[1]} failed: {e}")
            return False

    def close(self) -> None:
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.socket.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class DevServer:
    """
    Serve an Application over HTTP.

    Usage:
        server = DevServer(app, ServerConfig(port=8000))
        server.serve_forever()          # blocks, Ctrl+C to stop

    In tests:
        server = DevServer(app, ServerConfig(port=0))
        server.bind()
        threading.Thread(target=server.serve_forever, daemon=True).start()
        url = f"http://127.0.0.1:{server.port}/"
    """

    def __init__(self, application: Application, config: Optional[ServerConfig] = None):
        self.application = application
        self.config = config or ServerConfig()
        self.config.validate()

        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._socket: Optional[socket.socket] = None
        self._running = threading.Event()
        self._original_handlers: dict = {}

    @property
    def port(self) -> int:
        """Bound port. Differs from config.port when that is 0."""
        if self._socket is not None:
            return self._socket.getsockname()[1]
        return self.config.port

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    def bind(self) -> "DevServer":
        """Create the listening socket. Called by serve_forever() if needed."""
        if self._socket is not None:
            return self
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.settimeout(1.0)
        try:
            sock.bind((self.config.host, self.config.port))
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise
        sock.listen(self.config.backlog)
        self._socket = sock
        logger.info(f"Listening on http://{self.config.host}:{self.port}/")
        return self

    def serve_forever(self) -> None:
        """Accept connections until shutdown() or a signal."""
        self.bind()
        self._running.set()
        self._setup_signals()
        try:
            while self._running.is_set():
                try:
                    client, address = self._socket.accept()
                except socket.timeout:
                    continue
                except OSError:
                    if self._running.is_set():
                        raise
                    break
                with Connection(
                    client,
                    address,
                    buffer_size=self.config.buffer_size,
                    max_request_size=self.config.max_request_size,
                    timeout=self.config.timeout,
                ) as conn:
                    self.handle_connection(conn)
        finally:
            self._restore_signals()
            self._socket.close()
            self._socket = None
            logger.info("Server stopped")

    def shutdown(self) -> None:
        self._running.clear()

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST HANDLING
    # ─────────────────────────────────────────────────────────────────────

    def handle_connection(self, conn: Connection) -> None:
        try:
            raw = conn.read_request()
            if raw is None:
                return
            request = self._parser.parse(raw, conn.address)
        except HTTPParseError as e:
            logger.info(f"Bad request from {conn.address[0]}: {e}")
            conn.send(self._error_response(e.status_code, str(e)))
            return
        except socket.timeout:
            conn.send(self._error_response(HTTPStatus.REQUEST_TIMEOUT, "Request timeout"))
            return

        environment = RequestEnvironment.from_request(
            request,
            script_name="",
            server_port=self.port,
        )
        try:
            response = self.application.handle(environment)
        except Exception as e:
            logger.exception(f"Unhandled error in {request.method} {request.target}: {e}")
            response = HTTPResponse(status=HTTPStatus.INTERNAL_SERVER_ERROR)
            response.add_header("Content-Type", "text/plain; charset=utf-8")
            response.write("Internal Server Error")

        response.set_header("Connection", "close")
        conn.send(response.to_bytes(
            self.config.server_name,
            include_body=request.method != "HEAD",
        ))
        access_logger.info(
            f'{conn.address[0]} "{request.method} {request.target} {request.version}" '
            f"{int(response.status)} {len(response.body)}"
        )

    def _error_response(self, status: int, message: str) -> bytes:
        response = HTTPResponse(status=HTTPStatus(status))
        response.add_header("Content-Type", "text/plain; charset=utf-8")
        response.add_header("Connection", "close")
        response.write(message)
        return response.to_bytes(self.config.server_name)

    # ─────────────────────────────────────────────────────────────────────
    # SIGNALS
    # ─────────────────────────────────────────────────────────────────────

    def _setup_signals(self) -> None:
        # signal.signal() only works in the main thread.
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()
