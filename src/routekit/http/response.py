"""
=============================================================================
RESPONSE WRITER
=============================================================================

HTTPResponse is the accumulated response: status, an ordered header list
and the body. Header is the writer route callbacks talk to. It fills an
HTTPResponse and ends the request with halt().

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        A TYPICAL CALLBACK                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   def show_post(args):                                               │
    │       post = load(args.params["id"])                                 │
    │       router.header.print_json(0, post)                              │
    │                    │                                                 │
    │                    ├── start_header(200, cache=0)                   │
    │                    │      HTTP/1.1 200 OK                            │
    │                    │      Expires: Mon, 27 Jul 1996 07:00:00 GMT     │
    │                    │      Cache-Control: no-store, no-cache, ...     │
    │                    │      Last-Modified: <now>                       │
    │                    ├── Content-Type: application/json               │
    │                    └── halt('{"errno": 0, "data": {...}}')          │
    │                              │                                       │
    │                              └── raises Halt, caught by the app     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Halt is how a response finishes early from any call depth. It is not an
error; Application.handle() catches it and returns the response.

Headers are kept as a list of (name, value) pairs. Several Cache-Control
and Set-Cookie lines are legitimate, so a dict is not enough.
=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import formatdate, parsedate_to_datetime
from http.cookies import SimpleCookie
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union
import html
import json
import time

from .mime_types import get_content_type
from .status_codes import HTTPStatus, get_header_string


POWERED_BY = "routekit"

NO_CACHE_EXPIRES = "Mon, 27 Jul 1996 07:00:00 GMT"

HeaderArg = Union[Dict[str, str], Sequence[str], None]


def _checked_header(name: str, value: str) -> str:
    """
    Reject header names or values that would break the header block.

    Raises:
        ValueError: If either contains CR or LF.
    """
    value = str(value)
    if any(c in name or c in value for c in "\r\n"):
        raise ValueError(f"Header {name!r} contains a line break")
    return value


class Halt(Exception):
    """Raised by Header.halt() to end the current request."""


def format_http_date(timestamp: Optional[float] = None) -> str:
    """
    Format a Unix timestamp as an HTTP-date.

        >>> format_http_date(0)
        'Thu, 01 Jan 1970 00:00:00 GMT'
    """
    return formatdate(time.time() if timestamp is None else timestamp, usegmt=True)


@dataclass
class HTTPResponse:
    """
    A response under construction.

    Attributes:
        status:  HTTP status
        headers: Ordered (name, value) pairs, duplicates allowed
        body:    Body bytes
        version: Protocol version for the status line
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def wsgi_status(self) -> str:
        """Status string in the form WSGI start_response() expects."""
        return f"{int(self.status)} {self.status.phrase}"

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Last value set for a header, case-insensitive."""
        name = name.lower()
        for key, value in reversed(self.headers):
            if key.lower() == name:
                return value
        return default

    def get_all(self, name: str) -> List[str]:
        """Every value sent for a header, in order."""
        name = name.lower()
        return [value for key, value in self.headers if key.lower() == name]

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Replace every existing value of a header."""
        value = _checked_header(name, value)
        self.remove_header(name)
        self.headers.append((name, value))
        return self

    def add_header(self, name: str, value: str) -> "HTTPResponse":
        """Append a header line, keeping earlier lines with the same name."""
        self.headers.append((name, _checked_header(name, value)))
        return self

    def remove_header(self, name: str) -> "HTTPResponse":
        name = name.lower()
        self.headers = [(k, v) for k, v in self.headers if k.lower() != name]
        return self

    def write(self, data: Union[str, bytes]) -> "HTTPResponse":
        """Append to the body."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.body += data
        return self

    def reset(self) -> "HTTPResponse":
        self.status = HTTPStatus.OK
        self.headers = []
        self.body = b""
        return self

    def to_bytes(self, server_name: str = "routekit", include_body: bool = True) -> bytes:
        """
        Serialize for a socket.

        Content-Length, Date and Server are added when absent.
        include_body=False keeps the headers of a HEAD response intact
        while dropping the body.
        """
        headers = list(self.headers)
        names = {name.lower() for name, _ in headers}

        if "content-length" not in names:
            headers.append(("Content-Length", str(len(self.body))))
        if "date" not in names:
            headers.append(("Date", format_http_date()))
        if "server" not in names:
            headers.append(("Server", server_name))

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in headers)
        lines.append("")
        head = "\r\n".join(lines).encode("latin-1", errors="replace") + b"\r\n"
        return head + (self.body if include_body else b"")


class Header:
    """
    Response writer.

    Writes into an HTTPResponse owned by the caller. Subclasses may
    override halt() for non-web contexts, e.g. testing.HeaderDev never
    raises.
    """

    def __init__(self, response: Optional[HTTPResponse] = None):
        self.response = response if response is not None else HTTPResponse()

    @staticmethod
    def get_header_string(code: int) -> Tuple[HTTPStatus, str]:
        """Status and reason phrase for a code; unknown codes become 404."""
        return get_header_string(code)

    # =========================================================================
    # LOW LEVEL
    # =========================================================================

    def header(self, line: str, replace: bool = False) -> "Header":
        """
        Send a raw header line, e.g. "X-Frame-Options: DENY".

        Lines without a colon are ignored.

        Raises:
            ValueError: If the line holds a CR or LF.
        """
        if ":" not in line:
            return self
        name, value = line.split(":", 1)
        name, value = name.strip(), value.strip()
        if replace:
            self.response.set_header(name, value)
        else:
            self.response.add_header(name, value)
        return self

    def echo(self, data: Union[str, bytes]) -> "Header":
        """Append to the response body."""
        self.response.write(data)
        return self

    def halt(self, arg: Any = None) -> None:
        """
        Finish the response.

        Strings, bytes and numbers are written to the body first. Other
        values are written as their repr().

        Raises:
            Halt: Always.
        """
        self._write_halt_payload(arg)
        raise Halt()

    def _write_halt_payload(self, arg: Any) -> None:
        if arg is None:
            return
        if isinstance(arg, (str, bytes)):
            self.response.write(arg)
        elif isinstance(arg, (int, float)) and not isinstance(arg, bool):
            self.response.write(str(arg))
        else:
            self.response.write(repr(arg))

    # =========================================================================
    # STATUS AND CACHE HEADERS
    # =========================================================================

    def start_header(
        self,
        code: int = 200,
        cache: int = 0,
        headers: HeaderArg = None,
    ) -> "Header":
        """
        Start a response: status plus cache headers.

        Args:
            code: HTTP status code. Unknown codes become 404.
            cache: Seconds the client may cache the response, 0 for none.
            headers: Extra headers, either a mapping or "Name: value" lines.

        Any headers or body written earlier are discarded.
        """
        status, _ = self.get_header_string(code)
        self.response.reset()
        self.response.status = status

        cache = int(cache or 0)
        if cache > 0:
            self.response.add_header("Expires", format_http_date(time.time() + cache))
            self.response.add_header("Cache-Control", "must-revalidate")
        else:
            self.response.add_header("Expires", NO_CACHE_EXPIRES)
            self.response.add_header("Cache-Control", "no-store, no-cache, must-revalidate")
            self.response.add_header("Cache-Control", "post-check=0, pre-check=0")
            self.response.add_header("Pragma", "no-cache")

        self.response.add_header("Last-Modified", format_http_date())
        self.response.set_header("X-Powered-By", POWERED_BY)

        for line in _header_lines(headers):
            self.header(line)
        return self

    # =========================================================================
    # FILES
    # =========================================================================

    def send_file(
        self,
        path: Union[str, Path],
        cache: int = 0,
        disposition: Union[bool, str, None] = None,
        headers: HeaderArg = None,
        reqheaders: Optional[Dict[str, str]] = None,
        noread: bool = False,
        callback_notfound: Optional[Callable[[], Any]] = None,
        code: int = 200,
    ) -> None:
        """
        Send a file and halt.

        Args:
            path: File to send.
            cache: Cache lifetime in seconds, 0 for no cache.
            disposition: True to send an attachment named after the file,
                a string to use that name, None for inline.
            headers: Extra response headers.
            reqheaders: Request headers (lower-case names) used for
                If-None-Match / If-Modified-Since validation.
            noread: Send headers only. Useful when the front web server
                delivers the file itself, e.g. with X-Sendfile.
            callback_notfound: Called after a 404 status is set when the
                file is missing.
            code: Status for a successful send.
        """
        path = Path(path)
        if not path.is_file():
            self.start_header(404, 0, headers)
            if callback_notfound is not None:
                callback_notfound()
            self.halt()
            return

        stat = path.stat()
        etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'
        last_modified = format_http_date(stat.st_mtime)

        if _not_modified(reqheaders or {}, etag, stat.st_mtime):
            self.start_header(304, cache, headers)
            self.response.add_header("ETag", etag)
            self.halt()
            return

        self.start_header(code, cache, headers)
        # The file's own mtime replaces the "now" stamp from start_header().
        self.response.set_header("Last-Modified", last_modified)
        self.response.add_header("ETag", etag)
        self.response.add_header("Content-Length", str(stat.st_size))
        self.response.add_header("Content-Type", get_content_type(path))

        if disposition:
            name = path.name if disposition is True else str(disposition)
            name = html.escape(name, quote=True)
            self.response.add_header(
                "Content-Disposition", f'attachment; filename="{name}"'
            )

        if not noread:
            self.response.write(path.read_bytes())
        self.halt()

    # =========================================================================
    # JSON
    # =========================================================================

    def print_json(
        self,
        errno: int = 0,
        data: Any = None,
        http_code: int = 200,
        cache: int = 0,
    ) -> None:
        """
        Send a JSON envelope and halt.

            {"errno": 0, "data": ...}
        """
        if data is None:
            data = []
        payload = json.dumps({"errno": errno, "data": data})
        self.start_header(http_code, cache)
        self.response.add_header("Content-Length", str(len(payload.encode("utf-8"))))
        self.response.add_header("Content-Type", "application/json")
        self.halt(payload)

    def pj(
        self,
        retval: Sequence[Any],
        forbidden_code: Optional[int] = None,
        cache: int = 0,
    ) -> None:
        """
        Shorthand JSON response from an (errno, data) pair.

        errno 0 is sent as 200. Any other errno is sent as forbidden_code,
        or 401 when that is not given.
        """
        retval = list(retval)
        if len(retval) < 2:
            retval.append([])
        errno, data = retval[0], retval[1]
        http_code = 200
        if errno != 0:
            http_code = forbidden_code or 401
        self.print_json(errno, data, http_code, cache)

    # =========================================================================
    # COOKIES
    # =========================================================================

    def send_cookie(
        self,
        name: str,
        value: str = "",
        expires: int = 0,
        path: str = "/",
        domain: str = "",
        secure: bool = False,
        httponly: bool = False,
        samesite: Optional[str] = "Lax",
    ) -> "Header":
        """
        Add a Set-Cookie header.

        Args:
            expires: Lifetime in seconds. 0 makes a session cookie, a
                negative value or an empty value deletes the cookie.
        """
        jar = SimpleCookie()
        jar[name] = value
        morsel = jar[name]
        morsel["path"] = path
        if domain:
            morsel["domain"] = domain
        if secure:
            morsel["secure"] = True
        if httponly:
            morsel["httponly"] = True
        if samesite:
            morsel["samesite"] = samesite

        if expires < 0 or value == "":
            morsel["max-age"] = 0
            morsel["expires"] = format_http_date(0)
        elif expires > 0:
            morsel["max-age"] = int(expires)
            morsel["expires"] = format_http_date(time.time() + expires)

        self.response.add_header("Set-Cookie", morsel.OutputString())
        return self

    def delete_cookie(self, name: str, path: str = "/", domain: str = "") -> "Header":
        return self.send_cookie(name, "", -1, path=path, domain=domain)


def _header_lines(headers: HeaderArg) -> Iterable[str]:
    if not headers:
        return []
    if isinstance(headers, dict):
        return [f"{name}: {value}" for name, value in headers.items()]
    return list(headers)


def _not_modified(reqheaders: Dict[str, str], etag: str, mtime: float) -> bool:
    """Evaluate conditional request headers. If-None-Match takes precedence."""
    if_none_match = reqheaders.get("if-none-match")
    if if_none_match is not None:
        candidates = [tag.strip() for tag in if_none_match.split(",")]
        return "*" in candidates or etag in candidates

    if_modified_since = reqheaders.get("if-modified-since")
    if if_modified_since:
        try:
            since = parsedate_to_datetime(if_modified_since)
        except (TypeError, ValueError):
            return False
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        modified = datetime.fromtimestamp(int(mtime), tz=timezone.utc)
        return modified <= since
    return False
