"""
=============================================================================
RAW HTTP REQUEST PARSER
=============================================================================

Turns the bytes the development server reads off a socket into an
HTTPRequest. WSGI hosts never touch this module; they hand us a parsed
environ dict instead (see environ.py).

    GET /blog/post/12?draft=1 HTTP/1.1\r\n      ← request line
    Host: localhost:8000\r\n                     ← headers
    Cookie: sid=abc\r\n
    \r\n                                         ← separator
    <body bytes, Content-Length long>            ← body

The request-target is kept exactly as received in HTTPRequest.target.
The router works on the raw target so that percent-escapes in route
parameters reach the callback untouched.

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "Why keep both the raw target and the decoded path?"
A: "Decoding is lossy. '/files/a%2Fb' and '/files/a/b' decode to the same
   path but are different resources for a router with one-segment
   parameters."

Q: "How do you handle malformed requests?"
A: "HTTPParseError carries the status code to answer with: 400 for bad
   syntax, 413 for oversized requests, 505 for unknown versions."
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote, urlsplit
import re


class HTTPParseError(Exception):
    """
    Raised when a raw request cannot be parsed.

    Attributes:
        status_code: HTTP status the server should answer with.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed raw HTTP request.

    Attributes:
        method:         Request method, upper case ("GET", "POST", ...)
        target:         Request-target as received, query string included
        path:           Percent-decoded path, query string removed
        query_string:   Raw query string without the "?"
        version:        "HTTP/1.0" or "HTTP/1.1"
        headers:        Header map with lower-case names
        body:           Body bytes, exactly Content-Length long
        client_address: (ip, port) of the peer
    """

    method: str
    target: str
    path: str = "/"
    query_string: str = ""
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_address: Tuple[str, int] = ("", 0)

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def is_keep_alive(self) -> bool:
        """HTTP/1.1 keeps the connection unless told to close; 1.0 the opposite."""
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    Usage:
        parser = RequestParser(max_request_size=1024 * 1024)
        request = parser.parse(data, client_address=("127.0.0.1", 50312))
    """

    # Anything token-shaped is accepted here. Deciding whether a method is
    # supported is the router's job (TRACE gets a 405 from the dispatcher).
    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Raises:
            HTTPParseError: If the request is malformed, too large or
                            incomplete.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # Header bytes are ISO-8859-1 on the wire.
        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, target, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        split = urlsplit(target)
        return HTTPRequest(
            method=method,
            target=target,
            path=unquote(split.path) or "/",
            query_string=split.query,
            version=version,
            headers=headers,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str]:
        found = self.REQUEST_LINE_PATTERN.match(line)
        if not found:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = found.groups()
        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )
        if not (target.startswith("/") or target == "*"):
            # Absolute-form targets are for proxies.
            raise HTTPParseError(f"Unsupported request target: {target!r}")
        return method, target, version

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse header lines into a lower-case keyed dict.

        Continuation lines (leading whitespace) extend the previous header.
        Repeated headers are joined with ", ", except Cookie which RFC 6265
        joins with "; ".
        """
        headers: Dict[str, str] = {}
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            found = self.HEADER_PATTERN.match(line)
            if not found:
                continue

            name, value = found.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                separator = "; " if name == "cookie" else ", "
                headers[name] += separator + value
            else:
                headers[name] = value

        return headers
