"""
=============================================================================
REQUEST ENVIRONMENT
=============================================================================

Everything the router reads about the incoming request, in one object:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHERE REQUEST DATA COMES FROM                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   DevServer socket           WSGI host (gunicorn, waitress, ...)    │
    │        │                              │                              │
    │   HTTPRequest                    environ dict                        │
    │        │                              │                              │
    │        └──► from_request()   from_wsgi() ◄──┘                        │
    │                       │                                              │
    │                       ▼                                              │
    │              RequestEnvironment                                      │
    │     method, uri, headers, script_name, scheme, server_port           │
    │     query_map()  cookie_map()  form_fields()  uploaded_files()       │
    │     read_body()                                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Query, cookie and form data are parsed lazily on first access. The body is
read in full, once, and kept for later calls.

Form bodies:
    application/x-www-form-urlencoded → urllib.parse
    multipart/form-data               → python-multipart

Repeated keys keep the last value, the same way a flat key/value form map
behaves in most web stacks.
=============================================================================
"""

from dataclasses import dataclass, field
from http.cookies import CookieError, SimpleCookie
from typing import Any, BinaryIO, Callable, Dict, Optional, Tuple
from urllib.parse import parse_qsl, quote, urlsplit
import logging

from python_multipart.multipart import MultipartParser, parse_options_header

from .request import HTTPRequest


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    """
    A file received in a multipart/form-data body.

    Attributes:
        filename:     Client-supplied file name
        content_type: Part Content-Type, octet-stream when absent
        size:         Content length in bytes
        content:      File bytes, held in memory
        error:        0 when the part was received completely
    """

    filename: str
    content_type: str
    size: int
    content: bytes = field(repr=False, default=b"")
    error: int = 0

    def save(self, path) -> None:
        """Write the content to disk."""
        with open(path, "wb") as f:
            f.write(self.content)


@dataclass
class RequestEnvironment:
    """
    Request-side inputs for the router.

    Attributes:
        method:      Request method, upper case
        uri:         Raw request-target, e.g. "/app/post/12?draft=1"
        headers:     Header map with lower-case, dash-separated names
        script_name: Mount point of the application, None outside HTTP
        scheme:      "http" or "https"
        server_port: Port the request arrived on, when known
        body:        Raw body bytes. Left as None to read from body_stream.
        body_stream: Readable binary stream for a lazily read body
        form:        Pre-parsed form fields. Parsed from the body when None.
        files:       Pre-parsed uploads. Parsed from the body when None.
    """

    method: str = "GET"
    uri: str = "/"
    headers: Dict[str, str] = field(default_factory=dict)
    script_name: Optional[str] = None
    scheme: str = "http"
    server_port: Optional[int] = None
    body: Optional[bytes] = None
    body_stream: Optional[BinaryIO] = field(default=None, repr=False)
    form: Optional[Dict[str, Any]] = None
    files: Optional[Dict[str, UploadedFile]] = None

    _query: Optional[Dict[str, str]] = field(default=None, repr=False)
    _cookies: Optional[Dict[str, str]] = field(default=None, repr=False)

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    # =========================================================================
    # CONSTRUCTORS
    # =========================================================================

    @classmethod
    def from_request(
        cls,
        request: HTTPRequest,
        script_name: str = "",
        scheme: str = "http",
        server_port: Optional[int] = None,
    ) -> "RequestEnvironment":
        """Build an environment from a request parsed by the dev server."""
        return cls(
            method=request.method,
            uri=request.target,
            headers=dict(request.headers),
            script_name=script_name,
            scheme=scheme,
            server_port=server_port,
            body=request.body,
        )

    @classmethod
    def from_wsgi(cls, environ: Dict[str, Any]) -> "RequestEnvironment":
        """
        Build an environment from a WSGI environ dict (PEP 3333).

        The raw target comes from RAW_URI or REQUEST_URI when the host
        provides one. Otherwise it is rebuilt from SCRIPT_NAME, PATH_INFO
        and QUERY_STRING.
        """
        headers: Dict[str, str] = {}
        for key, value in environ.items():
            if key.startswith("HTTP_"):
                headers[key[5:].replace("_", "-").lower()] = value
        if environ.get("CONTENT_TYPE"):
            headers["content-type"] = environ["CONTENT_TYPE"]
        if environ.get("CONTENT_LENGTH"):
            headers["content-length"] = environ["CONTENT_LENGTH"]

        script_name = environ.get("SCRIPT_NAME", "")
        uri = environ.get("RAW_URI") or environ.get("REQUEST_URI")
        if not uri:
            # PEP 3333 strings are latin-1 decoded bytes.
            path = script_name + environ.get("PATH_INFO", "")
            uri = quote(path.encode("latin-1"), safe="/:@-._~!$&'()*+,;=%") or "/"
            if environ.get("QUERY_STRING"):
                uri += "?" + environ["QUERY_STRING"]

        try:
            port = int(environ.get("SERVER_PORT", 0)) or None
        except ValueError:
            port = None

        if "host" not in headers and environ.get("SERVER_NAME"):
            headers["host"] = environ["SERVER_NAME"]

        return cls(
            method=environ.get("REQUEST_METHOD", "GET"),
            uri=uri,
            headers=headers,
            script_name=script_name,
            scheme=environ.get("wsgi.url_scheme", "http"),
            server_port=port,
            body_stream=environ.get("wsgi.input"),
        )

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def content_type(self) -> str:
        """Media type without parameters, lower case."""
        return self.headers.get("content-type", "").split(";")[0].strip().lower()

    @property
    def content_length(self) -> int:
        try:
            return max(int(self.headers.get("content-length", 0)), 0)
        except ValueError:
            return 0

    @property
    def is_https(self) -> bool:
        return self.scheme == "https"

    def query_map(self) -> Dict[str, str]:
        """Query string parameters, last value wins."""
        if self._query is None:
            query = urlsplit(self.uri).query
            self._query = dict(parse_qsl(query, keep_blank_values=True))
        return self._query

    def cookie_map(self) -> Dict[str, str]:
        """Cookies sent by the client."""
        if self._cookies is None:
            self._cookies = {}
            raw = self.headers.get("cookie")
            if raw:
                jar = SimpleCookie()
                try:
                    jar.load(raw)
                except CookieError as e:
                    logger.debug(f"Ignoring malformed cookie header: {e}")
                self._cookies = {key: morsel.value for key, morsel in jar.items()}
        return self._cookies

    def read_body(self) -> bytes:
        """Read the full request body. Blocking, and cached after the first call."""
        if self.body is None:
            if self.body_stream is None:
                self.body = b""
            else:
                length = self.content_length
                self.body = self.body_stream.read(length) if length else b""
        return self.body

    def form_fields(self) -> Dict[str, Any]:
        """Parsed form fields of a urlencoded or multipart body."""
        if self.form is None:
            self.form, parsed_files = self._parse_form()
            if self.files is None:
                self.files = parsed_files
        return self.form

    def uploaded_files(self) -> Dict[str, UploadedFile]:
        """Files of a multipart body, keyed by field name."""
        if self.files is None:
            parsed_form, self.files = self._parse_form()
            if self.form is None:
                self.form = parsed_form
        return self.files

    # =========================================================================
    # FORM PARSING
    # =========================================================================

    def _parse_form(self) -> Tuple[Dict[str, str], Dict[str, UploadedFile]]:
        content_type = self.content_type
        if content_type == "application/x-www-form-urlencoded":
            text = self.read_body().decode("utf-8", errors="replace")
            return dict(parse_qsl(text, keep_blank_values=True)), {}
        if content_type == "multipart/form-data":
            return parse_multipart(self.read_body(), self.headers["content-type"])
        return {}, {}


def parse_multipart(
    body: bytes,
    content_type: str,
) -> Tuple[Dict[str, str], Dict[str, UploadedFile]]:
    """
    Parse a multipart/form-data body.

    Returns:
        (fields, files). A body without a boundary parameter yields two
        empty dicts.
    """
    _, options = parse_options_header(content_type.encode("latin-1"))
    boundary = options.get(b"boundary")
    if not boundary:
        logger.debug("Multipart body without boundary parameter")
        return {}, {}

    fields: Dict[str, str] = {}
    files: Dict[str, UploadedFile] = {}

    part: Dict[str, Any] = {}
    header_field = bytearray()
    header_value = bytearray()

    def on_part_begin() -> None:
        part.clear()
        part.update(headers={}, data=bytearray(), name=None, filename=None)

    def on_header_field(data: bytes, start: int, end: int) -> None:
        header_field.extend(data[start:end])

    def on_header_value(data: bytes, start: int, end: int) -> None:
        header_value.extend(data[start:end])

    def on_header_end() -> None:
        name = header_field.decode("latin-1").strip().lower()
        value = header_value.decode("latin-1").strip()
        header_field.clear()
        header_value.clear()
        part["headers"][name] = value
        if name == "content-disposition":
            _, params = parse_options_header(value.encode("latin-1"))
            if b"name" in params:
                part["name"] = params[b"name"].decode("utf-8", errors="replace")
            if b"filename" in params:
                part["filename"] = params[b"filename"].decode("utf-8", errors="replace")

    def on_part_data(data: bytes, start: int, end: int) -> None:
        part["data"].extend(data[start:end])

    def on_part_end() -> None:
        name = part.get("name")
        if name is None:
            return
        content = bytes(part["data"])
        if part["filename"] is not None:
            files[name] = UploadedFile(
                filename=part["filename"],
                content_type=part["headers"].get("content-type", "application/octet-stream"),
                size=len(content),
                content=content,
            )
        else:
            fields[name] = content.decode("utf-8", errors="replace")

    callbacks: Dict[str, Callable[..., None]] = {
        "on_part_begin": on_part_begin,
        "on_header_field": on_header_field,
        "on_header_value": on_header_value,
        "on_header_end": on_header_end,
        "on_part_data": on_part_data,
        "on_part_end": on_part_end,
    }

    parser = MultipartParser(boundary, callbacks)
    parser.write(body)
    parser.finalize()
    return fields, files
