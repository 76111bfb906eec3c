"""
HTTP message handling.

    request.py       raw request bytes → HTTPRequest (development server)
    environ.py       HTTPRequest or WSGI environ → RequestEnvironment
    response.py      HTTPResponse and the Header response writer
    status_codes.py  HTTPStatus and reason phrases
    mime_types.py    Content-Type detection for sent files
"""

from .environ import RequestEnvironment, UploadedFile, parse_multipart
from .mime_types import get_content_type, get_mime_type
from .request import HTTPParseError, HTTPRequest, RequestParser
from .response import Halt, Header, HTTPResponse, format_http_date
from .status_codes import HTTPStatus, get_header_string

__all__ = [
    "RequestEnvironment",
    "UploadedFile",
    "parse_multipart",
    "get_content_type",
    "get_mime_type",
    "HTTPParseError",
    "HTTPRequest",
    "RequestParser",
    "Halt",
    "Header",
    "HTTPResponse",
    "format_http_date",
    "HTTPStatus",
    "get_header_string",
]
