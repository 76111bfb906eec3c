"""
=============================================================================
HTTP STATUS CODES
=============================================================================

Status codes the response writer knows how to emit, with their reason
phrases.

    HTTP/1.1 404 Not Found
             ─┬─ ────┬────
              │      └── reason phrase (HTTPStatus.phrase)
              └───────── status code   (HTTPStatus value)

Codes outside this table are not emitted as-is. get_header_string() maps
any unknown code to 404, so a typo in application code still produces a
well-formed status line.
=============================================================================
"""

from enum import IntEnum
from typing import Tuple


class HTTPStatus(IntEnum):
    """
    Known HTTP status codes.

    IntEnum members compare equal to plain ints:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 1xx
    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101
    PROCESSING = 102

    # 2xx
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NON_AUTHORITATIVE_INFORMATION = 203
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206
    MULTI_STATUS = 207
    IM_USED = 226

    # 3xx
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    USE_PROXY = 305
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308

    # 4xx
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    PAYMENT_REQUIRED = 402
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    PROXY_AUTHENTICATION_REQUIRED = 407
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PRECONDITION_FAILED = 412
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    RANGE_NOT_SATISFIABLE = 416
    EXPECTATION_FAILED = 417
    UNPROCESSABLE_ENTITY = 422
    LOCKED = 423
    FAILED_DEPENDENCY = 424
    UPGRADE_REQUIRED = 426
    TOO_MANY_REQUESTS = 429

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505
    VARIANT_ALSO_NEGOTIATES = 506
    INSUFFICIENT_STORAGE = 507
    NOT_EXTENDED = 510

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _PHRASE_OVERRIDES.get(self, self.name.replace("_", " ").title())

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_error(self) -> bool:
        return self >= 400


# Phrases that don't follow from the member name.
_PHRASE_OVERRIDES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NON_AUTHORITATIVE_INFORMATION: "Non-Authoritative Information",
    HTTPStatus.MULTI_STATUS: "Multi-Status",
    HTTPStatus.IM_USED: "IM Used",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.URI_TOO_LONG: "URI Too Long",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


def get_header_string(code: int) -> Tuple[HTTPStatus, str]:
    """
    Resolve a status code and its reason phrase.

    Unknown codes fall back to 404:

        get_header_string(200)  # (HTTPStatus.OK, "OK")
        get_header_string(299)  # (HTTPStatus.NOT_FOUND, "Not Found")
    """
    try:
        status = HTTPStatus(int(code))
    except (TypeError, ValueError):
        status = HTTPStatus.NOT_FOUND
    return status, status.phrase
