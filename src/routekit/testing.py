"""
Test helpers for routed applications.

RouterDev is a Router whose halt() does not unwind, so a test can declare
routes, let one fire, and then inspect the response it produced:

    core = RoutingDev().request("/post/12", "GET")
    core.route("/post/<id>", lambda args: core.header.print_json(0, args.params))
    assert core.code == 200
    assert core.data == {"id": "12"}

Unmatched requests need an explicit core.shutdown(), which is what the
application host would call at the end of a real request.
"""

from typing import Any, Dict, List, Mapping, Optional, Type, Union
from urllib.parse import urlencode
import json

from .http.environ import RequestEnvironment, UploadedFile
from .http.response import Header, HTTPResponse
from .logger import Logger
from .routing.router import Router


class HeaderDev(Header):
    """Header whose halt() records the halt instead of raising."""

    def __init__(self, response: Optional[HTTPResponse] = None):
        super().__init__(response)
        self.halt_count = 0

    def halt(self, arg: Any = None) -> None:
        self._write_halt_payload(arg)
        self.halt_count += 1


class RouterDev(Router):
    """Router wired to a HeaderDev, with accessors for the response."""

    def __init__(self, environment: Optional[RequestEnvironment] = None, **kwargs: Any):
        kwargs.setdefault("header", HeaderDev())
        super().__init__(environment, **kwargs)

    @property
    def response(self) -> HTTPResponse:
        return self.header.response

    @property
    def code(self) -> int:
        return int(self.response.status)

    @property
    def head(self) -> List[str]:
        """Response headers as "Name: value" lines."""
        return [f"{name}: {value}" for name, value in self.response.headers]

    @property
    def body_raw(self) -> str:
        return self.response.body.decode("utf-8", errors="replace")

    @property
    def body(self) -> Any:
        """Decoded JSON body, or None when the body is not JSON."""
        try:
            return json.loads(self.body_raw)
        except ValueError:
            return None

    @property
    def errno(self) -> Optional[int]:
        body = self.body
        return body.get("errno") if isinstance(body, dict) else None

    @property
    def data(self) -> Any:
        body = self.body
        return body.get("data") if isinstance(body, dict) else None


class RoutingDev:
    """
    Factory of RouterDev instances bound to synthetic requests.

    Each request() call returns a new router; nothing is shared between
    them except the Logger.
    """

    def __init__(
        self,
        logger: Optional[Logger] = None,
        router_class: Type[RouterDev] = RouterDev,
        home: Optional[str] = None,
        host: Optional[str] = None,
    ):
        self.logger = logger if logger is not None else Logger()
        self.router_class = router_class
        self.home = home
        self.host = host

    def request(
        self,
        uri: str = "/",
        method: str = "GET",
        *,
        get: Optional[Mapping[str, Any]] = None,
        post: Union[Mapping[str, Any], str, None] = None,
        files: Optional[Dict[str, UploadedFile]] = None,
        body: Union[str, bytes, None] = None,
        headers: Optional[Mapping[str, str]] = None,
        cookie: Optional[Mapping[str, str]] = None,
        script_name: Optional[str] = None,
    ) -> RouterDev:
        """
        Build a router for one request.

        Args:
            uri: Request-target. get parameters are appended to it.
            method: Request method.
            get: Extra query parameters.
            post: Form fields (mapping) or raw body (string).
            files: Uploaded files, used with a mapping post.
            body: Raw body for PUT, PATCH, DELETE or raw POST.
            headers: Request headers.
            cookie: Cookies, sent as a Cookie header.
            script_name: Mount point, as a host would report it.
        """
        headers = {k.lower(): v for k, v in (headers or {}).items()}

        if get:
            separator = "&" if "?" in uri else "?"
            uri = f"{uri}{separator}{urlencode(get)}"

        if cookie:
            headers["cookie"] = "; ".join(f"{k}={v}" for k, v in cookie.items())

        form = None
        if isinstance(post, Mapping):
            form = {k: v for k, v in post.items()}
            headers.setdefault("content-type", "application/x-www-form-urlencoded")
            if body is None:
                body = urlencode(form)
        elif isinstance(post, str) and body is None:
            body = post

        if isinstance(body, str):
            body = body.encode("utf-8")
        if body is not None:
            headers.setdefault("content-length", str(len(body)))

        environment = RequestEnvironment(
            method=method,
            uri=uri,
            headers=headers,
            script_name=script_name,
            body=body,
            form=form,
            files=dict(files) if files is not None else ({} if form is not None else None),
        )
        return self.router_class(
            environment,
            logger=self.logger,
            home=self.home,
            host=self.host,
        )
