"""
=============================================================================
REQUEST ROUTER
=============================================================================

One Router per request. Routes are declared on it in order, and the first
one whose path and method match the request runs. After that the router
is "handled" and every later declaration is a no-op.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        DISPATCH FLOW                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   POST /blog/post/12                                                 │
    │        │                                                             │
    │        ▼                                                             │
    │   route("/", home)                 GET,HEAD    path differs   skip   │
    │   route("/post/<id>", show)        GET,HEAD    path matches,         │
    │        │                                       method differs        │
    │        │                                       → path_known   skip   │
    │   route("/post/<id>", edit, "POST")            match! ──────┐        │
    │   route("/post/<id>", other, "POST")  handled, no-op       │        │
    │                                                             ▼        │
    │                         args = RouteArgs(method="POST",              │
    │                                          params={"id": "12"},        │
    │                                          post={...form...}, ...)     │
    │                         middleware(args, router) by priority         │
    │                         edit(args)                                   │
    │                         header.halt()                                │
    │                                                                      │
    │   Nothing matched? finish() → shutdown():                            │
    │       request method declared by any route, or path matched         │
    │       under another method                              → 404       │
    │       otherwise                                         → 501       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST PATH
=============================================================================

    home    = "/blog/"
    uri     = "/blog/post/12/?draft=1"
                    │
        strip query │  "/blog/post/12/"
        strip home  │  "post/12/"
        trim "/"    │  "post/12"
        lead "/"    ▼  "/post/12"          ← request_path
                       ["post", "12"]      ← request_comp()

The path is not percent-decoded. Route parameters reach callbacks exactly
as the client sent them.

=============================================================================
CUSTOMIZING
=============================================================================

Subclass and override the *_default renderers:

    class JSONRouter(Router):
        def abort_default(self, code):
            self.header.print_json(code, None, code)

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "Why is matching a linear scan instead of a lookup table?"
A: "Routes are declared by running code on every request, so the order
   of declaration is the priority. The first structural match wins, and
   the scan stops there because the router becomes handled."

Q: "Why 404 for a known path with the wrong method, but 501 otherwise?"
A: "501 says the application implements that verb nowhere. If any route
   accepts the verb, or this exact path exists under another verb, the
   verb is implemented and only the resource is missing."
=============================================================================
"""

from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import html
import json

from ..http.environ import RequestEnvironment, UploadedFile
from ..http.response import Header
from ..logger import Logger
from .matcher import match
from .methods import MethodRegistry
from .parser import PathError, compile_route


BODYLESS_METHODS = ("GET", "HEAD", "OPTIONS")
RAW_BODY_METHODS = ("PUT", "DELETE", "PATCH")

CONFIG_KEYS = ("home", "host", "shutdown", "logger")

Middleware = Callable[["RouteArgs", "Router"], Any]


@dataclass
class RouteArgs:
    """
    Arguments passed to a route callback.

    Attributes:
        method: Request method
        params: Values captured by the route's placeholders
        get:    Query string parameters
        post:   Form fields, or the raw body string for raw_body routes
        files:  Uploaded files of a multipart POST
        put:    Raw body of a PUT request
        delete: Raw body of a DELETE request
        patch:  Raw body of a PATCH request
        cookie: Request cookies
        header: Request headers, names lower-cased with "-" as "_"
    """

    method: str = "GET"
    params: Dict[str, str] = field(default_factory=dict)
    get: Dict[str, str] = field(default_factory=dict)
    post: Union[Dict[str, Any], str] = field(default_factory=dict)
    files: Dict[str, UploadedFile] = field(default_factory=dict)
    put: Optional[str] = None
    delete: Optional[str] = None
    patch: Optional[str] = None
    cookie: Dict[str, str] = field(default_factory=dict)
    header: Dict[str, str] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        if key not in _ROUTE_ARG_NAMES:
            raise KeyError(key)
        return getattr(self, key)


_ROUTE_ARG_NAMES = frozenset(f.name for f in fields(RouteArgs))


_ERROR_PAGE = """<!doctype html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{code} {phrase}</title>
    <style>
      body {{background-color: #eee; font-family: sans-serif;}}
      div  {{background-color: #fff; border: 1px solid #ddd;
            padding: 25px; max-width: 800px;
            margin: 20vh auto 0 auto; text-align: center;}}
    </style>
  </head>
  <body>
    <div>
      <h1>{code} {phrase}</h1>
      {message}
    </div>
  </body>
</html>
"""


class Router:
    """
    Per-request route dispatcher.

    Usage:
        router = Router(environment, logger=logger)
        router.route("/", index)
        router.route("/post/<id>", show_post)
        router.route("/post/<id>", update_post, ["PUT", "PATCH"])
        router.finish()
    """

    def __init__(
        self,
        environment: Optional[RequestEnvironment] = None,
        header: Optional[Header] = None,
        logger: Optional[Logger] = None,
        home: Optional[str] = None,
        host: Optional[str] = None,
        shutdown: bool = True,
    ):
        self.environment = environment if environment is not None else RequestEnvironment()
        self.header = header if header is not None else Header()
        self.logger = logger if logger is not None else Logger()
        self.methods = MethodRegistry()

        self._config_home: Optional[str] = None
        self._config_host: Optional[str] = None
        self._shutdown = True

        self._initialized = False
        self._home = "/"
        self._host = ""
        self._request_path = "/"
        self._request_comp: List[str] = []

        self._handled = False
        self._path_known = False

        self._middlewares: List[Tuple[int, int, Middleware]] = []
        self._arg_overrides: Dict[str, Any] = {}

        if home is not None:
            self.config("home", home)
        if host is not None:
            self.config("host", host)
        self.config("shutdown", shutdown)

        self.logger.debug("Router: started.")

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def config(self, key: str, value: Any) -> "Router":
        """
        Set a router option. Only effective before the first init().

        Keys:
            home:     path prefix the application is mounted under
            host:     base URL, ending with home
            shutdown: run the 404/501 fallback from finish()
            logger:   Logger instance
        """
        if self._initialized:
            self.logger.warning(f"Router: config '{key}' ignored after init.")
            return self

        if key not in CONFIG_KEYS:
            self.logger.warning(f"Router: unknown config key '{key}'.")
            return self

        if key == "home":
            if not isinstance(value, str) or not value.startswith("/"):
                self.logger.warning(f"Router: invalid home: {value!r}.")
                return self
            self._config_home = value.rstrip("/") + "/"
        elif key == "host":
            if not isinstance(value, str) or not value:
                self.logger.warning(f"Router: invalid host: {value!r}.")
                return self
            self._config_host = value.rstrip("/") + "/"
        elif key == "shutdown":
            self._shutdown = bool(value)
        elif key == "logger":
            if not isinstance(value, Logger):
                self.logger.warning(f"Router: invalid logger: {value!r}.")
                return self
            self.logger = value
        return self

    def init(self) -> "Router":
        """Resolve home, host and the request path. Runs once."""
        if self._initialized:
            return self
        self._initialized = True

        self._home = self._config_home or self._derive_home()
        self._host = self._resolve_host()

        uri = self.environment.uri or "/"
        uri = uri.split("?", 1)[0].split("#", 1)[0]
        if uri.startswith(self._home):
            uri = uri[len(self._home):]
        elif uri == self._home.rstrip("/"):
            uri = ""
        trimmed = uri.strip("/")

        self._request_path = "/" + trimmed
        self._request_comp = trimmed.split("/") if trimmed else []
        self.logger.debug(f"Router: request path: '{self._request_path}'.")
        return self

    def _derive_home(self) -> str:
        script_name = self.environment.script_name
        if not script_name:
            return "/"
        return script_name.rstrip("/") + "/"

    def _resolve_host(self) -> str:
        if self._config_host is not None:
            if self._config_host.endswith(self._home):
                return self._config_host
            self.logger.warning(
                f"Router: host '{self._config_host}' does not end with home '{self._home}'."
            )

        env = self.environment
        host = env.headers.get("host") or "localhost"
        port = env.server_port
        if port and port not in (80, 443) and ":" not in host:
            host = f"{host}:{port}"
        return f"{env.scheme or 'http'}://{host}{self._home}"

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def home(self) -> str:
        return self.init()._home

    @property
    def host(self) -> str:
        return self.init()._host

    @property
    def request_path(self) -> str:
        return self.init()._request_path

    @property
    def request_method(self) -> str:
        return self.environment.method

    @property
    def handled(self) -> bool:
        return self._handled

    def request_comp(self, index: Optional[int] = None) -> Union[List[str], Optional[str]]:
        """Request path components, or one of them. Out of range gives None."""
        comp = self.init()._request_comp
        if index is None:
            return list(comp)
        try:
            return comp[index]
        except IndexError:
            return None

    # =========================================================================
    # MIDDLEWARE
    # =========================================================================

    def add_middleware(self, middleware: Middleware, priority: int = 0) -> "Router":
        """
        Run a callable on the route arguments before each route callback.

        Lower priority runs first; equal priorities run in the order they
        were added. Adding the same callable twice has no effect.
        """
        if not callable(middleware):
            raise TypeError(f"Middleware must be callable, got {middleware!r}")
        if any(existing is middleware for _, _, existing in self._middlewares):
            return self
        self._middlewares.append((priority, len(self._middlewares), middleware))
        self._middlewares.sort(key=lambda item: (item[0], item[1]))
        return self

    def override_callback_args(self, **overrides: Any) -> "Router":
        """
        Force route argument fields, e.g. override_callback_args(post={...}).

        Meant for tests and command-line invocation, where no real request
        body exists.
        """
        unknown = set(overrides) - _ROUTE_ARG_NAMES
        if unknown:
            raise TypeError(f"Unknown route argument(s): {', '.join(sorted(unknown))}")
        self._arg_overrides.update(overrides)
        return self

    # =========================================================================
    # ROUTING
    # =========================================================================

    def route(
        self,
        path: str,
        callback: Callable[[RouteArgs], Any],
        methods: Union[str, List[str], Tuple[str, ...]] = "GET",
        raw_body: bool = False,
    ) -> "Router":
        """
        Declare a route.

        Args:
            path: Route template, e.g. "/post/<id>" or "/static/{path}".
            callback: Called with a RouteArgs when the route matches.
            methods: Method or list of methods. HEAD is always added.
            raw_body: For POST, pass the raw body string instead of the
                parsed form.

        Raises:
            TypeError: If callback is not callable.
            PathError: If the template is malformed and the route applies
                to the request method.
        """
        self.init()
        if self._handled:
            return self

        if not callable(callback):
            raise TypeError(f"Route callback for '{path}' is not callable")

        declared = self.methods.record(methods)
        method = self.request_method
        if method not in declared:
            self._note_known_path(path, method)
            return self

        try:
            template = compile_route(path)
        except PathError as e:
            self.logger.error(f"Router: {e.kind.value}: {e}")
            raise

        params = match(template, self._request_path)
        if params is None:
            return self

        args = RouteArgs(
            method=method,
            params=params,
            get=dict(self.environment.query_map()),
            cookie=dict(self.environment.cookie_map()),
            header=self._header_map(),
        )

        if method in BODYLESS_METHODS:
            pass
        elif method == "POST":
            if raw_body:
                args.post = self._raw_body()
            else:
                args.post = dict(self.environment.form_fields())
                args.files = dict(self.environment.uploaded_files())
        elif method in RAW_BODY_METHODS:
            setattr(args, method.lower(), self._raw_body())
        else:
            self.logger.warning(
                f"Router: {method} not supported in '{self._request_path}'."
            )
            self.abort(405)
            return self

        self._handled = True
        self.wrap_callback(callback, args)
        return self

    def _note_known_path(self, path: str, method: str) -> None:
        # Routes for other methods only count towards the 404/501 choice.
        try:
            template = compile_route(path)
        except PathError:
            return
        if match(template, self._request_path) is not None:
            self._path_known = True
            self.logger.debug(f"Router: {method} not declared for '{template.path}'.")

    def wrap_callback(self, callback: Callable[[RouteArgs], Any], args: RouteArgs) -> None:
        """Run middleware and the route callback, then halt."""
        for name, value in self._arg_overrides.items():
            setattr(args, name, value)

        for _, _, middleware in self._middlewares:
            middleware(args, self)

        self.logger.info(f"Router: {args.method} '{self._request_path}'.")
        callback(args)
        self.header.halt()

    def _header_map(self) -> Dict[str, str]:
        return {
            name.lower().replace("-", "_"): value
            for name, value in self.environment.headers.items()
        }

    def _raw_body(self) -> str:
        return self.environment.read_body().decode("utf-8", errors="replace")

    # =========================================================================
    # TERMINAL ACTIONS
    # =========================================================================

    def abort(self, code: int) -> None:
        """Send an error page and halt. Always marks the request handled."""
        self._handled = True
        self.logger.info(f"Router: abort {code}: '{self.request_path}'.")
        self.abort_default(code)
        self.header.halt()

    def redirect(self, destination: str, code: int = 301) -> None:
        """
        Redirect to destination and halt.

        Raises:
            ValueError: If destination contains a line break.
        """
        self._handled = True
        self.logger.info(f"Router: redirect: '{self.request_path}' -> '{destination}'.")
        self.redirect_default(destination, code)
        self.header.halt()

    def static_file(
        self,
        path: str,
        *,
        cache: int = 0,
        disposition: Union[bool, str, None] = None,
        headers: Any = None,
        reqheaders: Optional[Dict[str, str]] = None,
        noread: bool = False,
        callback_notfound: Optional[Callable[[], Any]] = None,
    ) -> None:
        """Send a file from disk and halt. A missing file gives a 404 page."""
        self._handled = True
        self.logger.info(f"Router: static: '{path}'.")
        self.static_file_default(
            path,
            cache=cache,
            disposition=disposition,
            headers=headers,
            reqheaders=reqheaders,
            noread=noread,
            callback_notfound=callback_notfound,
        )
        self.header.halt()

    def shutdown(self) -> None:
        """Answer 404 or 501 when no route handled the request."""
        if self._handled:
            return
        method = self.request_method
        code = 404 if (method in self.methods or self._path_known) else 501
        self.logger.warning(f"Router: shutdown {code} in {method} '{self.request_path}'.")
        self.abort(code)

    def finish(self) -> None:
        """End-of-request hook. Runs shutdown() unless disabled by config."""
        if self._shutdown:
            self.shutdown()

    # =========================================================================
    # DEFAULT RENDERERS
    # =========================================================================

    def abort_default(self, code: int) -> None:
        status, phrase = self.header.get_header_string(code)
        uri = html.escape(self.environment.uri, quote=True)
        self.header.start_header(status)
        self.header.response.add_header("Content-Type", "text/html; charset=utf-8")
        self.header.echo(_ERROR_PAGE.format(
            code=int(status),
            phrase=phrase,
            message=(
                f"<p>The URL <tt>&#039;<a href='{uri}'>{uri}</a>&#039;</tt>\n"
                f"         caused an error.</p>"
            ),
        ))

    def redirect_default(self, destination: str, code: int = 301) -> None:
        status, phrase = self.header.get_header_string(code)
        self.header.start_header(status, 0, {"Location": destination})
        self.header.response.add_header("Content-Type", "text/html; charset=utf-8")
        dst = html.escape(destination, quote=True)
        self.header.echo(_ERROR_PAGE.format(
            code=int(status),
            phrase=phrase,
            message=f"<p>See <tt>&#039;<a href='{dst}'>{dst}</a>&#039;</tt>.</p>",
        ))

    def static_file_default(
        self,
        path: str,
        cache: int = 0,
        disposition: Union[bool, str, None] = None,
        headers: Any = None,
        reqheaders: Optional[Dict[str, str]] = None,
        noread: bool = False,
        callback_notfound: Optional[Callable[[], Any]] = None,
    ) -> None:
        if callback_notfound is None:
            def callback_notfound():
                self.abort_default(404)
        if reqheaders is None:
            reqheaders = self.environment.headers
        self.header.send_file(
            path,
            cache=cache,
            disposition=disposition,
            headers=headers,
            reqheaders=reqheaders,
            noread=noread,
            callback_notfound=callback_notfound,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def get_json(args: Optional[RouteArgs]) -> Dict[str, Any]:
        """
        Decode a JSON object body for the request method.

        Returns an empty dict unless the Content-Type is application/json
        and the method's body field holds a JSON object.
        """
        if args is None:
            return {}
        content_type = args.header.get("content_type", "")
        if content_type.split(";")[0].strip().lower() != "application/json":
            return {}

        body = {
            "POST": args.post,
            "PUT": args.put,
            "PATCH": args.patch,
            "DELETE": args.delete,
        }.get(args.method.upper())
        if not isinstance(body, str) or not body:
            return {}

        try:
            data = json.loads(body)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
