"""
=============================================================================
APPLICATION
=============================================================================

Glue between a request source and the router.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        REQUEST LIFECYCLE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   RequestEnvironment                                                 │
    │        │                                                             │
    │        ▼                                                             │
    │   Application.handle()                                               │
    │        ├──► response = HTTPResponse()                                │
    │        ├──► router = Router(environment, Header(response), logger)  │
    │        ├──► setup(router)          routes declared and dispatched    │
    │        ├──► router.finish()        404 / 501 if nothing ran         │
    │        └──► Halt caught            response is complete             │
    │        │                                                             │
    │        ▼                                                             │
    │   HTTPResponse                                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The setup function is the application: it declares routes on the router
it receives. It runs once per request with a fresh Router, so nothing
leaks from one request to the next except the shared Logger.

    def setup(router):
        router.route("/", index)
        router.route("/post/<id>", show_post)

    app = Application(setup)          # a WSGI callable as well
=============================================================================
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type

from .http.environ import RequestEnvironment
from .http.response import Halt, Header, HTTPResponse
from .logger import Logger
from .routing.router import Router


Setup = Callable[[Router], Any]


class Application:
    """
    Runs a route setup function against requests.

    Args:
        setup: Called with a fresh Router for every request.
        logger: Shared Logger. A quiet stderr Logger by default.
        home: Mount prefix forwarded to each Router.
        host: Base URL forwarded to each Router.
        shutdown: Whether unhandled requests get the 404/501 fallback.
        router_class: Router subclass to instantiate.
        header_class: Header subclass to instantiate.
    """

    def __init__(
        self,
        setup: Setup,
        logger: Optional[Logger] = None,
        home: Optional[str] = None,
        host: Optional[str] = None,
        shutdown: bool = True,
        router_class: Type[Router] = Router,
        header_class: Type[Header] = Header,
    ):
        if not callable(setup):
            raise TypeError("setup must be callable")
        self.setup = setup
        self.logger = logger if logger is not None else Logger()
        self.home = home
        self.host = host
        self.shutdown = shutdown
        self.router_class = router_class
        self.header_class = header_class

    def make_router(self, environment: RequestEnvironment, response: HTTPResponse) -> Router:
        return self.router_class(
            environment,
            header=self.header_class(response),
            logger=self.logger,
            home=self.home,
            host=self.host,
            shutdown=self.shutdown,
        )

    def handle(self, environment: RequestEnvironment) -> HTTPResponse:
        """
        Dispatch one request.

        Exceptions raised by route callbacks propagate to the caller.
        """
        response = HTTPResponse()
        router = self.make_router(environment, response)
        try:
            self.setup(router)
            router.finish()
        except Halt:
            pass
        return response

    # =========================================================================
    # WSGI
    # =========================================================================

    def __call__(
        self,
        environ: Dict[str, Any],
        start_response: Callable[[str, List[Tuple[str, str]]], Any],
    ) -> Iterable[bytes]:
        """WSGI entry point (PEP 3333)."""
        environment = RequestEnvironment.from_wsgi(environ)
        response = self.handle(environment)

        headers = list(response.headers)
        if response.get_header("Content-Length") is None:
            headers.append(("Content-Length", str(len(response.body))))
        start_response(response.wsgi_status, headers)

        if environment.method == "HEAD":
            return [b""]
        return [response.body]
