"""
=============================================================================
ROUTEKIT
=============================================================================

A small HTTP micro-framework: ordered route declarations with typed path
parameters, a response writer with cache and JSON helpers, a JSON config
store and a line logger.

    from routekit import Application

    def setup(router):
        router.route("/", lambda args: router.header.print_json(0, "hello"))
        router.route("/post/<id>", show_post)
        router.route("/static/{path}", serve_static)

    app = Application(setup)      # WSGI callable

Run it locally:

    python -m routekit mymodule:setup --port 8000
=============================================================================
"""

__version__ = "1.0.0"

from .app import Application
from .config import ServerConfig
from .http import Halt, Header, HTTPResponse, HTTPStatus, RequestEnvironment, UploadedFile
from .logger import Logger
from .routing import PathError, PathErrorKind, RouteArgs, Router, compile_route, match
from .store import ConfigStore, ConfigStoreError

__all__ = [
    "__version__",
    "Application",
    "ServerConfig",
    "Halt",
    "Header",
    "HTTPResponse",
    "HTTPStatus",
    "RequestEnvironment",
    "UploadedFile",
    "Logger",
    "PathError",
    "PathErrorKind",
    "RouteArgs",
    "Router",
    "compile_route",
    "match",
    "ConfigStore",
    "ConfigStoreError",
]
