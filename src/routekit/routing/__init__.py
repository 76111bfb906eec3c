"""
Routing: template compilation, path matching and the per-request router.

    parser.py   route templates → RouteTemplate (anchored regex + names)
    matcher.py  RouteTemplate × request path → params or None
    methods.py  methods declared during a request, for the 404/501 fallback
    router.py   Router state machine and RouteArgs
"""

from .matcher import match
from .methods import MethodRegistry
from .parser import PathError, PathErrorKind, RouteTemplate, clear_cache, compile_route
from .router import RouteArgs, Router

__all__ = [
    "compile_route",
    "clear_cache",
    "match",
    "MethodRegistry",
    "PathError",
    "PathErrorKind",
    "RouteArgs",
    "RouteTemplate",
    "Router",
]
