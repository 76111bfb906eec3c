"""
Request path matcher.

Applies a compiled RouteTemplate to a normalized request path:

    match(compile_route("/post/<id>"), "/post/12")   → {"id": "12"}
    match(compile_route("/about"), "/about")         → {}
    match(compile_route("/about"), "/about/team")    → None

An empty dict is a successful match for a static route; None means the
route does not apply. Trailing slashes must already be normalized away by
the caller.
"""

from typing import Dict, Optional

from .parser import RouteTemplate


def match(template: RouteTemplate, request_path: str) -> Optional[Dict[str, str]]:
    """
    Match a request path against a compiled template.

    Args:
        template: Compiled route template.
        request_path: Normalized request path, e.g. "/users/42".

    Returns:
        Captured parameters keyed by name, or None when nothing matches.
    """
    # Static routes never touch the regex.
    if template.path == request_path:
        return {}

    if not template.param_names:
        return None

    found = template.pattern.fullmatch(request_path)
    if found is None:
        return None

    return dict(zip(template.param_names, found.groups()))
