"""
=============================================================================
ROUTE PATH PARSER
=============================================================================

Compiles route templates such as "/users/<id>/files/{path}" into anchored
regular expressions plus the ordered list of parameter names.

=============================================================================
TEMPLATE SYNTAX
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ROUTE TEMPLATE ANATOMY                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │     /users/<id>/files/{path}                                         │
    │     ─┬──── ─┬── ─┬─── ──┬───                                        │
    │      │      │    │      │                                            │
    │   literal short literal long                                         │
    │            param        param                                        │
    │                                                                      │
    │   <id>    one segment, never crosses a "/"                          │
    │   {path}  one or more segments, "/" allowed                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Allowed characters (literals and captured values):
        letters, digits, "_", ".", "-", "@", "%", ":"

    A placeholder must fill a whole segment. "/x/y{v}" is rejected
    because the "{" is preceded by a literal character.

=============================================================================
COMPILATION STEPS
=============================================================================

    "/users/<id>/"
          │
          ▼   1. must start with "/"             → PATH_INVALID
          ▼   2. strip trailing "/" (unless "/")
          ▼   3. character whitelist             → CHAR_INVALID
          ▼   4. delimiter adjacency             → DYNAMIC_PATH_INVALID
          ▼   5. placeholder names, in order     → PARAM_KEY_INVALID
          ▼   6. placeholder names unique        → PARAM_KEY_REUSED
          ▼   7. build the pattern
    RouteTemplate(path="/users/<id>", param_names=("id",),
                  pattern=re.compile(r"/users/([a-zA-Z0-9_\\.\\-@%:]+)"))

Compiled templates are cached for the process lifetime, keyed by the raw
template string. The cache is shared between threads so it sits behind a
lock.

=============================================================================
INTERVIEW QUESTIONS ABOUT ROUTE COMPILATION
=============================================================================

Q: "Why compile templates to regex instead of splitting on '/'?"
A: "Segment splitting handles one-segment params well, but a param that
   spans several segments needs backtracking. A regex gives us both forms
   with a single fullmatch call."

Q: "Why cache compiled templates?"
A: "Routes are declared on every request. Compiling once per distinct
   template string turns the per-request cost into a dict lookup."

Q: "Why not cache failures?"
A: "A bad template is a programming error. It should fail loudly every
   time so it is impossible to miss in the log."
=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple
import re
import threading


class PathErrorKind(Enum):
    """Reasons a route template can be rejected."""

    PATH_INVALID = "path_invalid"
    CHAR_INVALID = "char_invalid"
    DYNAMIC_PATH_INVALID = "dynamic_path_invalid"
    PARAM_KEY_INVALID = "param_key_invalid"
    PARAM_KEY_REUSED = "param_key_reused"


class PathError(ValueError):
    """
    Raised when a route template cannot be compiled.

    Carries a PathErrorKind so callers can branch on the reason without
    parsing the message:

        try:
            compile_route("/x/<1a>")
        except PathError as e:
            assert e.kind is PathErrorKind.PARAM_KEY_INVALID
    """

    def __init__(self, kind: PathErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


@dataclass(frozen=True)
class RouteTemplate:
    """
    A compiled route template.

    Attributes:
        raw:         The template as declared, e.g. "/users/<id>/"
        path:        Normalized template, trailing "/" removed
        param_names: Placeholder names in left-to-right order
        pattern:     Regex matched against the whole request path
    """

    raw: str
    path: str
    param_names: Tuple[str, ...]
    pattern: "re.Pattern[str]"

    @property
    def is_static(self) -> bool:
        """True when the template has no placeholders."""
        return not self.param_names


# =============================================================================
# PATTERNS
# =============================================================================

VALUE_CHARS = r"a-zA-Z0-9_\.\-@%:"

TEMPLATE_CHARS_PATTERN = re.compile(rf"[{VALUE_CHARS}/<>{{}}]+")

# A delimiter glued to a literal character on the wrong side.
ADJACENCY_PATTERN = re.compile(r"[^/<>{}][<{]|[>}][^/<>{}]")

# A placeholder token, always right after a "/".
TOKEN_PATTERN = re.compile(r"/([<{][^>}]*[>}])")

PARAM_NAME_PATTERN = re.compile(r"[a-z][a-z0-9_]*", re.IGNORECASE)

SHORT_CAPTURE = f"([{VALUE_CHARS}]+)"
LONG_CAPTURE = f"([{VALUE_CHARS}/]+)"


_cache: Dict[str, RouteTemplate] = {}
_cache_lock = threading.Lock()


def compile_route(template: str) -> RouteTemplate:
    """
    Compile a route template, using the process-wide cache.

    Args:
        template: Route template, e.g. "/post/<id>" or "/static/{path}"

    Returns:
        The compiled RouteTemplate.

    Raises:
        PathError: If the template is malformed.
    """
    with _cache_lock:
        cached = _cache.get(template)
    if cached is not None:
        return cached

    compiled = _compile(template)

    with _cache_lock:
        # Another thread may have won the race; keep the first entry.
        return _cache.setdefault(template, compiled)


def clear_cache() -> None:
    """Drop every cached template."""
    with _cache_lock:
        _cache.clear()


def _compile(template: str) -> RouteTemplate:
    if not isinstance(template, str) or not template.startswith("/"):
        raise PathError(
            PathErrorKind.PATH_INVALID,
            f"Route path must start with '/': {template!r}",
        )

    path = template
    if path != "/":
        path = path.rstrip("/")

    if not TEMPLATE_CHARS_PATTERN.fullmatch(path):
        raise PathError(
            PathErrorKind.CHAR_INVALID,
            f"Route path contains invalid characters: {template!r}",
        )

    if ADJACENCY_PATTERN.search(path):
        raise PathError(
            PathErrorKind.DYNAMIC_PATH_INVALID,
            f"Placeholder must span a whole path segment: {template!r}",
        )

    param_names = _collect_param_names(path, template)

    return RouteTemplate(
        raw=template,
        path=path,
        param_names=tuple(param_names),
        pattern=re.compile(_build_pattern(path)),
    )


def _collect_param_names(path: str, template: str) -> List[str]:
    names: List[str] = []
    for token in TOKEN_PATTERN.findall(path):
        name = token[1:-1]
        if not PARAM_NAME_PATTERN.fullmatch(name):
            raise PathError(
                PathErrorKind.PARAM_KEY_INVALID,
                f"Invalid placeholder name {name!r} in {template!r}",
            )
        names.append(name)

    # Uniqueness is checked only once every name has proven valid.
    seen = set()
    for name in names:
        if name in seen:
            raise PathError(
                PathErrorKind.PARAM_KEY_REUSED,
                f"Placeholder name {name!r} used twice in {template!r}",
            )
        seen.add(name)
    return names


def _build_pattern(path: str) -> str:
    parts: List[str] = []
    last = 0
    for match in TOKEN_PATTERN.finditer(path):
        parts.append(re.escape(path[last:match.start(1)]))
        token = match.group(1)
        parts.append(LONG_CAPTURE if token.startswith("{") else SHORT_CAPTURE)
        last = match.end(1)
    parts.append(re.escape(path[last:]))
    return "".join(parts)
