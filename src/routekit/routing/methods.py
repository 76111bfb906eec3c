"""
Declared-method registry.

Every route declaration records its methods here, with HEAD injected so a
HEAD request is served by any route that serves GET. At the end of the
request the dispatcher asks the registry whether the request method was
declared anywhere, to choose between 404 and 501.
"""

from typing import Iterable, Iterator, List, Set, Tuple, Union


class MethodRegistry:
    """Set of HTTP methods declared during one request lifecycle."""

    def __init__(self):
        self._methods: Set[str] = set()

    @staticmethod
    def normalize(methods: Union[str, Iterable[str]]) -> Tuple[str, ...]:
        """
        Upper-case, de-duplicate and append HEAD, keeping declaration order.

        Example:
            MethodRegistry.normalize(["get", "POST", "get"])
            # ("GET", "POST", "HEAD")
        """
        if isinstance(methods, str):
            methods = [methods]

        ordered: List[str] = []
        for method in methods:
            method = method.strip().upper()
            if method and method not in ordered:
                ordered.append(method)
        if "HEAD" not in ordered:
            ordered.append("HEAD")
        return tuple(ordered)

    def record(self, methods: Union[str, Iterable[str]]) -> Tuple[str, ...]:
        """Merge a route's methods into the registry and return them normalized."""
        normalized = self.normalize(methods)
        self._methods.update(normalized)
        return normalized

    def contains(self, method: str) -> bool:
        return method.upper() in self._methods

    def __contains__(self, method: str) -> bool:
        return self.contains(method)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._methods))

    def __len__(self) -> int:
        return len(self._methods)

    def __repr__(self) -> str:
        return f"MethodRegistry({sorted(self._methods)!r})"
