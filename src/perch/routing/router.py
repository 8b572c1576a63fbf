"""Compiled router with exact-path matching.

Routes are registered during setup and frozen into a lookup table when
the app freezes. Paths compare without leading/trailing slashes, so
``/about`` and ``/about/`` are the same route.
"""

from perch.errors import ConfigurationError, MethodNotAllowed, NotFound
from perch.routing.route import Route


def normalize_path(path: str) -> str:
    """Canonical lookup key for a route or request path."""
    return "/" + path.strip("/")


class Router:
    """Exact-path route table.

    Usage::

        router = Router()
        router.add(Route("/health", handler, frozenset({"GET"})))
        router.compile()
        route = router.match("GET", "/health")
    """

    __slots__ = ("_compiled", "_table")

    def __init__(self) -> None:
        self._table: dict[str, dict[str, Route]] = {}
        self._compiled = False

    def add(self, route: Route) -> None:
        """Add a route. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        by_method = self._table.setdefault(normalize_path(route.path), {})
        for method in route.methods:
            if method in by_method:
                msg = f"Duplicate route: {method} {route.path!r} is already registered."
                raise ConfigurationError(msg)
            by_method[method] = route

    @property
    def routes(self) -> list[Route]:
        """All registered routes, each listed once."""
        seen: dict[int, Route] = {}
        for by_method in self._table.values():
            for route in by_method.values():
                seen.setdefault(id(route), route)
        return list(seen.values())

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> Route:
        """Find the route for *method* and *path*.

        Raises ``NotFound`` if no route has this path.
        Raises ``MethodNotAllowed`` if the path exists for other methods.
        """
        by_method = self._table.get(normalize_path(path))
        if not by_method:
            raise NotFound(f"No route matches {method} {path!r}")
        if method in by_method:
            return by_method[method]
        if method == "HEAD" and "GET" in by_method:
            return by_method["GET"]
        raise MethodNotAllowed(frozenset(by_method))
