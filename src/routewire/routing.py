from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from routewire.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

RouteHandler: TypeAlias = "Callable[..., Any] | tuple[Any, str]"
"""A callable, or a ``(class_or_id, "method_name")`` pair resolved per request."""

_PARAMETER_RE = re.compile(r"\{([^{}]*)\}")
_PARAMETER_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_SLASHES_RE = re.compile(r"/{2,}")


def normalize_path(path: str) -> str:
    """Collapse repeated slashes and keep exactly one leading slash.

    Examples:
        .. code-block:: python

            normalize_path("users//42/") == "/users/42"
            normalize_path("") == "/"

    """
    path = _SLASHES_RE.sub("/", path).strip("/")
    return f"/{path}" if path else "/"


def join_paths(prefix: str, path: str) -> str:
    if prefix in ("", "/"):
        return normalize_path(path)
    return normalize_path(f"{prefix}/{path}")


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """A compiled ``{name}`` path template."""

    template: str
    regex: re.Pattern[str]
    parameters: tuple[str, ...]

    @classmethod
    def compile(cls, template: str) -> RoutePattern:
        """Compile a normalized path template.

        Raises:
            ConfigurationError: If a placeholder name is not an identifier or
                appears twice.

        """
        parameters: list[str] = []
        parts: list[str] = []
        position = 0
        for placeholder in _PARAMETER_RE.finditer(template):
            name = placeholder.group(1)
            if not _PARAMETER_NAME_RE.fullmatch(name):
                raise ConfigurationError(f"Invalid parameter name: {name!r} in {template!r}")
            if name in parameters:
                raise ConfigurationError(f"Duplicate parameter name: {name!r} in {template!r}")
            parameters.append(name)
            parts.append(re.escape(template[position : placeholder.start()]))
            parts.append(f"(?P<{name}>[^/]+)")
            position = placeholder.end()
        parts.append(re.escape(template[position:]))
        return cls(
            template=template,
            regex=re.compile("".join(parts)),
            parameters=tuple(parameters),
        )

    def match(self, path: str) -> dict[str, str] | None:
        matched = self.regex.fullmatch(path)
        if matched is None:
            return None
        return matched.groupdict()


@dataclass(frozen=True, slots=True)
class Route:
    """A registered (method, path) pair bound to a handler and its middleware."""

    method: str
    path: str
    handler: RouteHandler
    middleware: tuple[Any, ...] = ()

    @property
    def is_static(self) -> bool:
        return "{" not in self.path


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """A route plus the parameters extracted from the request path."""

    route: Route
    params: Mapping[str, str] = field(default_factory=dict)


class RouteTable:
    """Per-method route storage with a lazily compiled pattern cache.

    Routes are keyed by normalized path, so registering the same method and
    path twice replaces the earlier route. Any registration drops the compiled
    patterns; they are rebuilt on the next parameterized lookup.
    """

    __slots__ = ("_compiled", "_routes")

    def __init__(self) -> None:
        self._routes: dict[str, dict[str, Route]] = {method: {} for method in HTTP_METHODS}
        self._compiled: dict[str, list[tuple[RoutePattern, Route]]] | None = None

    def __iter__(self) -> Iterator[Route]:
        for routes in self._routes.values():
            yield from routes.values()

    def __len__(self) -> int:
        return sum(len(routes) for routes in self._routes.values())

    def add(self, route: Route) -> None:
        self._routes.setdefault(route.method, {})[route.path] = route
        self._compiled = None

    def find_exact(self, method: str, path: str) -> Route | None:
        return self._routes.get(method, {}).get(path)

    def find_pattern(self, method: str, path: str) -> RouteMatch | None:
        """Try every parameterized route of ``method`` in registration order; first match wins."""
        for pattern, route in self._compiled_routes().get(method, ()):
            params = pattern.match(path)
            if params is not None:
                return RouteMatch(route=route, params=params)
        return None

    def allowed_methods(self, path: str) -> list[str]:
        """List the methods routing ``path``.

        Exact registrations are listed when any exist; parameterized routes are
        only scanned when no method registers the path literally.
        """
        exact = [method for method, routes in self._routes.items() if path in routes]
        if exact:
            return exact
        return [
            method
            for method, compiled in self._compiled_routes().items()
            if any(pattern.match(path) is not None for pattern, _ in compiled)
        ]

    def is_compiled(self) -> bool:
        return self._compiled is not None

    def _compiled_routes(self) -> dict[str, list[tuple[RoutePattern, Route]]]:
        if self._compiled is None:
            self._compiled = {
                method: [
                    (RoutePattern.compile(path), route)
                    for path, route in routes.items()
                    if not route.is_static
                ]
                for method, routes in self._routes.items()
            }
            logger.info(
                "Compiled %d route patterns",
                sum(len(compiled) for compiled in self._compiled.values()),
            )
        return self._compiled
