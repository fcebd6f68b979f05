from __future__ import annotations

from collections.abc import Callable, Iterable
from functools import reduce
from typing import Any, Protocol, TypeAlias, runtime_checkable

from typing_extensions import Self

from routewire._internal.type_checks import is_runtime_class
from routewire.exceptions import ConfigurationError, PipelineNotConfiguredError
from routewire.http import Request, Response
from routewire.registry import ServiceRegistry

Next: TypeAlias = Callable[[Request], Response]
"""The continuation a middleware calls to run the rest of the chain."""

MiddlewareFunction: TypeAlias = Callable[[Request, Next], Response]


@runtime_checkable
class Middleware(Protocol):
    """A class-based middleware unit."""

    def handle(self, request: Request, next: Next) -> Response: ...  # noqa: A002


MiddlewareUnit: TypeAlias = "Middleware | MiddlewareFunction | type[Any] | str"
"""A live middleware, or an identifier resolved from the registry when reached."""


class MiddlewarePipeline:
    """Compose middleware units around a terminal handler.

    The first unit runs first and wraps everything after it. Identifiers are
    resolved against the registry only when the chain reaches them, so
    registrations made after the pipeline was built are observed.

    Examples:
        .. code-block:: python

            pipeline = MiddlewarePipeline(registry, ["auth", log_requests])
            response = pipeline.then(show_user).process(request)

    """

    __slots__ = ("_destination", "_middleware", "_registry")

    def __init__(self, registry: ServiceRegistry, middleware: Iterable[MiddlewareUnit] = ()) -> None:
        self._registry = registry
        self._middleware: list[MiddlewareUnit] = list(middleware)
        self._destination: Next | None = None

    def pipe(self, unit: MiddlewareUnit) -> Self:
        """Append a unit after the ones already in the pipeline."""
        self._middleware.append(unit)
        return self

    def then(self, destination: Next) -> Self:
        """Set the terminal handler called after the last middleware."""
        self._destination = destination
        return self

    def process(self, request: Request) -> Response:
        """Run the request through every unit and the terminal handler.

        Raises:
            PipelineNotConfiguredError: If ``then`` was never called.

        """
        if self._destination is None:
            raise PipelineNotConfiguredError
        chain = reduce(self._carry, reversed(self._middleware), self._destination)
        return chain(request)

    def _carry(self, next_step: Next, unit: MiddlewareUnit) -> Next:
        def step(request: Request) -> Response:
            return self._invoke(unit, request, next_step)

        return step

    def _invoke(self, unit: MiddlewareUnit, request: Request, next_step: Next) -> Response:
        if isinstance(unit, str) or is_runtime_class(unit):
            unit = self._registry.resolve(unit)

        handle = getattr(unit, "handle", None)
        if callable(handle):
            return handle(request, next_step)
        if callable(unit):
            return unit(request, next_step)
        raise ConfigurationError(f"Middleware {unit!r} is neither callable nor has handle()")
