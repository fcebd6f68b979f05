from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from typing_extensions import Self

from routewire.exceptions import ConfigurationError

if TYPE_CHECKING:
    from routewire.registry import ServiceRegistry

_UNSET = object()


class ContextualBindingBuilder:
    """Record "when X needs Y, give Z" overrides into a registry.

    Examples:
        .. code-block:: python

            registry.when(ReportService).needs(Storage).give(lambda r: S3Storage())

    """

    __slots__ = ("_dependency", "_registry", "_requesting_id")

    def __init__(self, registry: ServiceRegistry, requesting_id: Any) -> None:
        self._registry = registry
        self._requesting_id = requesting_id
        self._dependency: Any = _UNSET

    def needs(self, dependency_id: Any) -> Self:
        """Name the dependency whose resolution is overridden."""
        self._dependency = dependency_id
        return self

    def give(self, concrete: Callable[..., Any] | type[Any]) -> None:
        """Store the override.

        Args:
            concrete: A class to autowire, or a factory called with the registry.

        Raises:
            ConfigurationError: If ``needs`` was not called first.

        """
        if self._dependency is _UNSET:
            raise ConfigurationError(
                f"Call needs() before give() for contextual binding of {self._requesting_id!r}",
            )
        self._registry.add_contextual_binding(self._requesting_id, self._dependency, concrete)
