from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from routewire.exceptions import ServiceNotFoundError

logger = logging.getLogger(__name__)


@runtime_checkable
class DelegateProtocol(Protocol):
    """Fallback resolver consulted for identifiers a registry does not know.

    Another ``ServiceRegistry`` satisfies this protocol.
    """

    def has(self, service_id: Any) -> bool: ...

    def resolve(self, service_id: Any) -> Any: ...


class CallableDelegate:
    """Adapt a plain ``service_id -> instance | None`` callable to a delegate.

    ``None`` or an exception from the callable means the identifier is unknown
    to the delegate. The adapter keeps no state: every ``has``, ``resolve``
    or ``lookup`` runs the callable once. ``ServiceRegistry`` resolves through
    ``lookup``, so one resolution calls it exactly once.
    """

    __slots__ = ("_resolver",)

    def __init__(self, resolver: Callable[[Any], Any]) -> None:
        self._resolver = resolver

    def __repr__(self) -> str:
        return f"CallableDelegate({self._resolver!r})"

    def has(self, service_id: Any) -> bool:
        return self._try_resolve(service_id) is not None

    def resolve(self, service_id: Any) -> Any:
        value = self._try_resolve(service_id)
        if value is None:
            raise ServiceNotFoundError(service_id, f"Service {service_id!r} not found in delegate")
        return value

    def lookup(self, service_id: Any, default: Any = None) -> Any:
        """Return the produced value, or ``default`` when the callable has none."""
        value = self._try_resolve(service_id)
        return default if value is None else value

    def _try_resolve(self, service_id: Any) -> Any:
        try:
            return self._resolver(service_id)
        except Exception:  # noqa: BLE001
            logger.debug("Delegate resolver failed for %r", service_id, exc_info=True)
            return None


def as_delegate(delegate: DelegateProtocol | Callable[[Any], Any]) -> DelegateProtocol:
    """Return ``delegate`` unchanged when it already is one, else wrap the callable."""
    if isinstance(delegate, DelegateProtocol):
        return delegate
    return CallableDelegate(delegate)
