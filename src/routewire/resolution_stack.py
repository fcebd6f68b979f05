from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from routewire.exceptions import CircularDependencyError


class ResolutionStack:
    """Ordered set of identifiers currently being autowired.

    One stack is created per top-level ``resolve``/``call`` and passed down the
    resolution chain, so unrelated resolutions never share entries.
    """

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: dict[Any, None] = {}

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._entries

    def __iter__(self) -> Iterator[Any]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ResolutionStack({list(self._entries)!r})"

    @contextmanager
    def entering(self, service_id: Any) -> Iterator[None]:
        """Push ``service_id`` for the duration of the block.

        Raises:
            CircularDependencyError: If ``service_id`` is already on the stack.

        """
        if service_id in self._entries:
            raise CircularDependencyError(service_id, self._entries)
        self._entries[service_id] = None
        try:
            yield
        finally:
            del self._entries[service_id]
