from __future__ import annotations

import pkgutil
import types
from typing import Any, TypeGuard


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def lookup_dotted_class(name: str) -> type[Any] | None:
    """Return the class named by a dotted import path, or ``None``.

    ``"package.module.ClassName"`` and ``"package.module:ClassName"`` are both
    accepted. Plain keys without a dot never trigger an import.

    Args:
        name: String identifier that may be an import path.

    """
    if "." not in name or any(char.isspace() for char in name):
        return None
    try:
        candidate = pkgutil.resolve_name(name)
    except (ImportError, AttributeError, ValueError):
        return None
    return candidate if is_runtime_class(candidate) else None


__all__ = ["is_runtime_class", "lookup_dotted_class"]
