from __future__ import annotations

from enum import Enum


class Lifetime(str, Enum):
    """Defines how long a resolved instance lives inside the registry."""

    TRANSIENT = "transient"
    """A new instance is created every time the identifier is resolved."""

    SHARED = "shared"
    """A plain binding that caches its first instance until ``reset``."""

    SINGLETON = "singleton"
    """Dedicated singleton storage, constructed once and memoized forever."""
