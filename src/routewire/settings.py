from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


class RouterSettings(BaseSettings):
    """Router behaviour read from ``ROUTEWIRE_*`` environment variables.

    The router resolves this class through its registry. Settings subclasses are
    auto-registered as singletons, so the environment is read once per
    registry; bind an instance explicitly to override it in tests.

    Examples:
        .. code-block:: python

            registry.register_instance(RouterSettings, RouterSettings(expose_error_details=True))

    """

    model_config = SettingsConfigDict(env_prefix="ROUTEWIRE_", extra="ignore")

    security_headers: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_SECURITY_HEADERS),
    )
    """Headers added to every response that does not already carry them."""

    expose_error_details: bool = False
    """Include the message of the underlying cause in fallback error bodies."""

    json_indent: int | None = None
    """Indentation used when serializing handler results to JSON."""

    default_content_type: str | None = None
    """Content type for responses without one; ``None`` negotiates from ``Accept``."""
