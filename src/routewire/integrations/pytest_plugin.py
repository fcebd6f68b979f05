from __future__ import annotations

import pytest

from routewire.registry import ServiceRegistry
from routewire.router import Router
from routewire.settings import RouterSettings


@pytest.fixture()
def service_registry() -> ServiceRegistry:
    """Create a per-test service registry.

    The fixture is function-scoped, so registrations are isolated between tests
    unless users override fixture scope explicitly.

    Returns:
        A new ``ServiceRegistry`` instance.

    """
    return ServiceRegistry()


@pytest.fixture()
def router_settings() -> RouterSettings:
    """Router settings built from defaults only, ignoring ``ROUTEWIRE_*`` variables.

    Override this fixture to test a router with other security headers or error
    detail exposure.
    """
    return RouterSettings.model_construct()


@pytest.fixture()
def router(service_registry: ServiceRegistry, router_settings: RouterSettings) -> Router:
    """Create a router over the per-test registry.

    ``router_settings`` is also bound in the registry, so handlers that inject
    ``RouterSettings`` see the same instance as the router.
    """
    service_registry.register_instance(RouterSettings, router_settings)
    return Router(service_registry, router_settings)
