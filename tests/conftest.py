"""Shared pytest fixtures for routewire tests."""

import pytest

from routewire.dependencies import DependenciesExtractor
from routewire.registry import ServiceRegistry

pytest_plugins = ["routewire.integrations.pytest_plugin"]


@pytest.fixture()
def registry() -> ServiceRegistry:
    """Default registry with autoregistration enabled."""
    return ServiceRegistry()


@pytest.fixture()
def strict_registry() -> ServiceRegistry:
    """Registry with autoregister=False."""
    return ServiceRegistry(autoregister=False)


@pytest.fixture()
def dependencies_extractor() -> DependenciesExtractor:
    """DependenciesExtractor instance."""
    return DependenciesExtractor()
