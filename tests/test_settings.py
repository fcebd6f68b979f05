import json

import pytest

from routewire.http import Request, Response
from routewire.registry import ServiceRegistry
from routewire.router import Router
from routewire.settings import DEFAULT_SECURITY_HEADERS, RouterSettings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ROUTEWIRE_EXPOSE_ERROR_DETAILS", raising=False)

    settings = RouterSettings()

    assert settings.security_headers == DEFAULT_SECURITY_HEADERS
    assert settings.security_headers is not DEFAULT_SECURITY_HEADERS
    assert settings.expose_error_details is False
    assert settings.json_indent is None
    assert settings.default_content_type is None


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROUTEWIRE_EXPOSE_ERROR_DETAILS", "true")
    monkeypatch.setenv("ROUTEWIRE_JSON_INDENT", "2")
    monkeypatch.setenv("ROUTEWIRE_SECURITY_HEADERS", '{"X-Frame-Options": "SAMEORIGIN"}')

    settings = RouterSettings()

    assert settings.expose_error_details is True
    assert settings.json_indent == 2
    assert settings.security_headers == {"X-Frame-Options": "SAMEORIGIN"}


def test_settings_are_registry_singletons(registry: ServiceRegistry) -> None:
    assert registry.resolve(RouterSettings) is registry.resolve(RouterSettings)


def test_router_reads_settings_from_registry(registry: ServiceRegistry) -> None:
    settings = RouterSettings.model_construct(security_headers={}, json_indent=2)
    registry.register_instance(RouterSettings, settings)

    router = Router(registry)
    router.get("/data", lambda: {"a": 1})

    response = router.handle(Request("GET", "/data"))

    assert router.settings is settings
    assert response.content == json.dumps({"a": 1}, indent=2)
    assert response.header("X-Frame-Options") is None


def test_default_content_type_skips_negotiation(registry: ServiceRegistry) -> None:
    settings = RouterSettings.model_construct(default_content_type="application/xml")
    router = Router(registry, settings)
    router.get("/bare", lambda: Response(body=b"<a/>"))

    response = router.handle(Request("GET", "/bare", {"Accept": "application/json"}))

    assert response.header("Content-Type") == "application/xml"

