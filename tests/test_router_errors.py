import json
import logging
import math
from typing import Any

import pytest

from routewire.exceptions import (
    BadRequest,
    Forbidden,
    HTTPError,
    RouteNotFound,
    TooManyRequests,
    ValidationFailed,
)
from routewire.http import Request, Response
from routewire.pipeline import Next
from routewire.registry import ServiceRegistry
from routewire.router import Router
from routewire.settings import RouterSettings


def _body(response: Response) -> Any:
    return json.loads(response.body)


def test_unknown_route_renders_default_404(router: Router) -> None:
    response = router.handle(Request("GET", "/missing"))

    assert response.status_code == 404
    assert _body(response) == {"error": "Not Found", "message": "No route found for GET /missing"}


def test_wrong_method_renders_default_405_with_allow_header(router: Router) -> None:
    router.get("/users", lambda: "list")
    router.post("/users", lambda: "create")

    response = router.handle(Request("DELETE", "/users"))

    assert response.status_code == 405
    assert response.header("Allow") == "GET, POST"
    assert _body(response) == {"error": "Method Not Allowed", "allowed_methods": ["GET", "POST"]}


def test_bad_request_renders_default_400(router: Router) -> None:
    def handler() -> None:
        raise BadRequest("Missing name")

    router.post("/users", handler)

    response = router.handle(Request("POST", "/users"))

    assert response.status_code == 400
    assert _body(response) == {"error": "Bad Request", "message": "Missing name"}


def test_validation_failure_renders_default_422(router: Router) -> None:
    def handler() -> None:
        raise ValidationFailed({"email": ["The email field is required."]})

    router.post("/users", handler)

    response = router.handle(Request("POST", "/users"))

    assert response.status_code == 422
    assert _body(response) == {
        "error": "Validation Failed",
        "errors": {"email": ["The email field is required."]},
    }


def test_handler_exception_renders_default_500(router: Router) -> None:
    def handler() -> None:
        msg = "database is down"
        raise RuntimeError(msg)

    router.get("/boom", handler)

    response = router.handle(Request("GET", "/boom"))

    assert response.status_code == 500
    assert _body(response) == {"error": "Internal Server Error", "message": "Handler Error"}


def test_error_details_are_exposed_when_enabled(service_registry: ServiceRegistry) -> None:
    router = Router(service_registry, RouterSettings.model_construct(expose_error_details=True))

    def handler() -> None:
        msg = "database is down"
        raise RuntimeError(msg)

    router.get("/boom", handler)

    body = _body(router.handle(Request("GET", "/boom")))

    assert body["details"] == "database is down"


def test_middleware_exception_is_logged_and_rendered_as_500(
    router: Router,
    caplog: pytest.LogCaptureFixture,
) -> None:
    def broken(request: Request, next: Next) -> Response:  # noqa: A002
        msg = "middleware bug"
        raise KeyError(msg)

    router.middleware(broken)
    router.get("/x", lambda: "ok")

    with caplog.at_level(logging.ERROR, logger="routewire.router"):
        response = router.handle(Request("GET", "/x"))

    assert response.status_code == 500
    assert _body(response)["message"] == "Server Error"
    assert "Unhandled error while dispatching GET /x" in caplog.text


def test_custom_error_handler_replaces_default(router: Router) -> None:
    def not_found(exception: RouteNotFound, request: Request) -> Response:
        return Response.text(f"nothing at {request.path}", 404)

    router.error_handler(404, not_found)

    response = router.handle(Request("GET", "/nowhere"))

    assert response.status_code == 404
    assert response.content == "nothing at /nowhere"


def test_error_handler_dependencies_are_injected(router: Router) -> None:
    class Translator:
        def translate(self, text: str) -> str:
            return text.upper()

    def forbidden(exception: HTTPError, translator: Translator) -> Response:
        return Response.text(translator.translate(exception.message), exception.status_code)

    def handler() -> None:
        raise Forbidden("keep out")

    router.error_handler(403, forbidden)
    router.get("/secret", handler)

    response = router.handle(Request("GET", "/secret"))

    assert response.status_code == 403
    assert response.content == "KEEP OUT"


def test_failing_error_handler_falls_back_to_generic_body(
    router: Router,
    caplog: pytest.LogCaptureFixture,
) -> None:
    def broken(exception: HTTPError) -> Response:
        msg = "handler bug"
        raise RuntimeError(msg)

    router.error_handler(404, broken)

    with caplog.at_level(logging.ERROR, logger="routewire.router"):
        response = router.handle(Request("GET", "/nowhere"))

    assert response.status_code == 404
    assert _body(response) == {"error": "No route found for GET /nowhere", "status": 404}
    assert "Error handler for status 404 failed" in caplog.text


def test_status_without_handler_uses_generic_body(router: Router) -> None:
    def handler() -> None:
        raise Forbidden

    router.get("/admin", handler)

    response = router.handle(Request("GET", "/admin"))

    assert response.status_code == 403
    assert _body(response) == {"error": "Forbidden", "status": 403}


def test_exception_headers_are_kept_on_error_responses(router: Router) -> None:
    def handler() -> None:
        raise TooManyRequests(retry_after=30)

    router.get("/limited", handler)
    router.error_handler(429, lambda exception: Response.text("slow down", 429))

    response = router.handle(Request("GET", "/limited"))

    assert response.content == "slow down"
    assert response.header("Retry-After") == "30"


def test_custom_status_http_error(router: Router) -> None:
    def handler() -> None:
        raise HTTPError(418, "I'm a teapot")

    router.get("/tea", handler)

    response = router.handle(Request("GET", "/tea"))

    assert response.status_code == 418
    assert _body(response) == {"error": "I'm a teapot", "status": 418}


def test_unserializable_result_is_a_json_encoding_error(router: Router) -> None:
    router.get("/bad", lambda: {"value": object()})

    response = router.handle(Request("GET", "/bad"))

    assert response.status_code == 500
    assert _body(response)["message"] == "JSON Encoding Error"


def test_error_responses_carry_security_headers(router: Router) -> None:
    response = router.handle(Request("GET", "/missing"))

    assert response.header("X-Content-Type-Options") == "nosniff"
    assert response.header("X-Frame-Options") == "DENY"


def test_error_handler_result_keeps_error_status(router: Router) -> None:
    router.error_handler(404, lambda exception: {"message": "nope"})
    router.error_handler(405, lambda exception: "not here")
    router.get("/only-get", lambda: "ok")

    not_found = router.handle(Request("GET", "/missing"))
    not_allowed = router.handle(Request("POST", "/only-get"))

    assert not_found.status_code == 404
    assert _body(not_found) == {"message": "nope"}
    assert not_allowed.status_code == 405
    assert not_allowed.content == "not here"
    assert not_allowed.header("Allow") == "GET"


def test_error_handler_response_status_is_kept(router: Router) -> None:
    router.error_handler(404, lambda exception: Response.text("moved", 410))

    assert router.handle(Request("GET", "/missing")).status_code == 410


def test_non_finite_float_result_is_a_json_encoding_error(router: Router) -> None:
    router.get("/nan", lambda: {"value": math.nan})

    response = router.handle(Request("GET", "/nan"))

    assert response.status_code == 500
    assert _body(response)["message"] == "JSON Encoding Error"
