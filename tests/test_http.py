import json

import pytest

from routewire.http import Headers, Request, Response


def test_headers_are_case_insensitive() -> None:
    headers = Headers({"Content-Type": "text/plain"})

    assert headers["content-type"] == "text/plain"
    assert "CONTENT-TYPE" in headers
    assert list(headers) == ["Content-Type"]


def test_headers_keep_original_spelling_when_replaced() -> None:
    headers = Headers({"X-Request-Id": "1"}).with_header("x-request-id", "2")

    assert dict(headers) == {"X-Request-Id": "2"}


def test_headers_without_header() -> None:
    headers = Headers({"A": "1", "B": "2"})

    assert dict(headers.without_header("a")) == {"B": "2"}
    assert dict(headers) == {"A": "1", "B": "2"}


def test_headers_compare_with_mappings() -> None:
    assert Headers({"Accept": "*/*"}) == {"accept": "*/*"}
    assert Headers({"Accept": "*/*"}) != Headers({"Accept": "text/html"})


def test_request_method_is_uppercased() -> None:
    assert Request("get", "/").method == "GET"


def test_request_headers_accept_plain_dicts() -> None:
    request = Request("GET", "/", {"Accept": "application/json"})

    assert isinstance(request.headers, Headers)
    assert request.header("accept") == "application/json"
    assert request.header("X-Missing") is None
    assert request.header_line("X-Missing") == ""


def test_request_with_methods_return_copies() -> None:
    request = Request("GET", "/")

    tagged = request.with_attribute("user", "ada").with_header("X-Trace", "abc")

    assert request.attributes == {}
    assert request.header("X-Trace") is None
    assert tagged.get_attribute("user") == "ada"
    assert tagged.header("X-Trace") == "abc"
    assert tagged.without_attribute("user").get_attribute("user", "none") == "none"


def test_request_is_frozen() -> None:
    request = Request("GET", "/")

    with pytest.raises(AttributeError):
        request.path = "/other"  # type: ignore[misc]


def test_request_json_body() -> None:
    assert Request("POST", "/", body=b'{"name": "ada"}').json() == {"name": "ada"}
    assert Request("POST", "/").json() is None


def test_response_defaults() -> None:
    response = Response()

    assert response.status_code == 200
    assert response.body == b""
    assert len(response.headers) == 0


def test_response_encodes_text_bodies() -> None:
    response = Response(body="héllo")  # type: ignore[arg-type]

    assert response.body == "héllo".encode()
    assert response.content == "héllo"


def test_response_json() -> None:
    response = Response.json({"ok": True}, 201, {"X-Id": "7"})

    assert response.status_code == 201
    assert response.header("content-type") == "application/json"
    assert response.header("X-Id") == "7"
    assert json.loads(response.body) == {"ok": True}


def test_response_json_indent() -> None:
    assert Response.json({"a": 1}, indent=2).content == '{\n  "a": 1\n}'


def test_response_json_rejects_unserializable_data() -> None:
    with pytest.raises(TypeError):
        Response.json({"value": object()})


def test_response_text() -> None:
    response = Response.text("<p>hi</p>", content_type="text/html")

    assert response.header("Content-Type") == "text/html"
    assert response.content == "<p>hi</p>"


def test_response_with_methods_return_copies() -> None:
    response = Response.text("x")

    changed = response.with_status(404).with_header("X-A", "1").without_header("Content-Type")

    assert response.status_code == 200
    assert response.has_header("Content-Type")
    assert changed.status_code == 404
    assert changed.has_header("x-a")
    assert not changed.has_header("Content-Type")


def test_response_json_rejects_non_finite_floats() -> None:
    with pytest.raises(ValueError, match="Out of range float"):
        Response.json({"value": float("nan")})
