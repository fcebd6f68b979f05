"""Minimal immutable request/response values carried through the router.

Transport concerns (parsing, streaming bodies, cookies) live outside this
package; these types only hold what routing and dispatch read and write.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from typing_extensions import Self

_MISSING = object()


class Headers(Mapping[str, str]):
    """Read-only header mapping with case-insensitive names.

    The spelling used when a header was first set is preserved for iteration.
    """

    __slots__ = ("_items",)

    def __init__(self, headers: Mapping[str, str] | None = None) -> None:
        items: dict[str, tuple[str, str]] = {}
        for name, value in (headers or {}).items():
            items[name.lower()] = (name, str(value))
        self._items = items

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()][1]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return {k: v for k, (_, v) in self._items.items()} == {
                k: v for k, (_, v) in other._items.items()
            }
        if isinstance(other, Mapping):
            return self == Headers(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset((k, v) for k, (_, v) in self._items.items()))

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"

    def with_header(self, name: str, value: str) -> Headers:
        updated = Headers(self)
        previous = updated._items.get(name.lower())
        updated._items[name.lower()] = (previous[0] if previous else name, str(value))
        return updated

    def without_header(self, name: str) -> Headers:
        updated = Headers(self)
        updated._items.pop(name.lower(), None)
        return updated


def _as_headers(value: Mapping[str, str] | None) -> Headers:
    return value if isinstance(value, Headers) else Headers(value)


@dataclass(frozen=True, slots=True)
class Request:
    """An inbound request; every ``with_*`` method returns a modified copy."""

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    query: Mapping[str, str] = field(default_factory=dict)
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", _as_headers(self.headers))

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name, default)

    def header_line(self, name: str) -> str:
        return self.headers.get(name, "")

    def with_header(self, name: str, value: str) -> Self:
        return dataclasses.replace(self, headers=self.headers.with_header(name, value))

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def with_attribute(self, name: str, value: Any) -> Self:
        """Return a copy with one request-scoped attribute set."""
        return dataclasses.replace(self, attributes={**self.attributes, name: value})

    def without_attribute(self, name: str) -> Self:
        attributes = {key: value for key, value in self.attributes.items() if key != name}
        return dataclasses.replace(self, attributes=attributes)

    def json(self) -> Any:
        return json.loads(self.body or b"null")


@dataclass(frozen=True, slots=True)
class Response:
    """An outbound response built from status, headers and body."""

    status_code: int = 200
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _as_headers(self.headers))
        if isinstance(self.body, str):
            object.__setattr__(self, "body", self.body.encode("utf-8"))

    @classmethod
    def json(
        cls,
        data: Any,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
        *,
        indent: int | None = None,
    ) -> Response:
        """Build a JSON response.

        Raises:
            TypeError: If ``data`` is not JSON serializable.
            ValueError: If ``data`` contains circular references or non-finite floats.

        """
        body = json.dumps(data, indent=indent, allow_nan=False)
        merged = Headers(headers).with_header("Content-Type", "application/json")
        return cls(status_code=status_code, headers=merged, body=body.encode("utf-8"))

    @classmethod
    def text(
        cls,
        body: str,
        status_code: int = 200,
        content_type: str = "text/plain",
    ) -> Response:
        return cls(
            status_code=status_code,
            headers=Headers({"Content-Type": content_type}),
            body=body.encode("utf-8"),
        )

    @property
    def content(self) -> str:
        return self.body.decode("utf-8")

    def has_header(self, name: str) -> bool:
        return name in self.headers

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name, default)

    def with_header(self, name: str, value: str) -> Self:
        return dataclasses.replace(self, headers=self.headers.with_header(name, value))

    def without_header(self, name: str) -> Self:
        return dataclasses.replace(self, headers=self.headers.without_header(name))

    def with_status(self, status_code: int) -> Self:
        return dataclasses.replace(self, status_code=status_code)
