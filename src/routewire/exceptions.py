from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any


class RoutewireError(Exception):
    """Represent a base class for all routewire-specific failures.

    Catch this type when you want to handle any routewire error path without
    matching each concrete exception class individually.
    """


class RegistryError(RoutewireError):
    """Represent a failure raised by ``ServiceRegistry`` operations.

    Registry errors always propagate to the immediate caller of ``resolve``,
    ``call`` or the registration method that detected them.
    """


class ServiceNotFoundError(RegistryError):
    """Signal that an identifier has no way to be resolved.

    Raised by ``ServiceRegistry.resolve`` when the identifier has no binding,
    singleton or factory, the delegate does not know it, and it does not name
    an auto-wireable class.

    Typical fixes include registering the identifier explicitly, aliasing it to
    a registered identifier, or installing a delegate that can provide it.
    """

    def __init__(self, service_id: Any, message: str | None = None) -> None:
        self.service_id = service_id
        super().__init__(message or f"Service {_describe(service_id)} not found")


class NotInstantiableError(ServiceNotFoundError):
    """Signal that an identifier names a class that cannot be constructed.

    Raised while autowiring abstract base classes and protocols. They are
    reported by ``has`` (they are valid interface names) but need an explicit
    binding to a concrete implementation before they can be resolved.
    """

    def __init__(self, service_id: Any) -> None:
        super().__init__(
            service_id,
            f"Class {_describe(service_id)} is not instantiable",
        )


class ConfigurationError(RegistryError):
    """Signal an invalid registration.

    Raised by ``alias`` for self-aliases, by ``register_factory`` for
    non-callable factories, and by ``ContextualBindingBuilder.give`` when no
    dependency was named with ``needs``.
    """


class CircularAliasError(ConfigurationError):
    """Signal that following an alias chain revisits an identifier.

    Raised by ``resolve`` and ``has`` while chasing aliases. The ``chain``
    attribute lists the visited identifiers in order, ending with the repeated
    one.
    """

    def __init__(self, chain: Sequence[Any]) -> None:
        self.chain = list(chain)
        super().__init__(
            "Circular alias detected: " + " -> ".join(_describe(item) for item in self.chain),
        )


class CircularDependencyError(RegistryError):
    """Signal that autowiring revisits a class already under construction.

    The ``chain`` attribute holds the full resolution stack followed by the
    repeated identifier, for example ``[A, B, A]``.

    Typical fixes include breaking the cycle with a factory registration or
    injecting the registry and resolving one side lazily.
    """

    def __init__(self, service_id: Any, stack: Iterable[Any]) -> None:
        self.service_id = service_id
        self.chain = [*stack, service_id]
        super().__init__(
            "Circular dependency detected: " + " > ".join(_describe(item) for item in self.chain),
        )


class UnresolvableParameterError(RegistryError):
    """Signal that a constructor or callable parameter cannot be satisfied.

    Raised when a parameter has no extra argument, no contextual override, no
    resolvable annotation and no default value.
    """

    def __init__(self, parameter: str, context: str) -> None:
        self.parameter = parameter
        self.context = context
        super().__init__(f"Cannot resolve parameter '{parameter}' for {context}")


class PipelineNotConfiguredError(RoutewireError):
    """Signal ``MiddlewarePipeline.process`` before ``then`` set a destination."""

    def __init__(self) -> None:
        super().__init__("Pipeline destination not set. Call then() before process().")


class HTTPError(RoutewireError):
    """Represent an error that maps onto an HTTP status code.

    ``Router.handle`` converts every ``HTTPError`` into a response through the
    error handler registered for ``status_code``. Any other exception reaching
    the router is wrapped as a 500 ``HTTPError`` first.
    """

    status_code: int = 500
    default_message: str = "Server Error"

    def __init__(
        self,
        status_code: int | None = None,
        message: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        if status_code is not None:
            self.status_code = status_code
        self.message = message if message is not None else self.default_message
        self.headers: dict[str, str] = dict(headers or {})
        super().__init__(self.message)


class BadRequest(HTTPError):
    """Signal a malformed request (400)."""

    status_code = 400
    default_message = "Bad Request"

    def __init__(self, message: str | None = None, *, headers: Mapping[str, str] | None = None) -> None:
        super().__init__(None, message, headers=headers)


class Unauthorized(HTTPError):
    """Signal a request without valid credentials (401)."""

    status_code = 401
    default_message = "Unauthorized"

    def __init__(self, message: str | None = None, *, headers: Mapping[str, str] | None = None) -> None:
        super().__init__(None, message, headers=headers)


class Forbidden(HTTPError):
    """Signal an authenticated request that is not permitted (403)."""

    status_code = 403
    default_message = "Forbidden"

    def __init__(self, message: str | None = None, *, headers: Mapping[str, str] | None = None) -> None:
        super().__init__(None, message, headers=headers)


class RouteNotFound(HTTPError):
    """Signal that no route matches the request method and path (404)."""

    status_code = 404
    default_message = "Route Not Found"

    def __init__(self, message: str | None = None, *, headers: Mapping[str, str] | None = None) -> None:
        super().__init__(None, message, headers=headers)


class MethodNotAllowed(HTTPError):
    """Signal that the path is routed, but only under other methods (405).

    ``allowed_methods`` lists the methods registered for the exact path and is
    mirrored into the ``Allow`` header.
    """

    status_code = 405
    default_message = "Method Not Allowed"

    def __init__(
        self,
        allowed_methods: Sequence[str],
        message: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.allowed_methods = list(allowed_methods)
        merged = dict(headers or {})
        merged["Allow"] = ", ".join(self.allowed_methods)
        super().__init__(None, message, headers=merged)


class CsrfTokenMismatch(HTTPError):
    """Signal a missing or invalid CSRF token (419)."""

    status_code = 419
    default_message = "CSRF Token Mismatch"

    def __init__(self, message: str | None = None, *, headers: Mapping[str, str] | None = None) -> None:
        super().__init__(None, message, headers=headers)


class ValidationFailed(HTTPError):
    """Signal request data that failed validation (422).

    ``errors`` maps each field name to its list of messages and becomes the
    ``errors`` member of the default 422 response body.
    """

    status_code = 422
    default_message = "Validation Failed"

    def __init__(
        self,
        errors: Mapping[str, Sequence[str]],
        message: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.errors = {field: list(messages) for field, messages in errors.items()}
        super().__init__(None, message, headers=headers)


class TooManyRequests(HTTPError):
    """Signal a rate-limited request (429) with a ``Retry-After`` header."""

    status_code = 429
    default_message = "Too Many Requests"

    def __init__(
        self,
        retry_after: int = 60,
        message: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.retry_after = retry_after
        merged = dict(headers or {})
        merged["Retry-After"] = str(retry_after)
        super().__init__(None, message, headers=merged)


def _describe(service_id: Any) -> str:
    if isinstance(service_id, type):
        return f"{service_id.__module__}.{service_id.__qualname__}"
    return str(service_id)
