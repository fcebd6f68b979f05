from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, TypeVar

from pydantic import BaseModel

from routewire.exceptions import (
    ConfigurationError,
    HTTPError,
    MethodNotAllowed,
    RouteNotFound,
    ValidationFailed,
)
from routewire.http import Request, Response
from routewire.pipeline import MiddlewarePipeline, MiddlewareUnit
from routewire.registry import ServiceRegistry
from routewire.routing import (
    HTTP_METHODS,
    Route,
    RouteHandler,
    RouteMatch,
    RoutePattern,
    RouteTable,
    join_paths,
    normalize_path,
)
from routewire.settings import RouterSettings

F = TypeVar("F", bound=Callable[..., Any])

logger = logging.getLogger(__name__)

ROUTE_ATTRIBUTE = "_route"
"""Request attribute holding ``{"path", "method", "handler", "params"}`` of the match."""

ErrorHandler = Callable[..., Any]


class Router:
    """Match requests to routes and run them through their middleware.

    Handlers and error handlers are invoked through ``ServiceRegistry.call``,
    so their annotated parameters are injected. Route handlers receive the
    request as ``request`` and each path parameter by name; error handlers
    receive ``exception`` and ``request``.

    ``handle`` never raises: every failure becomes a response through the
    error handler registered for its status code.

    Examples:
        .. code-block:: python

            router = Router(registry)
            router.middleware("auth")

            def show_user(id: str, users: UserRepository) -> dict:
                return users.get(id)

            router.group("/api", lambda r: r.get("/users/{id}", show_user))
            response = router.handle(Request("GET", "/api/users/42"))

    """

    def __init__(
        self,
        registry: ServiceRegistry | None = None,
        settings: RouterSettings | None = None,
    ) -> None:
        """Initialize a router with the default 400/404/405/422/500 handlers.

        Args:
            registry: Registry used for middleware, handlers and injection.
                A fresh one is created when omitted.
            settings: Router settings. Resolved from the registry when omitted,
                so an instance bound to ``RouterSettings`` there is honoured.

        """
        self._registry = registry if registry is not None else ServiceRegistry()
        self.settings = settings if settings is not None else self._registry.resolve(RouterSettings)

        self._table = RouteTable()
        self._middleware: list[MiddlewareUnit] = []
        self._error_handlers: dict[int, ErrorHandler] = {}
        self._group_prefix = ""
        self._group_middleware: tuple[MiddlewareUnit, ...] = ()

        self._register_default_error_handlers()

    @property
    def registry(self) -> ServiceRegistry:
        return self._registry

    # Registration

    def add(
        self,
        method: str,
        path: str,
        handler: RouteHandler,
        middleware: Iterable[MiddlewareUnit] = (),
    ) -> Route:
        """Register a route under the active group prefix and middleware.

        Args:
            method: HTTP method, case-insensitive.
            path: Path template; ``{name}`` segments capture parameters.
            handler: A callable, or a ``(class_or_id, "method_name")`` pair
                whose owner is resolved from the registry per request.
            middleware: Route middleware, run after global and group middleware.

        Raises:
            ConfigurationError: If the handler or a path placeholder is invalid.

        """
        _validate_handler(handler)
        method = method.upper()
        path = join_paths(self._group_prefix, path)
        RoutePattern.compile(path)

        route = Route(
            method=method,
            path=path,
            handler=handler,
            middleware=(*self._group_middleware, *middleware),
        )
        self._table.add(route)
        logger.debug("Registered route %s %s", method, path)
        return route

    def get(self, path: str, handler: RouteHandler, middleware: Iterable[MiddlewareUnit] = ()) -> Route:
        return self.add("GET", path, handler, middleware)

    def post(self, path: str, handler: RouteHandler, middleware: Iterable[MiddlewareUnit] = ()) -> Route:
        return self.add("POST", path, handler, middleware)

    def put(self, path: str, handler: RouteHandler, middleware: Iterable[MiddlewareUnit] = ()) -> Route:
        return self.add("PUT", path, handler, middleware)

    def patch(self, path: str, handler: RouteHandler, middleware: Iterable[MiddlewareUnit] = ()) -> Route:
        return self.add("PATCH", path, handler, middleware)

    def delete(self, path: str, handler: RouteHandler, middleware: Iterable[MiddlewareUnit] = ()) -> Route:
        return self.add("DELETE", path, handler, middleware)

    def head(self, path: str, handler: RouteHandler, middleware: Iterable[MiddlewareUnit] = ()) -> Route:
        return self.add("HEAD", path, handler, middleware)

    def options(self, path: str, handler: RouteHandler, middleware: Iterable[MiddlewareUnit] = ()) -> Route:
        return self.add("OPTIONS", path, handler, middleware)

    def any(self, path: str, handler: RouteHandler, middleware: Iterable[MiddlewareUnit] = ()) -> list[Route]:
        """Register ``handler`` for every supported HTTP method."""
        middleware = tuple(middleware)
        return [self.add(method, path, handler, middleware) for method in HTTP_METHODS]

    def route(
        self,
        method: str,
        path: str,
        middleware: Iterable[MiddlewareUnit] = (),
    ) -> Callable[[F], F]:
        """Register the decorated function as a route handler.

        Examples:
            .. code-block:: python

                @router.route("GET", "/ping")
                def ping() -> str:
                    return "pong"

        """

        def decorator(func: F) -> F:
            self.add(method, path, func, middleware)
            return func

        return decorator

    def group(
        self,
        prefix: str,
        callback: Callable[[Router], Any],
        middleware: Iterable[MiddlewareUnit] = (),
    ) -> None:
        """Register routes inside ``callback`` under a shared prefix and middleware.

        Groups nest: prefixes and middleware lists concatenate. The previous
        group context is restored when ``callback`` returns or raises.
        """
        with self.prefixed(prefix, middleware):
            callback(self)

    @contextmanager
    def prefixed(self, prefix: str, middleware: Iterable[MiddlewareUnit] = ()) -> Iterator[Router]:
        """Context manager form of ``group``."""
        previous_prefix = self._group_prefix
        previous_middleware = self._group_middleware

        self._group_prefix = join_paths(previous_prefix, prefix)
        self._group_middleware = (*previous_middleware, *middleware)
        try:
            yield self
        finally:
            self._group_prefix = previous_prefix
            self._group_middleware = previous_middleware

    def middleware(self, unit: MiddlewareUnit) -> None:
        """Append global middleware, run before any group or route middleware."""
        self._middleware.append(unit)

    def error_handler(self, status_code: int, handler: ErrorHandler) -> None:
        """Replace the handler used to render errors with ``status_code``."""
        self._error_handlers[status_code] = handler

    def routes(self) -> Iterator[Route]:
        return iter(self._table)

    # Dispatch

    def match(self, request: Request) -> RouteMatch:
        """Find the route for a request.

        Raises:
            MethodNotAllowed: If the path is routed under other methods only.
            RouteNotFound: If nothing routes the path.

        """
        method = request.method
        path = normalize_path(request.path)

        route = self._table.find_exact(method, path)
        if route is not None:
            return RouteMatch(route=route)

        matched = self._table.find_pattern(method, path)
        if matched is not None:
            return matched

        allowed_methods = self._table.allowed_methods(path)
        if allowed_methods:
            raise MethodNotAllowed(allowed_methods)
        raise RouteNotFound(f"No route found for {method} {path}")

    def handle(self, request: Request) -> Response:
        """Dispatch a request and always return a response."""
        try:
            response = self._dispatch(request)
        except HTTPError as exc:
            response = self._render_error(exc, request)
        except Exception as exc:
            logger.exception("Unhandled error while dispatching %s %s", request.method, request.path)
            error = HTTPError(500, "Server Error")
            error.__cause__ = exc
            response = self._render_error(error, request)
        return self._add_security_headers(response)

    def _dispatch(self, request: Request) -> Response:
        matched = self.match(request)
        route = matched.route

        for name, value in matched.params.items():
            request = request.with_attribute(name, value)
        request = request.with_attribute(
            ROUTE_ATTRIBUTE,
            {
                "path": route.path,
                "method": route.method,
                "handler": route.handler,
                "params": dict(matched.params),
            },
        )

        pipeline = MiddlewarePipeline(self._registry, [*self._middleware, *route.middleware])
        pipeline.then(lambda current: self._call_handler(route.handler, current, matched.params))
        response = pipeline.process(request)
        return self._prepare_response(response, request)

    def _call_handler(
        self,
        handler: RouteHandler,
        request: Request,
        params: Mapping[str, str],
    ) -> Response:
        try:
            result = self._registry.call(handler, {**params, "request": request})
        except HTTPError:
            raise
        except Exception as exc:
            raise HTTPError(500, "Handler Error") from exc
        return self._ensure_response(result)

    def _ensure_response(self, result: Any) -> Response:
        if isinstance(result, Response):
            return result
        if result is None:
            return Response.text("", content_type="text/html")
        if isinstance(result, bytes):
            return Response(headers={"Content-Type": "application/octet-stream"}, body=result)

        data = _jsonable(result)
        if data is None:
            return Response.text(str(result), content_type="text/html")
        try:
            return Response.json(data, indent=self.settings.json_indent)
        except (TypeError, ValueError) as exc:
            raise HTTPError(500, "JSON Encoding Error") from exc

    def _prepare_response(self, response: Any, request: Request) -> Response:
        response = self._ensure_response(response)
        if not response.has_header("Content-Type"):
            content_type = self.settings.default_content_type or _negotiate_content_type(request)
            response = response.with_header("Content-Type", content_type)
        return response

    def _add_security_headers(self, response: Response) -> Response:
        for name, value in self.settings.security_headers.items():
            if not response.has_header(name):
                response = response.with_header(name, value)
        return response

    def _render_error(self, exc: HTTPError, request: Request) -> Response:
        handler = self._error_handlers.get(exc.status_code)
        if handler is not None:
            try:
                result = self._registry.call(handler, {"exception": exc, "request": request})
                response = self._ensure_response(result)
                if not isinstance(result, Response):
                    response = response.with_status(exc.status_code)
                return _with_missing_headers(response, exc.headers)
            except Exception:
                logger.exception("Error handler for status %s failed", exc.status_code)

        return self._fallback_error_response(exc)

    def _fallback_error_response(self, exc: HTTPError) -> Response:
        data: dict[str, Any] = {"error": exc.message, "status": exc.status_code}
        if self.settings.expose_error_details and exc.__cause__ is not None:
            data["details"] = str(exc.__cause__)
        try:
            response = Response.json(data, exc.status_code)
        except (TypeError, ValueError):
            return Response.text("Internal Server Error", 500)
        return _with_missing_headers(response, exc.headers)

    def _register_default_error_handlers(self) -> None:
        self.error_handler(400, _bad_request)
        self.error_handler(404, _not_found)
        self.error_handler(405, _method_not_allowed)
        self.error_handler(422, _validation_failed)
        self.error_handler(500, self._server_error)

    def _server_error(self, exception: HTTPError) -> Response:
        data: dict[str, Any] = {"error": "Internal Server Error", "message": exception.message}
        if self.settings.expose_error_details and exception.__cause__ is not None:
            data["details"] = str(exception.__cause__)
        return Response.json(data, 500)


def _bad_request(exception: HTTPError) -> Response:
    return Response.json({"error": "Bad Request", "message": exception.message}, 400)


def _not_found(exception: HTTPError) -> Response:
    return Response.json({"error": "Not Found", "message": exception.message}, 404)


def _method_not_allowed(exception: MethodNotAllowed) -> Response:
    return Response.json(
        {"error": "Method Not Allowed", "allowed_methods": exception.allowed_methods},
        405,
        {"Allow": ", ".join(exception.allowed_methods)},
    )


def _validation_failed(exception: ValidationFailed) -> Response:
    return Response.json({"error": "Validation Failed", "errors": exception.errors}, 422)


def _validate_handler(handler: Any) -> None:
    if isinstance(handler, tuple | list):
        if len(handler) == 2 and isinstance(handler[1], str):  # noqa: PLR2004
            return
        raise ConfigurationError(f"Invalid route handler: {handler!r}")
    if not callable(handler):
        raise ConfigurationError(f"Invalid route handler: {handler!r}")


def _jsonable(result: Any) -> Any:
    """Return a JSON-ready view of mapping- or object-like results, else ``None``."""
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if dataclasses.is_dataclass(result) and not isinstance(result, type):
        return dataclasses.asdict(result)
    if isinstance(result, Mapping):
        return dict(result)
    if isinstance(result, list | tuple):
        return list(result)
    if isinstance(result, str | bytes | int | float | bool):
        return None
    if hasattr(result, "__dict__") and not callable(result):
        return {key: value for key, value in vars(result).items() if not key.startswith("_")}
    return None


def _negotiate_content_type(request: Request) -> str:
    accept = request.header_line("Accept")
    if "application/json" in accept:
        return "application/json"
    if "text/html" in accept:
        return "text/html"
    return "text/plain"


def _with_missing_headers(response: Response, headers: Mapping[str, str]) -> Response:
    for name, value in headers.items():
        if not response.has_header(name):
            response = response.with_header(name, value)
    return response
