from routewire.contextual import ContextualBindingBuilder
from routewire.delegates import CallableDelegate, DelegateProtocol
from routewire.exceptions import (
    BadRequest,
    CircularAliasError,
    CircularDependencyError,
    ConfigurationError,
    CsrfTokenMismatch,
    Forbidden,
    HTTPError,
    MethodNotAllowed,
    NotInstantiableError,
    PipelineNotConfiguredError,
    RegistryError,
    RouteNotFound,
    RoutewireError,
    ServiceNotFoundError,
    TooManyRequests,
    Unauthorized,
    UnresolvableParameterError,
    ValidationFailed,
)
from routewire.http import Headers, Request, Response
from routewire.pipeline import Middleware, MiddlewarePipeline
from routewire.registry import ServiceRegistry
from routewire.router import ROUTE_ATTRIBUTE, Router
from routewire.routing import Route, RouteMatch
from routewire.settings import RouterSettings
from routewire.types import Lifetime

__all__ = [
    "ROUTE_ATTRIBUTE",
    "BadRequest",
    "CallableDelegate",
    "CircularAliasError",
    "CircularDependencyError",
    "ConfigurationError",
    "ContextualBindingBuilder",
    "CsrfTokenMismatch",
    "DelegateProtocol",
    "Forbidden",
    "HTTPError",
    "Headers",
    "Lifetime",
    "MethodNotAllowed",
    "Middleware",
    "MiddlewarePipeline",
    "NotInstantiableError",
    "PipelineNotConfiguredError",
    "RegistryError",
    "Request",
    "Response",
    "Route",
    "RouteMatch",
    "RouteNotFound",
    "Router",
    "RouterSettings",
    "RoutewireError",
    "ServiceNotFoundError",
    "ServiceRegistry",
    "TooManyRequests",
    "Unauthorized",
    "UnresolvableParameterError",
    "ValidationFailed",
]
