from __future__ import annotations

import inspect
import logging
import types
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar, overload

from routewire._internal.autoregistration import ConcreteTypeAutoregistrationPolicy
from routewire._internal.type_checks import is_runtime_class, lookup_dotted_class
from routewire.contextual import ContextualBindingBuilder
from routewire.delegates import CallableDelegate, DelegateProtocol, as_delegate
from routewire.dependencies import DependenciesExtractor, ParameterInfo
from routewire.exceptions import (
    CircularAliasError,
    ConfigurationError,
    NotInstantiableError,
    ServiceNotFoundError,
    UnresolvableParameterError,
)
from routewire.resolution_stack import ResolutionStack
from routewire.types import Lifetime

T = TypeVar("T")

logger = logging.getLogger(__name__)

_EMPTY = object()
_USE_DEFAULT = object()
_NOT_FOUND = object()
_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
    inspect.Parameter.VAR_POSITIONAL,
)

Builder = Callable[[ResolutionStack], Any]


@dataclass(slots=True)
class Binding:
    """A registry entry: a construction strategy plus its cached instance."""

    service_id: Any
    build: Builder
    lifetime: Lifetime = Lifetime.TRANSIENT
    instance: Any = _EMPTY

    @property
    def is_cached(self) -> bool:
        return self.instance is not _EMPTY


class ServiceRegistry:
    """Map identifiers to instances through bindings, singletons and factories.

    Identifiers are classes (interfaces or concrete types) or string keys. A
    string holding a dotted import path of a class (``"app.mail.Mailer"``) is
    treated as that class when it is not registered explicitly.

    Resolution order for ``resolve(id)``: aliases are followed to their
    terminus, then singletons, factories and plain bindings are consulted, then
    the delegate, and finally known classes are auto-registered and autowired
    from their constructor annotations. Contextual bindings created with
    ``when(...).needs(...).give(...)`` override single dependencies while one
    specific class is being autowired.

    The registry holds no locks. Register everything before serving requests
    from more than one thread, or synchronize registration externally.
    """

    def __init__(
        self,
        *,
        delegate: DelegateProtocol | Callable[[Any], Any] | None = None,
        autoregister: bool = True,
    ) -> None:
        """Initialize an empty registry.

        Args:
            delegate: Optional fallback resolver, see ``set_delegate``.
            autoregister: Enable on-demand registration of known classes.
                Disable it for strict mode where every identifier must be
                registered explicitly.

        """
        self._autoregister = autoregister
        self._policy = ConcreteTypeAutoregistrationPolicy()
        self._extractor = DependenciesExtractor()

        self._bindings: dict[Any, Binding] = {}
        self._singletons: dict[Any, Binding] = {}
        self._factories: dict[Any, Builder] = {}
        self._aliases: dict[Any, Any] = {}
        self._contextual: dict[tuple[Any, Any], Builder] = {}
        self._delegate: DelegateProtocol | None = None

        self._register_self()
        if delegate is not None:
            self.set_delegate(delegate)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(bindings={len(self._bindings)}, "
            f"singletons={len(self._singletons)}, factories={len(self._factories)}, "
            f"aliases={len(self._aliases)})"
        )

    def __contains__(self, service_id: object) -> bool:
        return self.has(service_id)

    # Registration

    def register(self, service_id: Any, concrete: Any = _EMPTY, *, shared: bool = False) -> None:
        """Register a plain binding, replacing any earlier registration of the id.

        Args:
            service_id: Identifier to bind.
            concrete: A literal value, a class to autowire on demand, or a
                factory called with the registry. Omit it to autowire
                ``service_id`` itself.
            shared: Cache the first constructed instance until ``reset``.

        """
        build = self._wrap_concrete(service_id if concrete is _EMPTY else concrete)
        self._forget_entries(service_id)
        lifetime = Lifetime.SHARED if shared else Lifetime.TRANSIENT
        self._bindings[service_id] = Binding(service_id=service_id, build=build, lifetime=lifetime)
        logger.debug("Registered %r as %s binding", service_id, lifetime.value)

    def share(self, service_id: Any, concrete: Any = _EMPTY) -> None:
        """Register a shared plain binding; see ``register``."""
        self.register(service_id, concrete, shared=True)

    def register_instance(self, service_id: Any, value: Any) -> None:
        """Bind ``service_id`` to an already built value, returned as is."""
        self._forget_entries(service_id)
        self._bindings[service_id] = Binding(
            service_id=service_id,
            build=lambda _stack: value,
        )
        logger.debug("Registered %r as instance binding", service_id)

    def register_singleton(self, service_id: Any, concrete: Any = _EMPTY) -> None:
        """Register a singleton constructed on first resolution and memoized.

        Args:
            service_id: Identifier to bind.
            concrete: Same forms as ``register``.

        """
        build = self._wrap_concrete(service_id if concrete is _EMPTY else concrete)
        self._forget_entries(service_id)
        self._singletons[service_id] = Binding(
            service_id=service_id,
            build=build,
            lifetime=Lifetime.SINGLETON,
        )
        logger.debug("Registered %r as singleton", service_id)

    def register_factory(self, service_id: Any, factory: Callable[..., Any]) -> None:
        """Register a factory that is invoked fresh on every resolution.

        Raises:
            ConfigurationError: If ``factory`` is not callable.

        """
        if not callable(factory):
            raise ConfigurationError(f"Factory for {service_id!r} must be callable")
        build = self._wrap_concrete(factory)
        self._forget_entries(service_id)
        self._factories[service_id] = build
        logger.debug("Registered %r as factory", service_id)

    def alias(self, alias_id: Any, target_id: Any) -> None:
        """Make ``alias_id`` resolve to whatever ``target_id`` resolves to.

        Raises:
            ConfigurationError: If ``alias_id`` equals ``target_id``.

        """
        if alias_id == target_id:
            raise ConfigurationError("Cannot alias a service to itself")
        self._aliases[alias_id] = target_id
        logger.debug("Aliased %r to %r", alias_id, target_id)

    def when(self, requesting_id: Any) -> ContextualBindingBuilder:
        """Begin a contextual override for dependencies of ``requesting_id``."""
        return ContextualBindingBuilder(self, requesting_id)

    def add_contextual_binding(
        self,
        requesting_id: Any,
        dependency_id: Any,
        concrete: Any,
    ) -> None:
        """Store an override used when ``requesting_id`` needs ``dependency_id``."""
        self._contextual[(requesting_id, dependency_id)] = self._wrap_concrete(concrete)
        logger.debug(
            "Registered contextual binding for %r needing %r",
            requesting_id,
            dependency_id,
        )

    def set_delegate(self, delegate: DelegateProtocol | Callable[[Any], Any] | None) -> None:
        """Set the fallback resolver for identifiers this registry does not know.

        Args:
            delegate: An object with ``has``/``resolve`` (another registry
                qualifies), a plain ``id -> instance | None`` callable, or
                ``None`` to remove the current delegate.

        """
        self._delegate = None if delegate is None else as_delegate(delegate)

    def get_delegate(self) -> DelegateProtocol | None:
        return self._delegate

    def forget(self, service_id: Any) -> None:
        """Drop the binding, singleton and factory entries of one identifier."""
        self._bindings.pop(service_id, None)
        self._singletons.pop(service_id, None)
        self._factories.pop(service_id, None)

    def reset(self) -> None:
        """Return the registry to its initial state.

        Bindings, singletons, factories, aliases, contextual overrides, the
        delegate and cached introspection results are all dropped.
        """
        self._bindings.clear()
        self._singletons.clear()
        self._factories.clear()
        self._aliases.clear()
        self._contextual.clear()
        self._delegate = None
        self._extractor.clear()
        self._register_self()

    # Lookup

    def has(self, service_id: Any) -> bool:
        """Return true when ``resolve(service_id)`` has a way to produce a value.

        Raises:
            CircularAliasError: If the alias chain of ``service_id`` loops.

        """
        service_id = self._resolve_alias(service_id)
        if (
            service_id in self._bindings
            or service_id in self._singletons
            or service_id in self._factories
        ):
            return True
        if self._delegate is not None and self._delegate.has(service_id):
            return True
        return self._autoregister and self._lookup_class(service_id) is not None

    @overload
    def resolve(self, service_id: type[T]) -> T: ...

    @overload
    def resolve(self, service_id: Any) -> Any: ...

    def resolve(self, service_id: Any) -> Any:
        """Resolve an identifier to an instance.

        Raises:
            CircularAliasError: If the alias chain of ``service_id`` loops.
            CircularDependencyError: If autowiring revisits a class under construction.
            ServiceNotFoundError: If nothing can produce the identifier.
            UnresolvableParameterError: If a constructor parameter cannot be satisfied.

        """
        return self._resolve(service_id, ResolutionStack())

    def call(
        self,
        func: Callable[..., Any] | tuple[Any, str] | list[Any],
        extra_args: Mapping[str, Any] | None = None,
    ) -> Any:
        """Call ``func`` with its parameters injected.

        Each parameter takes, in order: ``extra_args[name]``, a contextual
        override for the owning class of a bound method, the resolved value of
        its annotated class, its default value.

        Args:
            func: A function, bound method, callable object, or a
                ``(instance_or_id, "method_name")`` pair. An identifier in the
                pair is resolved first.
            extra_args: Values supplied by parameter name.

        Raises:
            UnresolvableParameterError: If a parameter has no source at all.

        """
        stack = ResolutionStack()
        target = self._callable_target(func, stack)
        requesting = self._requesting_class(target)
        parameters = self._extractor.get_callable_parameters(target)
        args, kwargs = self._resolve_parameters(
            parameters,
            extra_args or {},
            requesting=requesting,
            context=_describe_callable(target),
            stack=stack,
        )
        return target(*args, **kwargs)

    # Internals

    def _register_self(self) -> None:
        self._bindings[type(self)] = Binding(
            service_id=type(self),
            build=lambda _stack: self,
        )

    def _forget_entries(self, service_id: Any) -> None:
        self.forget(service_id)
        self._aliases.pop(service_id, None)

    def _resolve(self, service_id: Any, stack: ResolutionStack) -> Any:
        instance = self._lookup(service_id, stack)
        if instance is _NOT_FOUND:
            raise ServiceNotFoundError(service_id)
        return instance

    def _lookup(self, service_id: Any, stack: ResolutionStack) -> Any:
        """Resolve ``service_id``, or return ``_NOT_FOUND`` when nothing can produce it."""
        service_id = self._resolve_alias(service_id)

        singleton = self._singletons.get(service_id)
        if singleton is not None:
            if not singleton.is_cached:
                singleton.instance = singleton.build(stack)
            return singleton.instance

        factory = self._factories.get(service_id)
        if factory is not None:
            return factory(stack)

        binding = self._bindings.get(service_id)
        if binding is not None:
            return self._resolve_binding(binding, stack)

        if self._delegate is not None:
            instance = self._delegate_lookup(self._delegate, service_id)
            if instance is not _NOT_FOUND:
                return instance

        cls = self._lookup_class(service_id) if self._autoregister else None
        if cls is not None:
            return self._autoregister_class(service_id, cls, stack)

        return _NOT_FOUND

    def _delegate_lookup(self, delegate: DelegateProtocol, service_id: Any) -> Any:
        if isinstance(delegate, CallableDelegate):
            return delegate.lookup(service_id, _NOT_FOUND)
        if delegate.has(service_id):
            return delegate.resolve(service_id)
        return _NOT_FOUND

    def _resolve_binding(self, binding: Binding, stack: ResolutionStack) -> Any:
        if binding.lifetime is Lifetime.SHARED and binding.is_cached:
            return binding.instance
        instance = binding.build(stack)
        if binding.lifetime is Lifetime.SHARED:
            binding.instance = instance
        return instance

    def _autoregister_class(self, service_id: Any, cls: type[Any], stack: ResolutionStack) -> Any:
        lifetime = self._policy.lifetime_for(cls)
        logger.debug("Auto-registering %r as %s", service_id, lifetime.value)
        if lifetime is Lifetime.SINGLETON:
            self.register_singleton(service_id, lambda: cls())
            return self._resolve(service_id, stack)

        self.register(service_id, cls)
        return self._resolve_binding(self._bindings[service_id], stack)

    def _resolve_alias(self, service_id: Any) -> Any:
        visited: dict[Any, None] = {}
        while service_id in self._aliases:
            if service_id in visited:
                raise CircularAliasError([*visited, service_id])
            visited[service_id] = None
            service_id = self._aliases[service_id]
        return service_id

    def _lookup_class(self, service_id: Any) -> type[Any] | None:
        candidate = lookup_dotted_class(service_id) if isinstance(service_id, str) else service_id
        if self._policy.is_known_class(candidate):
            return candidate
        return None

    def _wrap_concrete(self, concrete: Any) -> Builder:
        if is_runtime_class(concrete):
            cls = concrete
            return lambda stack: self._autowire(cls, stack)

        if isinstance(concrete, str):
            dotted = lookup_dotted_class(concrete)
            if dotted is not None:
                return lambda stack: self._autowire(dotted, stack)

        if callable(concrete):
            factory = concrete
            if _accepts_positional(factory):
                return lambda _stack: factory(self)
            return lambda _stack: factory()

        value = concrete
        return lambda _stack: value

    def _autowire(self, cls: type[Any], stack: ResolutionStack) -> Any:
        with stack.entering(cls):
            if getattr(cls, "_is_protocol", False) or inspect.isabstract(cls):
                raise NotInstantiableError(cls)

            parameters = self._extractor.get_constructor_parameters(cls)
            args, kwargs = self._resolve_parameters(
                parameters,
                {},
                requesting=cls,
                context=f"{cls.__module__}.{cls.__qualname__}",
                stack=stack,
            )
            return cls(*args, **kwargs)

    def _resolve_parameters(
        self,
        parameters: tuple[ParameterInfo, ...],
        extra_args: Mapping[str, Any],
        *,
        requesting: type[Any] | None,
        context: str,
        stack: ResolutionStack,
    ) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for parameter in parameters:
            if parameter.name in extra_args:
                value = extra_args[parameter.name]
            else:
                value = self._resolve_parameter(parameter, requesting, context, stack)
                if value is _USE_DEFAULT:
                    # Keyword-capable defaults are left to the callee.
                    if parameter.positional_only:
                        args.append(parameter.default)
                    continue

            if parameter.positional_only:
                args.append(value)
            else:
                kwargs[parameter.name] = value
        return args, kwargs

    def _resolve_parameter(
        self,
        parameter: ParameterInfo,
        requesting: type[Any] | None,
        context: str,
        stack: ResolutionStack,
    ) -> Any:
        dependency = parameter.dependency
        if dependency is not None:
            override = self._contextual_override(requesting, dependency)
            if override is not None:
                return override(stack)
            instance = self._lookup(dependency, stack)
            if instance is not _NOT_FOUND:
                return instance

        if parameter.has_default:
            return _USE_DEFAULT
        raise UnresolvableParameterError(parameter.name, context)

    def _contextual_override(self, requesting: type[Any] | None, dependency: Any) -> Builder | None:
        if requesting is None or not self._contextual:
            return None
        override = self._contextual.get((requesting, dependency))
        if override is not None:
            return override

        # Overrides may name the dependency through an alias.
        terminal = self._resolve_alias(dependency)
        for (owner, needed), candidate in self._contextual.items():
            if owner is requesting and self._resolve_alias(needed) == terminal:
                return candidate
        return None

    def _callable_target(
        self,
        func: Callable[..., Any] | tuple[Any, str] | list[Any],
        stack: ResolutionStack,
    ) -> Callable[..., Any]:
        if isinstance(func, tuple | list):
            if len(func) != 2 or not isinstance(func[1], str):  # noqa: PLR2004
                raise ConfigurationError(f"Invalid callable pair: {func!r}")
            owner, method_name = func
            if isinstance(owner, str) or is_runtime_class(owner):
                owner = self._resolve(owner, stack)
            return getattr(owner, method_name)
        if not callable(func):
            raise ConfigurationError(f"{func!r} is not callable")
        return func

    def _requesting_class(self, target: Callable[..., Any]) -> type[Any] | None:
        if isinstance(target, types.MethodType):
            owner = target.__self__
            return owner if isinstance(owner, type) else type(owner)
        if inspect.isfunction(target) or inspect.isbuiltin(target) or isinstance(target, type):
            return None
        return type(target)


def _accepts_positional(factory: Callable[..., Any]) -> bool:
    try:
        parameters = inspect.signature(factory).parameters.values()
    except (ValueError, TypeError):
        return True
    return any(parameter.kind in _POSITIONAL_KINDS for parameter in parameters)


def _describe_callable(target: Callable[..., Any]) -> str:
    qualname = getattr(target, "__qualname__", None) or type(target).__qualname__
    return f"{qualname}()"


__all__ = ["Binding", "ServiceRegistry"]
