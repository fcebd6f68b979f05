import inspect
import types
from dataclasses import dataclass
from typing import Any, Union, get_args, get_origin, get_type_hints

from routewire._internal.type_checks import is_runtime_class

_SKIPPED_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@dataclass(frozen=True, slots=True)
class ParameterInfo:
    """Information about a constructor/function parameter."""

    name: str
    dependency: type[Any] | None
    has_default: bool
    default: Any = None
    positional_only: bool = False


class DependenciesExtractor:
    """Extract type-hinted dependencies from classes and callables.

    Results are cached per class or per underlying function, so bound methods
    of different instances share one entry.
    """

    def __init__(self) -> None:
        self._cache: dict[Any, tuple[ParameterInfo, ...]] = {}

    def clear(self) -> None:
        self._cache.clear()

    def get_constructor_parameters(self, cls: type[Any]) -> tuple[ParameterInfo, ...]:
        """Get the parameters of ``cls.__init__`` without ``self``."""
        cached = self._cache.get(cls)
        if cached is not None:
            return cached

        init_func = cls.__init__
        if init_func is object.__init__:
            result: tuple[ParameterInfo, ...] = ()
        else:
            result = self._extract(init_func, skip_first=True)
        self._cache[cls] = result
        return result

    def get_callable_parameters(self, func: Any) -> tuple[ParameterInfo, ...]:
        """Get the parameters a call to ``func`` needs, bound receivers excluded."""
        target, skip_first = self._unwrap(func)
        cached = self._cache.get(target)
        if cached is not None:
            return cached

        result = self._extract(target, skip_first=skip_first)
        self._cache[target] = result
        return result

    def _unwrap(self, func: Any) -> tuple[Any, bool]:
        if isinstance(func, types.MethodType):
            return func.__func__, True
        if inspect.isfunction(func) or inspect.isbuiltin(func):
            return func, False
        if isinstance(func, type):
            return func.__init__, True
        call_method = getattr(type(func), "__call__", None)  # noqa: B004
        if call_method is not None and inspect.isfunction(call_method):
            return call_method, True
        return func, False

    def _extract(self, func: Any, *, skip_first: bool) -> tuple[ParameterInfo, ...]:
        try:
            parameters = list(inspect.signature(func).parameters.values())
        except (ValueError, TypeError):
            return ()
        if skip_first and parameters:
            parameters = parameters[1:]

        try:
            hints = get_type_hints(func)
        except (NameError, TypeError):
            # Unresolvable forward references fall back to raw annotations.
            hints = {}

        result = []
        for parameter in parameters:
            if parameter.kind in _SKIPPED_KINDS:
                continue
            annotation = hints.get(parameter.name, parameter.annotation)
            has_default = parameter.default is not inspect.Parameter.empty
            result.append(
                ParameterInfo(
                    name=parameter.name,
                    dependency=self._dependency_from_annotation(annotation),
                    has_default=has_default,
                    default=parameter.default if has_default else None,
                    positional_only=parameter.kind is inspect.Parameter.POSITIONAL_ONLY,
                ),
            )
        return tuple(result)

    def _dependency_from_annotation(self, annotation: Any) -> type[Any] | None:
        if annotation is inspect.Parameter.empty:
            return None

        origin = get_origin(annotation)
        if origin is Union or origin is types.UnionType:
            members = [arg for arg in get_args(annotation) if arg is not type(None)]
            if len(members) != 1:
                return None
            annotation = members[0]

        if not is_runtime_class(annotation):
            return None
        if annotation.__module__ == "builtins":
            return None
        return annotation
