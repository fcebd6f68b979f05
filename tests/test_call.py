import pytest

from routewire.exceptions import ConfigurationError, UnresolvableParameterError
from routewire.registry import ServiceRegistry


class Greeter:
    def __init__(self, greeting: str = "Hello") -> None:
        self.greeting = greeting

    def greet(self, name: str) -> str:
        return f"{self.greeting}, {name}"


class Controller:
    def show(self, item_id: str, greeter: Greeter) -> str:
        return greeter.greet(item_id)

    @classmethod
    def build(cls, greeter: Greeter) -> str:
        return greeter.greeting


class CallableHandler:
    def __call__(self, greeter: Greeter, suffix: str = "!") -> str:
        return greeter.greeting + suffix


def test_call_injects_annotated_parameters(registry: ServiceRegistry) -> None:
    def handler(greeter: Greeter) -> str:
        return greeter.greet("world")

    assert registry.call(handler) == "Hello, world"


def test_call_prefers_extra_args(registry: ServiceRegistry) -> None:
    def handler(greeter: Greeter, name: str) -> str:
        return greeter.greet(name)

    custom = Greeter("Hi")

    assert registry.call(handler, {"greeter": custom, "name": "Ada"}) == "Hi, Ada"


def test_call_uses_defaults_for_primitives(registry: ServiceRegistry) -> None:
    def handler(limit: int = 10, *, verbose: bool = False) -> tuple[int, bool]:
        return limit, verbose

    assert registry.call(handler) == (10, False)


def test_call_uses_default_when_class_is_unknown(strict_registry: ServiceRegistry) -> None:
    def handler(greeter: Greeter | None = None) -> Greeter | None:
        return greeter

    assert strict_registry.call(handler) is None


def test_call_unwraps_optional_annotation(registry: ServiceRegistry) -> None:
    def handler(greeter: Greeter | None = None) -> Greeter | None:
        return greeter

    assert isinstance(registry.call(handler), Greeter)


def test_call_fails_for_unresolvable_parameter(registry: ServiceRegistry) -> None:
    def handler(name: str) -> str:
        return name

    with pytest.raises(UnresolvableParameterError) as exc_info:
        registry.call(handler)

    assert exc_info.value.parameter == "name"
    assert "handler" in exc_info.value.context


def test_call_untyped_parameter_uses_default(registry: ServiceRegistry) -> None:
    def handler(limit=10):  # noqa: ANN001, ANN202
        return limit

    assert registry.call(handler) == 10


def test_call_untyped_parameter_without_default_fails(registry: ServiceRegistry) -> None:
    with pytest.raises(UnresolvableParameterError):
        registry.call(lambda value: value)


def test_call_skips_variadic_parameters(registry: ServiceRegistry) -> None:
    def handler(*args: object, **kwargs: object) -> tuple[tuple[object, ...], dict[str, object]]:
        return args, kwargs

    assert registry.call(handler, {"ignored": 1}) == ((), {})


def test_call_positional_only_parameters(registry: ServiceRegistry) -> None:
    def handler(greeter: Greeter, count: int = 2, /) -> str:
        return greeter.greeting * count

    assert registry.call(handler) == "HelloHello"


def test_call_bound_method(registry: ServiceRegistry) -> None:
    assert registry.call(Controller().show, {"item_id": "42"}) == "Hello, 42"


def test_call_class_method_pair_resolves_owner(registry: ServiceRegistry) -> None:
    assert registry.call((Controller, "show"), {"item_id": "7"}) == "Hello, 7"


def test_call_instance_method_pair(registry: ServiceRegistry) -> None:
    controller = Controller()

    assert registry.call([controller, "show"], {"item_id": "1"}) == "Hello, 1"


def test_call_string_id_method_pair(registry: ServiceRegistry) -> None:
    registry.register("controller", Controller)

    assert registry.call(("controller", "show"), {"item_id": "9"}) == "Hello, 9"


def test_call_classmethod(registry: ServiceRegistry) -> None:
    registry.register_instance(Greeter, Greeter("Hey"))

    assert registry.call(Controller.build) == "Hey"


def test_call_callable_object(registry: ServiceRegistry) -> None:
    assert registry.call(CallableHandler()) == "Hello!"


def test_call_rejects_invalid_pair(registry: ServiceRegistry) -> None:
    with pytest.raises(ConfigurationError):
        registry.call((Controller, "show", "extra"))  # type: ignore[arg-type]


def test_call_rejects_non_callable(registry: ServiceRegistry) -> None:
    with pytest.raises(ConfigurationError):
        registry.call(42)  # type: ignore[arg-type]


def test_call_can_inject_registry(registry: ServiceRegistry) -> None:
    def handler(services: ServiceRegistry) -> ServiceRegistry:
        return services

    assert registry.call(handler) is registry
