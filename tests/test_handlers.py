"""Tests for the handler registry and handler signatures."""

import pytest

from support.controllers import TestController
from waymark.errors import ConfigurationError
from waymark.handlers import HandlerRegistry, Param, Signature


def show(id, page=1, *rest, fmt, strict=False, **extra):
    return id


class Unhashable:
    __hash__ = None  # type: ignore[assignment]

    def __call__(self, slug):
        return slug


class TestSignature:
    def test_inspect_function(self) -> None:
        signature = Signature.inspect(show)
        assert signature.names == ("id", "page", "fmt", "strict")
        assert [p.required for p in signature] == [True, False, True, False]
        assert [p.keyword_only for p in signature] == [False, False, True, True]
        assert list(signature)[1].default == 1

    def test_bound_method_drops_self(self) -> None:
        class Greeter:
            def greet(self, name, punctuation="!"):
                return name + punctuation

        assert Signature.inspect(Greeter().greet).names == ("name", "punctuation")

    def test_unhashable_callable(self) -> None:
        assert Signature.inspect(Unhashable()).names == ("slug",)

    def test_declared(self) -> None:
        signature = Signature.of(["id", Param("page", required=False, default=1)])
        assert signature.names == ("id", "page")
        assert len(signature) == 2
        assert list(signature)[0].required

    def test_drop_first(self) -> None:
        assert Signature.of(["a", "b"]).drop_first().names == ("b",)


class TestRegistry:
    def test_of_sorts_classes_and_functions(self) -> None:
        registry = HandlerRegistry.of(TestController, show)
        assert registry.controllers == ("TestController",)
        assert registry.functions == ("show",)

    def test_lookup(self) -> None:
        registry = HandlerRegistry.of(TestController, show)
        entry = registry.lookup_controller("TestController")
        assert entry is not None
        assert entry.factory is TestController
        assert registry.lookup_function("show") is show
        assert registry.lookup_controller("Missing") is None
        assert registry.lookup_function("missing") is None

    def test_duplicate_controller(self) -> None:
        registry = HandlerRegistry.of(TestController)
        with pytest.raises(ConfigurationError, match="already registered"):
            registry.register_controller("TestController", TestController)

    def test_duplicate_function(self) -> None:
        registry = HandlerRegistry.of(show)
        with pytest.raises(ConfigurationError, match="already registered"):
            registry.register_function(show)

    def test_factory_must_be_callable(self) -> None:
        with pytest.raises(ConfigurationError, match="not callable"):
            HandlerRegistry().register_controller("XController", "nope")

    def test_function_must_be_callable(self) -> None:
        with pytest.raises(ConfigurationError, match="not callable"):
            HandlerRegistry().register_function(42)

    def test_controller_decorator(self) -> None:
        registry = HandlerRegistry()

        @registry.controller
        class PageController:
            def __init__(self, router):
                self.router = router

        @registry.controller(name="LegacyController")
        class OldController:
            def __init__(self, router):
                self.router = router

        assert registry.controllers == ("PageController", "LegacyController")
        assert isinstance(PageController, type)

    def test_function_decorator_with_params(self) -> None:
        registry = HandlerRegistry()

        @registry.function(name="page", params=["slug"])
        def render(*args):
            return args

        assert registry.lookup_function("page") is render
        assert registry.signature(render).names == ("slug",)

    def test_declare(self) -> None:
        registry = HandlerRegistry()

        def handler(**kwargs):
            return kwargs

        registry.declare(handler, [Param("id", keyword_only=True)])
        assert registry.signature(handler).names == ("id",)

    def test_undeclared_signature_is_inspected(self) -> None:
        assert HandlerRegistry().signature(show).names == ("id", "page", "fmt", "strict")

    def test_declared_action_signature(self) -> None:
        registry = HandlerRegistry()
        entry = registry.register_controller(
            "TestController", TestController, actions={"get_action": ["id", "extra"]}
        )
        assert entry.signature("get_action", TestController.get_action).names == ("id", "extra")
        assert entry.signature("save_action", TestController.save_action).names == (
            "self",
            "id",
        )
