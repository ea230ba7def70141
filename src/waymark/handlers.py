"""Handler registry: controller factories and declared parameter tables.

Controllers are never looked up by importing a class from its name. They
are registered at startup, under the class name the dispatcher computes
from a route (``"user-profile"`` -> ``UserProfileController``), together
with a factory that builds one from the router.

Every handler has a ``Signature``: the ordered parameters the dispatcher
fills from route fields. It is declared explicitly or read once from the
callable with ``inspect``.

Usage::

    registry = HandlerRegistry()

    @registry.controller
    class UserController(Controller):
        def show_action(self, id):
            ...

    @registry.function(params=[Param("slug")])
    def page(slug):
        ...
"""

from __future__ import annotations

import inspect
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, TypeAlias

from waymark.errors import ConfigurationError

# A route handler: user-defined callable with a variable signature
Handler: TypeAlias = Callable[..., Any]

# Builds a controller instance from the router handling the request
ControllerFactory: TypeAlias = Callable[[Any], Any]

_EMPTY = inspect.Parameter.empty


@dataclass(frozen=True, slots=True)
class Param:
    """One declared handler parameter.

    ``keyword_only`` parameters are passed by name, all others by
    position in declaration order.
    """

    name: str
    required: bool = True
    default: Any = None
    keyword_only: bool = False


@dataclass(frozen=True, slots=True)
class Signature:
    """The ordered parameters of a handler."""

    params: tuple[Param, ...] = ()

    def __iter__(self):
        return iter(self.params)

    def __len__(self) -> int:
        return len(self.params)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(param.name for param in self.params)

    @classmethod
    def of(cls, params: Iterable[Param | str]) -> Signature:
        """Declare a signature from params or bare (required) names."""
        return cls(tuple(p if isinstance(p, Param) else Param(p) for p in params))

    @classmethod
    def inspect(cls, target: Callable[..., Any]) -> Signature:
        """Read the signature of *target*.

        ``*args`` and ``**kwargs`` are skipped. Bound methods lose their
        ``self`` the way ``inspect.signature`` reports them.
        """
        func = getattr(target, "__func__", None)
        if func is not None and getattr(target, "__self__", None) is not None:
            return _unbound_signature(func).drop_first()
        try:
            return _unbound_signature(target)
        except TypeError:
            # unhashable callable object
            return _read_signature(target)

    def drop_first(self) -> Signature:
        return Signature(self.params[1:])


def _read_signature(target: Callable[..., Any]) -> Signature:
    try:
        parameters = inspect.signature(target).parameters.values()
    except (TypeError, ValueError) as exc:
        msg = f"Cannot read the parameters of {target!r}: {exc}"
        raise ConfigurationError(msg) from exc

    params: list[Param] = []
    for param in parameters:
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        params.append(
            Param(
                name=param.name,
                required=param.default is _EMPTY,
                default=None if param.default is _EMPTY else param.default,
                keyword_only=param.kind is param.KEYWORD_ONLY,
            )
        )
    return Signature(tuple(params))


@lru_cache(maxsize=1024)
def _unbound_signature(target: Callable[..., Any]) -> Signature:
    return _read_signature(target)


@dataclass(frozen=True, slots=True)
class ControllerEntry:
    """A registered controller.

    ``actions`` holds explicitly declared signatures per method name;
    methods without one are inspected on first use.
    """

    name: str
    factory: ControllerFactory
    actions: Mapping[str, Signature] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "actions", MappingProxyType(dict(self.actions)))

    def signature(self, method_name: str, method: Callable[..., Any]) -> Signature:
        declared = self.actions.get(method_name)
        if declared is not None:
            return declared
        return Signature.inspect(method)


class HandlerRegistry:
    """Controller factories and named functions, populated at startup.

    Registration is guarded by a lock; lookups only read. A registry is
    shared by every router an application creates.
    """

    __slots__ = ("_controllers", "_functions", "_lock", "_signatures")

    def __init__(self) -> None:
        self._controllers: dict[str, ControllerEntry] = {}
        self._functions: dict[str, Handler] = {}
        self._signatures: dict[int, tuple[Handler, Signature]] = {}
        self._lock = threading.Lock()

    @classmethod
    def of(cls, *handlers: Any) -> HandlerRegistry:
        """Build a registry from controller classes and plain functions."""
        registry = cls()
        for handler in handlers:
            if inspect.isclass(handler):
                registry.register_controller(handler.__name__, handler)
            else:
                registry.register_function(handler)
        return registry

    # -- Registration --

    def register_controller(
        self,
        name: str,
        factory: ControllerFactory,
        *,
        actions: Mapping[str, Iterable[Param | str]] | None = None,
    ) -> ControllerEntry:
        """Register *factory* as the controller class *name*.

        *name* is the full class name (``"UserController"``). The factory
        is called with the router for every request routed to it.
        """
        if not callable(factory):
            msg = f"Controller factory for {name!r} is not callable"
            raise ConfigurationError(msg)
        entry = ControllerEntry(
            name=name,
            factory=factory,
            actions={method: Signature.of(params) for method, params in (actions or {}).items()},
        )
        with self._lock:
            if name in self._controllers:
                msg = f"Controller {name!r} is already registered"
                raise ConfigurationError(msg)
            self._controllers[name] = entry
        return entry

    def register_function(
        self,
        fn: Handler,
        *,
        name: str | None = None,
        params: Iterable[Param | str] | None = None,
    ) -> Handler:
        """Register *fn*, addressable from routes as ``{"fn": name}``."""
        if not callable(fn):
            msg = f"Function handler {fn!r} is not callable"
            raise ConfigurationError(msg)
        name = name or getattr(fn, "__name__", None)
        if not name:
            msg = f"Function handler {fn!r} needs a name"
            raise ConfigurationError(msg)

        signature = Signature.of(params) if params is not None else Signature.inspect(fn)
        with self._lock:
            if name in self._functions:
                msg = f"Function {name!r} is already registered"
                raise ConfigurationError(msg)
            self._functions[name] = fn
            self._signatures[id(fn)] = (fn, signature)
        return fn

    def controller(self, cls: Any = None, *, name: str | None = None) -> Any:
        """Decorator form of ``register_controller``."""

        def decorator(target: Any) -> Any:
            self.register_controller(name or target.__name__, target)
            return target

        if cls is not None:
            return decorator(cls)
        return decorator

    def function(
        self,
        fn: Handler | None = None,
        *,
        name: str | None = None,
        params: Iterable[Param | str] | None = None,
    ) -> Any:
        """Decorator form of ``register_function``."""

        def decorator(target: Handler) -> Handler:
            return self.register_function(target, name=name, params=params)

        if fn is not None:
            return decorator(fn)
        return decorator

    def declare(self, fn: Handler, params: Iterable[Param | str]) -> None:
        """Attach an explicit parameter table to *fn* without naming it."""
        with self._lock:
            self._signatures[id(fn)] = (fn, Signature.of(params))

    # -- Lookup --

    def lookup_controller(self, name: str) -> ControllerEntry | None:
        return self._controllers.get(name)

    def lookup_function(self, name: str) -> Handler | None:
        return self._functions.get(name)

    def signature(self, fn: Handler) -> Signature:
        """The declared signature of *fn*, or the inspected one."""
        declared = self._signatures.get(id(fn))
        if declared is not None and declared[0] is fn:
            return declared[1]
        return Signature.inspect(fn)

    @property
    def controllers(self) -> tuple[str, ...]:
        return tuple(self._controllers)

    @property
    def functions(self) -> tuple[str, ...]:
        return tuple(self._functions)
