"""Dispatch a bound route to its target.

Targets are tried in priority order: ``controller`` (+ ``action``), then
``fn``, then ``file``. A target that can't be resolved is reported to the
diagnostic sink and counts as a failed dispatch, never as a crash; the
router turns failures into its 404 fallback.
"""

from __future__ import annotations

import mimetypes
import runpy
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from waymark._internal.casing import snake_case, studly_case
from waymark.config import RouterConfig
from waymark.diagnostics import DiagnosticKind, DiagnosticSink, report
from waymark.handlers import HandlerRegistry, Signature
from waymark.http.response import Response
from waymark.routing.route import Route, TargetKind

if TYPE_CHECKING:
    from waymark.router import Router


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Whether the target ran successfully, and what it returned.

    ``value`` is ``None`` both for handlers that returned nothing and for
    failed dispatches.
    """

    ok: bool
    value: Any = None


FAILED = DispatchResult(ok=False)


class Dispatcher:
    """Resolve and invoke route targets.

    Stateless apart from its collaborators, so one dispatcher can serve
    many requests.
    """

    __slots__ = ("_config", "_registry", "_sink")

    def __init__(
        self,
        registry: HandlerRegistry,
        config: RouterConfig,
        sink: DiagnosticSink | None = None,
    ) -> None:
        self._registry = registry
        self._config = config
        self._sink = sink

    def dispatch(self, route: Route, router: Router) -> DispatchResult:
        """Invoke the target of *route* on behalf of *router*.

        ``HTTPError`` and any other exception raised by the target
        propagate to the caller.
        """
        match route.kind:
            case TargetKind.CONTROLLER:
                return self._to_controller(route, router)
            case TargetKind.FUNCTION:
                return self._to_function(route, router)
            case TargetKind.FILE:
                return self._to_file(route, router)

        self._report(
            DiagnosticKind.INVALID_TARGET,
            f"Failed to route using '{route.pattern}':"
            " Neither 'controller', 'fn' or 'file' is set.",
            route,
        )
        return FAILED

    # -- Target kinds --

    def controller_class(self, controller: Any) -> str:
        """``"user-profile"`` -> ``"UserProfileController"``."""
        return studly_case(str(controller)) + self._config.controller_suffix

    def action_method(self, action: Any) -> str:
        """``"show-all"`` -> ``"show_all_action"``; no action is the default action."""
        name = action if action else self._config.default_action
        return snake_case(str(name)) + self._config.action_suffix

    def _to_controller(self, route: Route, router: Router) -> DispatchResult:
        class_name = self.controller_class(route.controller)
        entry = self._registry.lookup_controller(class_name)
        if entry is None:
            self._report(
                DiagnosticKind.MISSING_TARGET,
                f"Failed to route using '{route.pattern}':"
                f" Controller {class_name} isn't registered.",
                route,
            )
            return FAILED

        method_name = self.action_method(route.action)
        controller = entry.factory(router)
        method = getattr(controller, method_name, None)
        if not callable(method):
            self._report(
                DiagnosticKind.MISSING_TARGET,
                f"Failed to route using '{route.pattern}': {class_name} has no method"
                f" {method_name}().",
                route,
            )
            return FAILED

        target = f"{class_name}.{method_name}"
        return self._invoke(
            method, route, router, target, lambda: entry.signature(method_name, method)
        )

    def _to_function(self, route: Route, router: Router) -> DispatchResult:
        fn = route.fn
        if isinstance(fn, str):
            fn = self._registry.lookup_function(fn)
        if not callable(fn):
            self._report(
                DiagnosticKind.INVALID_TARGET,
                f"Failed to route using '{route.pattern}': Invalid callback.",
                route,
            )
            return FAILED

        target = getattr(fn, "__qualname__", repr(fn))
        return self._invoke(fn, route, router, target, lambda: self._registry.signature(fn))

    def _to_file(self, route: Route, router: Router) -> DispatchResult:
        name = str(route.file)
        if name.startswith("~") or ".." in name or ":" in name:
            self._report(
                DiagnosticKind.UNSAFE_FILE,
                f"Won't route using '{route.pattern}': '~', '..' and ':' not allowed in filename.",
                route,
            )
            return FAILED

        root = Path(self._config.document_root).resolve()
        path = (root / name.lstrip("/")).resolve()
        if not path.is_relative_to(root):
            self._report(
                DiagnosticKind.UNSAFE_FILE,
                f"Won't route using '{route.pattern}': '{name}' is outside the document root.",
                route,
            )
            return FAILED
        if not path.is_file():
            self._report(
                DiagnosticKind.MISSING_TARGET,
                f"Failed to route using '{route.pattern}': File '{name}' doesn't exist.",
                route,
            )
            return FAILED

        if path.suffix == ".py":
            namespace = runpy.run_path(
                str(path),
                init_globals={"router": router, "route": route, "request": router.request},
            )
            return _result(namespace.get("result"))

        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        if content_type.startswith("text/"):
            content_type += "; charset=utf-8"
        response = Response(body=path.read_bytes(), content_type=content_type)
        return DispatchResult(ok=True, value=response)

    # -- Arguments --

    def _invoke(
        self,
        fn: Callable[..., Any],
        route: Route,
        router: Router,
        target: str,
        signature: Callable[[], Signature],
    ) -> DispatchResult:
        args, kwargs = self.arguments(route, router, target, signature)
        return _result(fn(*args, **kwargs))

    def arguments(
        self,
        route: Route,
        router: Router,
        target: str,
        signature: Callable[[], Signature],
    ) -> tuple[list[Any], dict[str, Any]]:
        """Build the call arguments for *target*.

        An explicit ``args`` field wins: a list is passed positionally, a
        mapping by keyword. Otherwise every declared parameter takes the
        route field of the same name. ``request`` and ``router`` are
        injected when the route has no such field.
        """
        explicit = route.args
        if isinstance(explicit, Mapping):
            return [], dict(explicit)
        if isinstance(explicit, Sequence) and not isinstance(explicit, str):
            return list(explicit), {}
        if explicit is not None:
            return [explicit], {}

        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for param in signature():
            if param.name in route:
                value = route[param.name]
            elif param.name == "request":
                value = router.request
            elif param.name == "router":
                value = router
            elif not param.required:
                value = param.default
            else:
                self._report(
                    DiagnosticKind.MISSING_ARGUMENT,
                    f"Missing argument '{param.name}' for {target}()",
                    route,
                )
                value = None

            if param.keyword_only:
                kwargs[param.name] = value
            else:
                args.append(value)
        return args, kwargs

    def _report(self, kind: DiagnosticKind, message: str, route: Route) -> None:
        report(self._sink, kind, message, route=route.pattern)


def _result(value: Any) -> DispatchResult:
    if value is False:
        return FAILED
    return DispatchResult(ok=True, value=value)
