"""Waymark ASGI application.

Mutable during setup (routes, handlers, lifecycle hooks). Frozen when the
first request or lifespan event arrives. From then on every request gets
its own ``Router`` over the shared, immutable route table, and the router
runs in a worker thread so blocking handlers don't stall the event loop.
"""

import inspect
import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

import anyio.to_thread

from waymark._internal.asgi import Receive, Scope, Send, read_body
from waymark.config import RouterConfig
from waymark.diagnostics import DiagnosticSink, LoggingSink
from waymark.handlers import Handler, HandlerRegistry, Param
from waymark.http.request import Request
from waymark.http.response import Response
from waymark.negotiation import Negotiator, OutputNegotiator
from waymark.router import Router
from waymark.routing.table import RouteInput, RouteTable
from waymark.server.sender import send_response

logger = logging.getLogger("waymark.app")


class App:
    """A routed ASGI application.

    Usage::

        app = App({"/": {"controller": "home"}})

        @app.controller
        class HomeController(Controller):
            def default_action(self):
                return "Hello, World!"

        @app.route("/users/* +GET", id="$2")
        def show_user(id):
            return {"id": id}

    Serve it with any ASGI server, e.g. ``uvicorn module:app``.
    """

    __slots__ = (
        "_diagnostics",
        "_env",
        "_freeze_lock",
        "_frozen",
        "_negotiator",
        "_registry",
        "_shutdown_hooks",
        "_startup_hooks",
        "_table",
        "config",
    )

    def __init__(
        self,
        routes: RouteInput | None = None,
        *,
        config: RouterConfig | None = None,
        registry: HandlerRegistry | None = None,
        negotiator: OutputNegotiator | None = None,
        diagnostics: DiagnosticSink | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.config: RouterConfig = config or RouterConfig()
        self._registry = registry or HandlerRegistry()
        self._negotiator = negotiator or Negotiator(self.config.default_format)
        self._diagnostics = diagnostics if diagnostics is not None else LoggingSink()
        self._env = env
        self._table = RouteTable.build(routes, sink=self._diagnostics)
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen = False
        self._freeze_lock = threading.Lock()

    @property
    def routes(self) -> RouteTable:
        return self._table

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    @property
    def diagnostics(self) -> DiagnosticSink:
        return self._diagnostics

    # -- Setup --

    def add_routes(self, routes: RouteInput, root: str | None = None) -> None:
        """Append routes, prefixing each path with *root*."""
        self._check_not_frozen()
        self._table = self._table.extend(routes, root=root, sink=self._diagnostics)

    def route(
        self,
        pattern: str | int,
        *,
        params: list[Param | str] | None = None,
        **fields: Any,
    ) -> Callable[[Handler], Handler]:
        """Register a function route via decorator.

        *fields* are bound like any other route field, and *params*
        declares the function's parameters instead of inspecting it.
        """

        def decorator(func: Handler) -> Handler:
            self._check_not_frozen()
            if params is not None:
                self._registry.declare(func, params)
            self._table = self._table.extend(
                {pattern: {**fields, "fn": func}}, sink=self._diagnostics
            )
            return func

        return decorator

    def controller(self, cls: Any = None, *, name: str | None = None) -> Any:
        """Register a controller class via decorator."""
        self._check_not_frozen()
        return self._registry.controller(cls, name=name)

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a sync or async function to run at server startup."""
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a sync or async function to run at server shutdown."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Routing --

    def router(self, request: Request) -> Router:
        """Create the router for one request."""
        return Router(
            self._table,
            request=request,
            config=self.config,
            registry=self._registry,
            negotiator=self._negotiator,
            diagnostics=self._diagnostics,
        )

    def handle(self, request: Request) -> Response:
        """Route *request* synchronously."""
        self._ensure_frozen()
        return self.router(request).execute()

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            msg = f"Unsupported ASGI scope type {scope['type']!r}"
            raise RuntimeError(msg)

        self._ensure_frozen()
        body = await read_body(receive)
        request = Request.from_asgi(scope, body, env=self._env)
        response = await anyio.to_thread.run_sync(self.handle, request)
        await send_response(response, send, method=request.method)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol."""
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        """Run the startup hooks."""
        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def shutdown(self) -> None:
        """Run the shutdown hooks."""
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Freeze setup before the first request, exactly once."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            logger.debug(
                "Serving %d routes and %d fallback routes",
                len(self._table),
                len(self._table.pseudo_routes),
            )
            self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes and handlers before the first request."
            )
            raise RuntimeError(msg)
