"""Waymark: an HTTP request router.

Maps a request's method and path to a controller action, a function or a
file, binds route fields from the url and the request, and routes error
conditions to status-code fallback routes.

Basic usage::

    from waymark import App, Controller

    app = App({
        "/": {"controller": "home"},
        "/users/* +GET": {"controller": "user", "action": "show", "id": "$2"},
        404: {"fn": "not_found_page"},
    })

    @app.controller
    class UserController(Controller):
        def show_action(self, id):
            ...

Routing a single request without ASGI::

    from waymark import Request, Router

    response = Router(routes, request=Request.build("GET", "/users/1")).execute()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "BadRequest",
    "ConfigurationError",
    "Controller",
    "Diagnostic",
    "DiagnosticKind",
    "DiagnosticLog",
    "Forbidden",
    "HTTPError",
    "HandlerRegistry",
    "LoginRequired",
    "LoggingSink",
    "MethodNotAllowed",
    "Negotiator",
    "NotFound",
    "Param",
    "Redirect",
    "Request",
    "Response",
    "Route",
    "RouteSpec",
    "RouteTable",
    "Router",
    "RouterConfig",
    "ServerError",
    "WaymarkError",
    "compile_pattern",
    "fnmatch",
]

_LAZY_IMPORTS: dict[str, str] = {
    "App": "waymark.app",
    "BadRequest": "waymark.errors",
    "ConfigurationError": "waymark.errors",
    "Controller": "waymark.controller",
    "Diagnostic": "waymark.diagnostics",
    "DiagnosticKind": "waymark.diagnostics",
    "DiagnosticLog": "waymark.diagnostics",
    "Forbidden": "waymark.errors",
    "HTTPError": "waymark.errors",
    "HandlerRegistry": "waymark.handlers",
    "LoginRequired": "waymark.errors",
    "LoggingSink": "waymark.diagnostics",
    "MethodNotAllowed": "waymark.errors",
    "Negotiator": "waymark.negotiation",
    "NotFound": "waymark.errors",
    "Param": "waymark.handlers",
    "Redirect": "waymark.http.response",
    "Request": "waymark.http.request",
    "Response": "waymark.http.response",
    "Route": "waymark.routing.route",
    "RouteSpec": "waymark.routing.route",
    "RouteTable": "waymark.routing.table",
    "Router": "waymark.router",
    "RouterConfig": "waymark.config",
    "ServerError": "waymark.errors",
    "WaymarkError": "waymark.errors",
    "compile_pattern": "waymark.routing.pattern",
    "fnmatch": "waymark.routing.pattern",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import waymark`` fast while providing a clean top-level API.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    from importlib import import_module

    return getattr(import_module(module_name), name)
