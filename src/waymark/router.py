"""The request router.

One ``Router`` handles exactly one request. It selects a route for the
request's method and url, binds the route's fields, dispatches to the
target and, when anything goes wrong, runs the fallback for the status
code. ``execute()`` always returns a ``Response``.

Usage::

    router = Router(
        {
            "/": {"controller": "home"},
            "/users/* +GET": {"controller": "user", "action": "show", "id": "$2"},
            404: {"controller": "error", "action": "not-found"},
        },
        request=request,
        registry=registry,
    )
    response = router.execute()

Fallbacks run the pseudo-route registered for their status code, passing
``[message, status, *extra]`` as its ``args``. Without one, or when it
fails, the negotiator writes a default error message.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from html import escape
from typing import Any

from waymark.config import RouterConfig
from waymark.diagnostics import DiagnosticLog, DiagnosticSink
from waymark.dispatch import Dispatcher
from waymark.errors import HTTPError
from waymark.handlers import HandlerRegistry
from waymark.http.request import Request
from waymark.http.response import Redirect, Response
from waymark.negotiation import Negotiator, OutputNegotiator
from waymark.routing.binding import Binder
from waymark.routing.route import MatchResult, Outcome, Route, RouteSpec
from waymark.routing.selector import select
from waymark.routing.table import RouteInput, RouteTable, split_url

logger = logging.getLogger("waymark.router")

FORBIDDEN_MESSAGE = "Sorry, you are not allowed to view this page"
NOT_FOUND_MESSAGE = "Sorry, this page does not exist"
NOT_SUPPORTED_MESSAGE = "Sorry, this action isn't supported"
ERROR_MESSAGE = "Sorry, an unexpected error occurred"


class Router:
    """Routes one request.

    Configure with the setters (each returns the router, and each drops
    the memoized match), then call ``execute()``.
    """

    __slots__ = (
        "_base",
        "_config",
        "_content_type",
        "_diagnostics",
        "_dispatcher",
        "_match",
        "_method",
        "_negotiator",
        "_registry",
        "_request",
        "_running",
        "_table",
        "_url",
        "response",
    )

    def __init__(
        self,
        routes: RouteTable | RouteInput | None = None,
        *,
        request: Request | None = None,
        config: RouterConfig | None = None,
        registry: HandlerRegistry | None = None,
        negotiator: OutputNegotiator | None = None,
        diagnostics: DiagnosticSink | None = None,
    ) -> None:
        self._config = config or RouterConfig()
        self._request = request
        self._registry = registry or HandlerRegistry()
        self._negotiator = negotiator or Negotiator(self._config.default_format)
        self._diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
        self._dispatcher = Dispatcher(self._registry, self._config, self._diagnostics)

        self._table = RouteTable()
        self._method: str | None = None
        self._url: str | None = None
        self._base = self._config.base.rstrip("/")
        self._match: MatchResult | None = None
        self._content_type: str | None = None
        self._running: set[int] = set()
        self.response = Response()

        if routes is not None:
            self.set_routes(routes)

    # -- Collaborators --

    @property
    def request(self) -> Request | None:
        return self._request

    @property
    def config(self) -> RouterConfig:
        return self._config

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    @property
    def diagnostics(self) -> DiagnosticSink:
        return self._diagnostics

    # -- Routes --

    @property
    def routes(self) -> RouteTable:
        return self._table

    def set_routes(self, routes: RouteTable | RouteInput) -> Router:
        """Replace the route table."""
        if isinstance(routes, RouteTable):
            self._table = routes
        else:
            self._table = RouteTable.build(routes, sink=self._diagnostics)
        self._match = None
        return self

    def add_routes(self, routes: RouteInput, root: str | None = None) -> Router:
        """Append routes, prefixing each path with *root*.

        Paths already in the table are reported and skipped.
        """
        self._table = self._table.extend(routes, root=root, sink=self._diagnostics)
        self._match = None
        return self

    # -- Request state --

    @property
    def method(self) -> str:
        """The method to route; a ``_method`` form field may override it."""
        if self._method is not None:
            return self._method
        if self._request is not None:
            return self._request.effective_method(self._config.allow_method_override)
        return "GET"

    def set_method(self, method: str) -> Router:
        self._method = method.upper()
        self._match = None
        return self

    @property
    def url(self) -> str:
        """The url to route, the request path by default."""
        if self._url is not None:
            return self._url
        if self._request is not None:
            return self._request.path
        return "/"

    def set_url(self, url: str) -> Router:
        self._url = url
        self._match = None
        return self

    @property
    def base(self) -> str:
        """The path prefix the application is served under."""
        return self._base

    def set_base(self, base: str) -> Router:
        self._base = base.rstrip("/")
        self._match = None
        return self

    def rebase(self, url: str) -> str:
        """Put *url* under the base path: ``/login`` -> ``/app/login``."""
        return f"{self._base}/{url.lstrip('/')}"

    def url_part(self, index: int) -> str | None:
        """Segment *index* of the url, starting at 1."""
        parts = split_url(self.url)
        if 1 <= index <= len(parts):
            return parts[index - 1]
        return None

    @property
    def is_used(self) -> bool:
        """Whether a route has been matched for the current state."""
        return self._match is not None

    # -- Matching --

    def _routed_path(self) -> str:
        """The url without query, fragment and base path."""
        path = self.url.split("?", 1)[0].split("#", 1)[0] or "/"
        if self._base and (path == self._base or path.startswith(self._base + "/")):
            path = path[len(self._base) :] or "/"
        return path

    def _binder(self) -> Binder:
        return Binder.for_request(self._request, self._diagnostics)

    def match(self) -> MatchResult:
        """Select and bind the route for the current method and url.

        Computed once, then returned as is until a setter changes the
        router's state.
        """
        if self._match is not None:
            return self._match

        path = self._routed_path()
        result = select(self.method, path, self._table)
        if result.matched and result.entry is not None:
            route = self._binder().bind_spec(result.entry.spec, split_url(path), result.entry.key)
            result = MatchResult(outcome=result.outcome, entry=result.entry, route=route)

        self._match = result
        return result

    def get_route(self) -> Route | None:
        """The bound route for this request, ``None`` if nothing matched."""
        return self.match().route

    def get(self, prop: str) -> Any:
        """Field *prop* of the matched route."""
        route = self.get_route()
        return route.get(prop) if route is not None else None

    # -- Execution --

    def execute(self) -> Response:
        """Route the request and return the response.

        A failed dispatch or a missing route runs the 404 fallback, a
        route that rejects the method the 404 fallback with status 405.
        ``HTTPError`` raised by a handler runs the fallback for its
        status, anything else the 500 fallback.
        """
        try:
            result = self.match()
            if result.outcome is Outcome.MATCHED and result.route is not None:
                outcome = self._dispatcher.dispatch(result.route, self)
                if outcome.ok:
                    self._apply(outcome.value)
                else:
                    self.not_found()
            elif result.outcome is Outcome.METHOD_REJECTED:
                self.not_found(None, 405)
            else:
                self.not_found()
        except HTTPError as exc:
            self._handle_http_error(exc)
        except Exception as exc:
            logger.exception("Unhandled exception routing %s %s", self.method, self.url)
            self.error(f"{type(exc).__name__}: {exc}" if self._config.debug else None)
        return self.response

    def _handle_http_error(self, exc: HTTPError) -> None:
        detail = exc.detail or None
        match exc.status:
            case 400:
                self.bad_request(exc.detail or "Bad Request", 400)
            case 401:
                self.require_login()
            case 403:
                self.forbidden(detail, 403)
            case 404 | 405 | 410:
                self.not_found(detail, exc.status)
            case status if status >= 500:
                self.error(detail, status)
            case status:
                self.bad_request(exc.detail or f"Error {status}", status)

        for name, value in exc.headers:
            self.response = self.response.replacing_header(name, value)

    def _apply(self, value: Any) -> None:
        """Apply a handler's return value to the response."""
        match value:
            case None | True:
                return
            case Response():
                self.response = value
            case Redirect():
                self.redirect(value.url, value.status)
            case str():
                self.response = self.response.with_body(value)
            case bytes():
                self.response = self.response.with_body(value).with_content_type(
                    "application/octet-stream"
                )
            case (data, int() as status) if isinstance(value, tuple) and type(status) is int:
                self._apply(data)
                self.response = self.response.with_status(status)
            case Mapping() | list() | tuple():
                self.output(value)
            case _:
                self.response = self.response.with_body(str(value))

    # -- Fallbacks --

    def _route_to(self, code: int, args: list[Any] | None) -> bool:
        """Dispatch the pseudo-route for *code*. Returns whether it handled the request.

        A pseudo-route that is already running (a fallback handler calling
        its own fallback) is not entered again.
        """
        if code in self._running:
            return False
        spec = self._table.pseudo_route(code)
        if spec is None:
            return False

        fields = spec.fields
        if args is not None:
            fields = {key: value for key, value in fields.items() if key != "args"}
        route = self._binder().bind_spec(RouteSpec(fields), split_url(self._routed_path()), code)
        if args is not None:
            route = route.with_fields(args=args)

        logger.debug("Routing to %d fallback for %s %s", code, self.method, self.url)
        self._running.add(code)
        try:
            outcome = self._dispatcher.dispatch(route, self)
        except HTTPError as exc:
            logger.debug("Fallback %d raised %s", code, exc)
            return False
        except Exception:
            logger.exception("Unhandled exception in the %d fallback", code)
            return False
        finally:
            self._running.discard(code)

        if not outcome.ok:
            return False
        self._apply(outcome.value)
        return True

    def _fallback(self, code: int, message: Any, status: int, extra: tuple[Any, ...]) -> None:
        self._reset()
        if self._route_to(code, [message, status, *extra]):
            if self.response.status == 200:
                self.response = self.response.with_status(status)
            return
        self.output_error(status, message)

    def _reset(self) -> None:
        """Drop the output and status a failing handler left behind."""
        self.response = self.response.with_body("").with_status(200)

    def bad_request(self, message: Any, status: int = 400, *extra: Any) -> None:
        """Respond with 400 Bad Request, or another 4xx *status*."""
        self._fallback(400, message, status, extra)

    def require_login(self) -> None:
        """Run the 401 pseudo-route, or respond with 403 Forbidden.

        No response ever carries a 401 status line.
        """
        self._reset()
        if not self._route_to(401, None):
            self.forbidden()

    def forbidden(self, message: Any = None, status: int = 403, *extra: Any) -> None:
        """Respond with 403 Forbidden."""
        self._fallback(403, message if message is not None else FORBIDDEN_MESSAGE, status, extra)

    def not_found(self, message: Any = None, status: int = 404, *extra: Any) -> None:
        """Respond with 404 Not Found, or e.g. 405 Method Not Allowed and 410 Gone."""
        if message is None:
            message = NOT_SUPPORTED_MESSAGE if status == 405 else NOT_FOUND_MESSAGE
        self._fallback(404, message, status, extra)

        if status == 405 and self._match is not None and self._match.allowed:
            allowed = ", ".join(sorted(self._match.allowed))
            self.response = self.response.replacing_header("Allow", allowed)

    def error(self, message: Any = None, status: int = 500, *extra: Any) -> None:
        """Respond with 500 Internal Server Error, or another 5xx *status*."""
        self._fallback(500, message if message is not None else ERROR_MESSAGE, status, extra)

    def redirect(self, url: str, status: int = 303) -> None:
        """Redirect to *url*. Absolute paths are put under the base path."""
        if url.startswith("/") and not url.startswith("//"):
            url = self.rebase(url)
        link = escape(url)
        self.response = (
            self.response.with_status(status)
            .replacing_header("Location", url)
            .with_content_type("text/html; charset=utf-8")
            .with_body(f'You are being redirected to <a href="{link}">{link}</a>')
        )

    # -- Output --

    def respond_with(self, status: int | None = None, fmt: str | None = None) -> None:
        """Set the status and/or the output format of the response."""
        if fmt is not None:
            self._content_type = fmt
        self.response = self._negotiator.respond_with(self.response, status, fmt)

    def output(self, data: Any, fmt: str | None = None) -> None:
        """Write *data* to the response in the negotiated format."""
        fmt = fmt or self._negotiator.output_format(self._request, self._content_type)
        self.response = self._negotiator.output(self._request, self.response, data, fmt)

    def output_error(self, status: int, message: Any, fmt: str | None = None) -> None:
        """Write the default error output for *status*."""
        fmt = fmt or self._negotiator.output_format(self._request, self._content_type)
        self.response = self._negotiator.output_error(
            self._request, self.response, status, message, fmt
        )
