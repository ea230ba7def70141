"""Base class for controllers.

A controller is built by its registry factory with the router handling
the request. Its ``*_action`` methods are the dispatch targets; the
helpers below forward to the router, which owns the response.

Usage::

    class UserController(Controller):
        def show_action(self, id):
            user = USERS.get(id)
            if user is None:
                return self.not_found("User not found")
            self.output(user)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from waymark.errors import BadRequest
from waymark.http.request import Request

if TYPE_CHECKING:
    from waymark.router import Router


class Controller:
    """Response and fallback helpers for route actions."""

    def __init__(self, router: Router) -> None:
        self.router = router

    @property
    def request(self) -> Request:
        request = self.router.request
        if request is None:
            request = Request.build(self.router.method, self.router.url)
        return request

    @property
    def status(self) -> int:
        return self.router.response.status

    # -- Input --

    def query_param(self, name: str, default: str | None = None) -> str | None:
        """Query parameter *name*, or *default*."""
        return self.request.query.get(name, default)

    def input(self) -> Any:
        """The request body, decoded by its Content-Type.

        JSON bodies are parsed, form bodies become a dict. Raises
        ``BadRequest`` for a malformed JSON body.
        """
        request = self.request
        mime = (request.content_type or "").split(";", 1)[0].strip().lower()
        if mime == "application/json":
            try:
                return request.json()
            except ValueError as exc:
                raise BadRequest(f"Invalid JSON: {exc}") from exc
        return dict(request.form)

    # -- Output --

    def respond_with(self, status: int | None = None, fmt: str | None = None) -> None:
        self.router.respond_with(status, fmt)

    def output(self, data: Any, fmt: str | None = None) -> None:
        self.router.output(data, fmt)

    def ok(self) -> None:
        self.router.respond_with(200)

    def created(self, location: str | None = None) -> None:
        """201 Created, with a Location header when given."""
        self.router.respond_with(201)
        if location is not None:
            self.router.response = self.router.response.replacing_header("Location", location)

    def no_content(self) -> None:
        self.router.respond_with(204)

    def back(self) -> None:
        """Redirect to the referring page on this host, or to the root."""
        self.redirect(self.request.local_referer or "/")

    def redirect(self, url: str, status: int = 303) -> None:
        self.router.redirect(url, status)

    # -- Fallbacks --

    def bad_request(self, message: Any, status: int = 400, *extra: Any) -> None:
        self.router.bad_request(message, status, *extra)

    def require_login(self) -> None:
        self.router.require_login()

    def forbidden(self, message: Any = None, status: int = 403, *extra: Any) -> None:
        self.router.forbidden(message, status, *extra)

    def not_found(self, message: Any = None, status: int = 404, *extra: Any) -> None:
        self.router.not_found(message, status, *extra)

    def conflict(self, message: Any, status: int = 409, *extra: Any) -> None:
        self.router.bad_request(message, status, *extra)

    def too_many_requests(self, message: Any, status: int = 429, *extra: Any) -> None:
        self.router.bad_request(message, status, *extra)

    def error(self, message: Any = None, status: int = 500, *extra: Any) -> None:
        self.router.error(message, status, *extra)

    # -- Predicates --

    def is_get_request(self) -> bool:
        return self.router.method == "GET"

    def is_post_request(self) -> bool:
        return self.router.method == "POST"

    def is_put_request(self) -> bool:
        return self.router.method == "PUT"

    def is_delete_request(self) -> bool:
        return self.router.method == "DELETE"

    def is_successful(self) -> bool:
        return 200 <= self.status < 300

    def is_redirection(self) -> bool:
        return 300 <= self.status < 400

    def is_client_error(self) -> bool:
        return 400 <= self.status < 500

    def is_server_error(self) -> bool:
        return self.status >= 500
