"""Waymark exception hierarchy.

Shared across the route table, router, dispatcher and handlers so every
module raises and catches the same types.

Recoverable routing anomalies (duplicate routes, failed bindings, missing
targets) are not exceptions: they are reported through
``waymark.diagnostics`` and the router carries on.
"""

from dataclasses import dataclass


class WaymarkError(Exception):
    """Base for all waymark-specific errors."""


class ConfigurationError(WaymarkError):
    """Raised when a route table or handler registration is invalid.

    Raised while the table or registry is being built, never while a
    request is being routed.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(WaymarkError):
    """An error that maps directly to an HTTP status code.

    Handlers raise these to leave the normal dispatch path. The router
    catches them and runs the fallback for the status code, which in turn
    uses the matching pseudo-route when one is registered.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818
    """400: the request can't be processed as sent."""

    def __init__(self, detail: str = "Bad Request", status: int = 400) -> None:
        super().__init__(status=status, detail=detail)


class LoginRequired(HTTPError):  # noqa: N818
    """401: routed to the 401 pseudo-route, degrading to 403.

    No response ever carries a 401 status line; see ``Router.require_login``.
    """

    def __init__(self, detail: str = "") -> None:
        super().__init__(status=401, detail=detail)


class Forbidden(HTTPError):  # noqa: N818
    """403: the client is not allowed to see this resource."""

    def __init__(self, detail: str = "", status: int = 403) -> None:
        super().__init__(status=status, detail=detail)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched, or the handler couldn't find the resource."""

    def __init__(self, detail: str = "", status: int = 404) -> None:
        super().__init__(status=status, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: a route exists for the path but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods when known.
    """

    def __init__(self, allowed: frozenset[str] = frozenset(), detail: str = "") -> None:
        headers: tuple[tuple[str, str], ...] = ()
        if allowed:
            headers = (("Allow", ", ".join(sorted(allowed))),)
        super().__init__(status=405, detail=detail, headers=headers)


class ServerError(HTTPError):  # noqa: N818
    """5xx: something went wrong while handling the request."""

    def __init__(self, detail: str = "", status: int = 500) -> None:
        super().__init__(status=status, detail=detail)
