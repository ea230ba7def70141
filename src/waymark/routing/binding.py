"""Fill route specification fields from the url and the request.

Every string field is a ``|``-separated chain of options, tried left to
right until one produces a non-empty value::

    $2              second url segment ($0 is the last, $-1 the one before)
    $3...  / $3+    segments 3 to the end, spliced into a positional list
    $_GET[page]     query parameter (also $_POST, $_COOKIE, $_ENV)
    $HTTP_HOST      CGI-style server variable of the request
    ~$1~-~$2~       concatenation of the bound pieces
    'a|b'           quoted literal
    index           anything else is used as-is

If every option fails the field is ``None``. Mappings are bound per key,
lists and tuples positionally, so a splice can widen a list and shift the
values that follow it.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from waymark.diagnostics import DiagnosticKind, DiagnosticSink, report
from waymark.routing.route import Route, RouteSpec

if TYPE_CHECKING:
    from waymark.http.request import Request

_SUPERGLOBAL = re.compile(r"^\$_(GET|POST|COOKIE|ENV)\[([^\[\]]*)\]$", re.IGNORECASE)
_SERVER_VAR = re.compile(r"^\$([A-Z_][A-Z0-9_]*)$")
_SEGMENT = re.compile(r"^\$(-?\d+)(\.\.\.|\+)?$")

_EMPTY: Mapping[str, str] = {}


def split_options(value: str) -> list[str]:
    """Split an option chain on ``|``, leaving quoted pipes alone."""
    options: list[str] = []
    current: list[str] = []
    quote: str | None = None

    for char in value:
        if quote is not None:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == "|":
            options.append("".join(current).strip())
            current.clear()
            continue
        current.append(char)

    options.append("".join(current).strip())
    return options


def segment(parts: Sequence[str], index: int) -> str | None:
    """Return url segment *index* (1-based; zero and below count from the end)."""
    offset = index - 1
    if offset >= len(parts) or -offset > len(parts):
        return None
    return parts[offset]


def segments_from(parts: Sequence[str], index: int) -> list[str]:
    """Return the url segments from *index* to the end."""
    offset = index - 1
    if offset < 0 and -offset > len(parts):
        return list(parts)
    return list(parts[offset:])


def _is_quoted(option: str) -> bool:
    return len(option) >= 2 and option[0] == option[-1] and option[0] in ("'", '"')


def _is_group(option: str) -> bool:
    return len(option) >= 2 and option[0] == "~" and option[-1] == "~"


class Binder:
    """Resolve binding option chains against url segments and request data.

    Usage::

        binder = Binder.for_request(request)
        route = binder.bind_spec(spec, ["users", "42"], "/users/*")
        route.get("id")  # "42" for {"id": "$2"}
    """

    __slots__ = ("_lookups", "_server", "_sink")

    def __init__(
        self,
        lookups: Mapping[str, Mapping[str, str]] | None = None,
        server: Mapping[str, str] | None = None,
        sink: DiagnosticSink | None = None,
    ) -> None:
        self._lookups = {name.upper(): values for name, values in (lookups or {}).items()}
        self._lookups.setdefault("ENV", os.environ)
        self._server = server if server is not None else _EMPTY
        self._sink = sink

    @classmethod
    def for_request(cls, request: Request | None, sink: DiagnosticSink | None = None) -> Binder:
        """Create a binder reading query, form, cookie and server data of *request*."""
        if request is None:
            return cls(sink=sink)
        return cls(
            lookups={
                "GET": request.query,
                "POST": request.form,
                "COOKIE": request.cookies,
                "ENV": request.env,
            },
            server=request.server,
            sink=sink,
        )

    def bind_spec(self, spec: RouteSpec, parts: Sequence[str], pattern: str | int) -> Route:
        """Bind every field of *spec* and return the resulting route."""
        return Route(pattern=pattern, fields=self._bind_mapping(spec.fields, parts, pattern))

    def bind(self, value: Any, parts: Sequence[str], route: str | int | None = None) -> Any:
        """Bind a mapping, list, tuple or single option chain."""
        if isinstance(value, Mapping):
            return self._bind_mapping(value, parts, route)
        if isinstance(value, list | tuple):
            return self._bind_sequence(value, parts, route)
        return self._resolve(value, parts, positional=False, route=route)[0]

    def _bind_mapping(
        self,
        values: Mapping[str, Any],
        parts: Sequence[str],
        route: str | int | None,
    ) -> dict[str, Any]:
        bound: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            resolved = self._resolve(value, parts, positional=False, route=route)
            bound[key] = resolved[0] if resolved else None
        return bound

    def _bind_sequence(
        self,
        values: Sequence[Any],
        parts: Sequence[str],
        route: str | int | None,
    ) -> list[Any] | tuple[Any, ...]:
        bound: list[Any] = []
        for value in values:
            if value is None:
                continue
            bound.extend(self._resolve(value, parts, positional=True, route=route))
        return tuple(bound) if isinstance(values, tuple) else bound

    def _resolve(
        self,
        value: Any,
        parts: Sequence[str],
        *,
        positional: bool,
        route: str | int | None,
    ) -> list[Any]:
        """Resolve one field. Returns a list so splices can expand in place."""
        if isinstance(value, Mapping):
            return [self._bind_mapping(value, parts, route)]
        if isinstance(value, list | tuple):
            return [self._bind_sequence(value, parts, route)]
        if not isinstance(value, str):
            return [value]

        for option in split_options(value):
            if not option:
                continue

            if _is_quoted(option):
                return [option[1:-1]]

            if _is_group(option):
                pieces = [piece.strip() for piece in option[1:-1].split("~")]
                bound = self._bind_sequence(pieces, parts, route)
                joined = "".join(str(piece) for piece in bound if piece not in (None, ""))
                if joined:
                    return [joined]
                continue

            if not option.startswith("$"):
                return [option]

            if match := _SUPERGLOBAL.match(option):
                source = self._lookups.get(match.group(1).upper(), _EMPTY)
                found = source.get(match.group(2))
                if found not in (None, ""):
                    return [found]
                continue

            if match := _SERVER_VAR.match(option):
                found = self._server.get(match.group(1))
                if found not in (None, ""):
                    return [found]
                continue

            if match := _SEGMENT.match(option):
                index = int(match.group(1))
                if match.group(2):
                    if not positional:
                        report(
                            self._sink,
                            DiagnosticKind.BINDING,
                            f"Binding multiple parts using '{option}' is only allowed"
                            " in positional lists.",
                            route=route,
                        )
                        return [None]
                    return segments_from(parts, index)

                found = segment(parts, index)
                if found:
                    return [found]
                continue

            return [option]

        return [None]
