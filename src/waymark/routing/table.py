"""Ordered route table with reserved status-code pseudo-routes.

The table is built once from a mapping of pattern -> route spec and is
immutable afterwards. ``extend()`` returns a new table, so a router that
adds routes never mutates a table another router is reading.

Keys are route patterns optionally followed by method clauses::

    "/users/* +GET"          only GET
    "/users/* +GET +HEAD"    GET or HEAD
    "/users/* -DELETE"       anything but DELETE

Integer keys 400, 401, 403, 404 and 500 (or their digit strings) are
pseudo-routes: used by fallback routing, never matched against a path.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from waymark.diagnostics import DiagnosticKind, DiagnosticSink, report
from waymark.routing.pattern import CompiledPattern, compile_pattern
from waymark.routing.route import RouteSpec

PSEUDO_ROUTE_CODES: frozenset[int] = frozenset({400, 401, 403, 404, 500})

_METHOD_CLAUSE = re.compile(r"\s+([+-])(\w+)\b")

RouteInput = Mapping[Any, Any] | Iterable[tuple[Any, Any]]


@dataclass(frozen=True, slots=True)
class RouteKey:
    """A route table key split into its path and method clauses."""

    key: str
    path: str
    include: frozenset[str] = frozenset()
    exclude: frozenset[str] = frozenset()

    def accepts(self, method: str) -> bool:
        """Whether *method* passes the include/exclude clauses."""
        method = method.upper()
        if self.include and method not in self.include:
            return False
        return method not in self.exclude


def parse_key(key: str) -> RouteKey:
    """Split ``"/users/* +GET -HEAD"`` into path and method clauses."""
    parts = key.split(None, 1)
    if len(parts) < 2:
        return RouteKey(key=key, path=key.strip())

    path, rest = parts
    include: set[str] = set()
    exclude: set[str] = set()
    for sign, method in _METHOD_CLAUSE.findall(" " + rest):
        (include if sign == "+" else exclude).add(method.upper())
    return RouteKey(
        key=key,
        path=path,
        include=frozenset(include),
        exclude=frozenset(exclude),
    )


@dataclass(frozen=True, slots=True)
class RouteEntry:
    """One compiled entry of the route table."""

    route_key: RouteKey
    pattern: CompiledPattern
    spec: RouteSpec

    @property
    def key(self) -> str:
        return self.route_key.key

    @property
    def path(self) -> str:
        return self.route_key.path

    def accepts(self, method: str) -> bool:
        return self.route_key.accepts(method)


def _pseudo_code(key: Any) -> int | None:
    """Return the status code if *key* names a pseudo-route."""
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    if isinstance(key, str) and key.strip().isdigit():
        return int(key.strip())
    return None


def _items(routes: RouteInput | None) -> Iterator[tuple[Any, Any]]:
    if routes is None:
        return iter(())
    if isinstance(routes, Mapping):
        return iter(routes.items())
    if hasattr(routes, "__dict__") and not isinstance(routes, Iterable):
        return iter(vars(routes).items())
    return iter(routes)


@dataclass(frozen=True, slots=True)
class RouteTable:
    """An ordered, immutable route table.

    Usage::

        table = RouteTable.build({
            "/": {"controller": "home"},
            "/users/* +GET": {"controller": "user", "action": "show", "id": "$2"},
            404: {"controller": "error", "action": "not-found"},
        })
        for entry in table:
            ...
    """

    entries: tuple[RouteEntry, ...] = ()
    pseudo_routes: Mapping[int, RouteSpec] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pseudo_routes", MappingProxyType(dict(self.pseudo_routes)))

    @classmethod
    def build(
        cls,
        routes: RouteInput | None = None,
        *,
        root: str | None = None,
        sink: DiagnosticSink | None = None,
    ) -> RouteTable:
        """Build a table from a mapping (or pairs) of pattern -> spec."""
        return cls().extend(routes, root=root, sink=sink)

    def extend(
        self,
        routes: RouteInput | None,
        *,
        root: str | None = None,
        sink: DiagnosticSink | None = None,
    ) -> RouteTable:
        """Return a new table with *routes* appended.

        *root* is prepended to every added path. A key that is already in
        the table is reported as a duplicate and skipped; the first
        definition stays. A value that isn't a usable spec is reported and
        skipped as well.
        """
        entries = list(self.entries)
        pseudo = dict(self.pseudo_routes)
        seen = {entry.key for entry in entries}

        for key, value in _items(routes):
            code = _pseudo_code(key)
            if code is not None:
                if code not in PSEUDO_ROUTE_CODES:
                    report(
                        sink,
                        DiagnosticKind.INVALID_ROUTE,
                        f"Route {code} is not a reserved status code route.",
                        route=code,
                    )
                    continue
                if code in pseudo:
                    report(
                        sink,
                        DiagnosticKind.DUPLICATE_ROUTE,
                        f"Route {code} is already defined.",
                        route=code,
                    )
                    continue
                spec = self._coerce(value, code, sink)
                if spec is not None:
                    pseudo[code] = spec
                continue

            path_key = f"{root}{key}" if root else str(key)
            if path_key in seen:
                report(
                    sink,
                    DiagnosticKind.DUPLICATE_ROUTE,
                    f"Route {path_key} is already defined.",
                    route=path_key,
                )
                continue

            spec = self._coerce(value, path_key, sink)
            if spec is None:
                continue

            route_key = parse_key(path_key)
            entries.append(
                RouteEntry(
                    route_key=route_key,
                    pattern=compile_pattern(route_key.path),
                    spec=spec,
                )
            )
            seen.add(path_key)

        return RouteTable(entries=tuple(entries), pseudo_routes=pseudo)

    @staticmethod
    def _coerce(value: Any, key: str | int, sink: DiagnosticSink | None) -> RouteSpec | None:
        try:
            return RouteSpec.coerce(value)
        except TypeError as exc:
            report(sink, DiagnosticKind.INVALID_ROUTE, f"Route {key}: {exc}.", route=key)
            return None

    def pseudo_route(self, code: int) -> RouteSpec | None:
        """Return the pseudo-route for status *code*, if one is defined."""
        return self.pseudo_routes.get(code)

    def get(self, key: str) -> RouteSpec | None:
        """Return the spec registered under the exact key *key*."""
        for entry in self.entries:
            if entry.key == key:
                return entry.spec
        return None

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(entry.key for entry in self.entries)

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return any(entry.key == key for entry in self.entries)


def split_url(url: str) -> list[str]:
    """Split a url path into its segments.

    The query string and fragment are dropped, as are empty leading and
    trailing segments::

        split_url("/users/42/?tab=posts")  # ["users", "42"]
        split_url("/")                     # []
    """
    path = url.split("?", 1)[0].split("#", 1)[0].strip("/")
    return path.split("/") if path else []
