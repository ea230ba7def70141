"""RouteSpec, Route and MatchResult frozen dataclasses."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from waymark.routing.table import RouteEntry


class TargetKind(Enum):
    """The three supported dispatch targets, in priority order."""

    CONTROLLER = "controller"
    FUNCTION = "fn"
    FILE = "file"


class Outcome(Enum):
    """How route selection ended."""

    MATCHED = "matched"
    NO_PATH_MATCH = "no_path_match"
    METHOD_REJECTED = "method_rejected"


class _Fields:
    """Read access shared by unbound specs and bound routes."""

    __slots__ = ()

    fields: Mapping[str, Any]

    @property
    def controller(self) -> Any:
        return self.fields.get("controller")

    @property
    def action(self) -> Any:
        return self.fields.get("action")

    @property
    def fn(self) -> Any:
        return self.fields.get("fn")

    @property
    def file(self) -> Any:
        return self.fields.get("file")

    @property
    def args(self) -> Any:
        return self.fields.get("args")

    @property
    def kind(self) -> TargetKind | None:
        """The dispatch target this spec points at, if any."""
        for kind in TargetKind:
            if self.fields.get(kind.value) is not None:
                return kind
        return None

    def get(self, name: str, default: Any = None) -> Any:
        """Return field *name*, or *default* if it isn't set."""
        return self.fields.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    def __contains__(self, name: object) -> bool:
        return name in self.fields


def _freeze(fields: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(fields))


@dataclass(frozen=True, slots=True)
class RouteSpec(_Fields):
    """An unbound route specification, as registered in the route table.

    One of::

        {"controller": "user", "action": "show", "id": "$2"}
        {"fn": callable_or_registered_name, "args": [...]}
        {"file": "pages/about.html"}

    Field values are resolved by the binder before dispatch. A spec only
    changes through ``with_fields()``, which returns a new spec.
    """

    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", _freeze(self.fields))

    @classmethod
    def coerce(cls, value: Any) -> RouteSpec:
        """Build a spec from a mapping, an object's attributes or a callable.

        Raises ``TypeError`` for anything else.
        """
        if isinstance(value, RouteSpec):
            return value
        if isinstance(value, Mapping):
            return cls(dict(value))
        if callable(value):
            return cls({"fn": value})
        if hasattr(value, "__dict__"):
            return cls(dict(vars(value)))
        msg = f"Cannot use a {type(value).__name__} as a route specification"
        raise TypeError(msg)

    def with_fields(self, **overrides: Any) -> RouteSpec:
        """Return a new spec with *overrides* replacing existing fields."""
        return replace(self, fields={**self.fields, **overrides})


@dataclass(frozen=True, slots=True)
class Route(_Fields):
    """A route specification with every field bound to a value.

    ``pattern`` is the route table key that matched, or the status code
    for a pseudo-route.
    """

    pattern: str | int
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", _freeze(self.fields))

    def with_fields(self, **overrides: Any) -> Route:
        """Return a new route with *overrides* replacing existing fields."""
        return replace(self, fields={**self.fields, **overrides})


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Outcome of selecting a route for one method and path.

    ``entry`` is the matched table entry, ``route`` its bound form (filled
    in by the router). ``allowed`` lists methods the path would accept,
    when every rejecting entry declared an include list.
    """

    outcome: Outcome
    entry: RouteEntry | None = None
    route: Route | None = None
    allowed: frozenset[str] = frozenset()

    @property
    def matched(self) -> bool:
        return self.outcome is Outcome.MATCHED

    @property
    def pattern(self) -> str | None:
        return self.entry.key if self.entry is not None else None

