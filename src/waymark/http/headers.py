"""Immutable, case-insensitive HTTP request headers.

Implements ``Mapping[str, str]``. Header names and values are decoded
once, on construction, from either raw ASGI byte pairs or plain strings.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    ``__getitem__`` returns the first matching value.
    ``get_list`` returns all values for a header.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[tuple[str, str]] = ()) -> None:
        object.__setattr__(self, "_items", tuple((name.lower(), value) for name, value in items))

    @classmethod
    def from_asgi(cls, raw: Iterable[tuple[bytes, bytes]]) -> Headers:
        """Decode ASGI ``(name, value)`` byte pairs."""
        return cls((name.decode("latin-1"), value.decode("latin-1")) for name, value in raw)

    @classmethod
    def from_mapping(cls, headers: Mapping[str, str] | None) -> Headers:
        return cls((headers or {}).items())

    def __getitem__(self, key: str) -> str:
        key = key.lower()
        for name, value in self._items:
            if name == key:
                return value
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key = key.lower()
        return any(name == key for name, _ in self._items)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._items:
            if name not in seen:
                seen.add(name)
                yield name

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        key = key.lower()
        return [value for name, value in self._items if name == key]

    def cgi_variables(self) -> dict[str, str]:
        """Headers as CGI variables: ``Accept-Language`` -> ``HTTP_ACCEPT_LANGUAGE``.

        ``Content-Type`` and ``Content-Length`` keep their CGI names without
        the ``HTTP_`` prefix. Repeated headers are joined with ``", "``.
        """
        variables: dict[str, str] = {}
        for name in self:
            var = name.upper().replace("-", "_")
            if var not in ("CONTENT_TYPE", "CONTENT_LENGTH"):
                var = f"HTTP_{var}"
            variables[var] = ", ".join(self.get_list(name))
        return variables
