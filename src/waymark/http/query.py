"""Immutable url-encoded parameters.

Used for the query string and for ``application/x-www-form-urlencoded``
request bodies. Implements ``Mapping[str, str]``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs, urlencode


class QueryParams(Mapping[str, str]):
    """Immutable url-encoded parameters.

    ``__getitem__`` returns the first value for a key.
    ``get_list`` returns all values for a key.
    """

    _data: dict[str, list[str]]
    _raw: str

    __slots__ = ("_data", "_raw")

    def __init__(self, encoded: str | bytes = "") -> None:
        if isinstance(encoded, bytes):
            encoded = encoded.decode("utf-8", errors="replace")
        object.__setattr__(self, "_raw", encoded)
        object.__setattr__(self, "_data", parse_qs(encoded, keep_blank_values=True))

    @classmethod
    def from_mapping(cls, values: Mapping[str, str] | None) -> QueryParams:
        """Build parameters from a plain mapping (tests, internal requests)."""
        return cls(urlencode(dict(values or {})))

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"QueryParams({{{items}}})"

    @property
    def encoded(self) -> str:
        """The url-encoded source string."""
        return self._raw

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        return list(self._data.get(key, []))
