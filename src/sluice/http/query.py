"""Immutable query string parameters.

Implements ``Mapping[str, str]``. Order and blank values are preserved
so a query can be re-encoded with an extra parameter appended, which is
how virtual module URLs are synthesized.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl, urlencode


class QueryParams(Mapping[str, str]):
    """Immutable query string parameters.

    Attributes:
        _pairs: Parsed query string as ordered ``(name, value)`` pairs.
        _raw: Raw query string.

    ``__getitem__`` returns the first value for a key.
    ``get_list`` returns all values for a key.
    """

    _pairs: tuple[tuple[str, str], ...]
    _raw: str

    __slots__ = ("_pairs", "_raw")

    def __init__(self, query_string: str | bytes = "") -> None:
        if isinstance(query_string, bytes):
            query_string = query_string.decode("latin-1")
        object.__setattr__(self, "_raw", query_string)
        pairs = parse_qsl(query_string, keep_blank_values=True)
        object.__setattr__(self, "_pairs", tuple(pairs))

    def __getitem__(self, key: str) -> str:
        for name, value in self._pairs:
            if name == key:
                return value
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        return any(name == key for name, _ in self._pairs)

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name for name, _ in self._pairs))

    def __len__(self) -> int:
        return len(dict.fromkeys(name for name, _ in self._pairs))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"QueryParams({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        return [value for name, value in self._pairs if name == key]

    def set(self, key: str, value: str) -> QueryParams:
        """Return a copy where *key* has exactly one value.

        The first occurrence keeps its position; later ones are dropped.
        A missing key is appended.
        """
        pairs: list[tuple[str, str]] = []
        replaced = False
        for name, old in self._pairs:
            if name != key:
                pairs.append((name, old))
            elif not replaced:
                pairs.append((name, value))
                replaced = True
        if not replaced:
            pairs.append((key, value))
        return QueryParams(urlencode(pairs))

    def append(self, key: str, value: str) -> QueryParams:
        """Return a copy with ``key=value`` added at the end."""
        return QueryParams(urlencode([*self._pairs, (key, value)]))

    def without(self, key: str) -> QueryParams:
        """Return a copy with every *key* parameter removed."""
        return QueryParams(urlencode([(name, value) for name, value in self._pairs if name != key]))

    def encode(self) -> str:
        """Re-encode the parameters as a query string (no leading ``?``)."""
        return urlencode(self._pairs)

    @property
    def raw(self) -> str:
        """The query string exactly as received."""
        return self._raw
