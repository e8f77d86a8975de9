"""Case-insensitive, multi-valued HTTP headers.

Implements ``Mapping[str, str]`` over an ordered list of ``(name, value)``
pairs. Names are stored lower-cased; ``__getitem__`` returns the first
value, ``get_list`` returns every value for a name (e.g. multiple
``Vary`` or ``Set-Cookie`` lines).

Unlike a frozen header tuple, a ``HeaderMap`` can be edited in place by
the layer that owns it (``insert`` / ``append`` / ``remove``). Requests
and responses hand out copies from their ``with_*`` methods, so a map
is never shared between two messages.

A header name can be marked sensitive (credentials, cookies). Its values
are still sent on the wire, but ``repr`` and ``redacted_items`` show
``Sensitive`` in their place so they never reach a log line.
"""

from collections.abc import Iterable, Iterator, Mapping

REDACTED = "Sensitive"


class HeaderMap(Mapping[str, str]):
    """Ordered, case-insensitive, multi-valued header store."""

    __slots__ = ("_items", "_sensitive")

    def __init__(
        self,
        items: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
    ) -> None:
        self._items: list[tuple[str, str]] = []
        self._sensitive: set[str] = set()
        if items is None:
            return
        if isinstance(items, HeaderMap):
            self._sensitive = set(items._sensitive)
        pairs = items.items() if isinstance(items, Mapping) else items
        for name, value in pairs:
            self._items.append((name.lower(), value))

    @classmethod
    def from_raw(cls, raw: Iterable[tuple[bytes, bytes]]) -> "HeaderMap":
        """Build from ASGI byte pairs."""
        return cls((name.decode("latin-1"), value.decode("latin-1")) for name, value in raw)

    # -- Mapping --

    def __getitem__(self, key: str) -> str:
        key_lower = key.lower()
        for name, value in self._items:
            if name == key_lower:
                return value
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key_lower = key.lower()
        return any(name == key_lower for name, _ in self._items)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._items:
            if name not in seen:
                seen.add(name)
                yield name

    def __len__(self) -> int:
        return len(set(self))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HeaderMap):
            return self._items == other._items
        return super().__eq__(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {v!r}" for k, v in self.redacted_items())
        return f"HeaderMap([{items}])"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*, in insertion order."""
        key_lower = key.lower()
        return [value for name, value in self._items if name == key_lower]

    def items(self) -> list[tuple[str, str]]:  # type: ignore[override]
        """Every ``(name, value)`` pair, including repeated names."""
        return list(self._items)

    def redacted_items(self) -> list[tuple[str, str]]:
        """Like ``items`` but with sensitive values replaced by ``Sensitive``."""
        return [
            (name, REDACTED if name in self._sensitive else value) for name, value in self._items
        ]

    # -- Sensitivity --

    def mark_sensitive(self, key: str) -> None:
        """Keep every value of *key*, present or added later, out of ``repr``."""
        self._sensitive.add(key.lower())

    def is_sensitive(self, key: str) -> bool:
        return key.lower() in self._sensitive

    # -- Mutation --

    def insert(self, key: str, value: str) -> None:
        """Replace every value of *key* with a single *value*.

        The new entry takes the position of the first existing one so
        header order stays stable.
        """
        key_lower = key.lower()
        replaced: list[tuple[str, str]] = []
        inserted = False
        for name, existing in self._items:
            if name != key_lower:
                replaced.append((name, existing))
            elif not inserted:
                replaced.append((name, value))
                inserted = True
        if not inserted:
            replaced.append((key_lower, value))
        self._items = replaced

    def append(self, key: str, value: str) -> None:
        """Add *value* without touching existing values of *key*."""
        self._items.append((key.lower(), value))

    def remove(self, key: str) -> list[str]:
        """Drop every value of *key* and return what was removed."""
        key_lower = key.lower()
        removed = [value for name, value in self._items if name == key_lower]
        if removed:
            self._items = [(name, value) for name, value in self._items if name != key_lower]
        return removed

    def extend(self, other: "HeaderMap | Iterable[tuple[str, str]]") -> None:
        """Append every pair of *other*, keeping its sensitive marks."""
        if isinstance(other, HeaderMap):
            self._sensitive |= other._sensitive
            pairs = other.items()
        else:
            pairs = other
        for name, value in pairs:
            self.append(name, value)

    def copy(self) -> "HeaderMap":
        clone = HeaderMap()
        clone._items = list(self._items)
        clone._sensitive = set(self._sensitive)
        return clone

    @property
    def raw(self) -> list[tuple[bytes, bytes]]:
        """Header byte pairs for ASGI ``http.response.start``."""
        return [(name.encode("latin-1"), value.encode("latin-1")) for name, value in self._items]
