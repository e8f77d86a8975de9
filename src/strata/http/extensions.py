"""Per-request typed metadata store.

Layers pass data to each other (client IP, request id, path captures,
the active error handler) through ``Extensions`` without agreeing on a
shared schema. Entries are keyed by ``ExtensionKey`` objects compared by
identity, so two keys declared with the same name never collide::

    REQUEST_ID: ExtensionKey[str] = ExtensionKey("RequestId")

    request.extensions.insert(REQUEST_ID, "abc")
    request.extensions.get(REQUEST_ID)  # "abc"
"""

from typing import Any, overload


class ExtensionKey[T]:
    """Opaque, identity-compared key for one kind of extension value."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"ExtensionKey({self.name!r})"

    # Identity semantics: object.__eq__ and object.__hash__ are kept.


class Extensions:
    """Mutable mapping from ``ExtensionKey`` to value.

    Created per request and discarded with it; never shared between
    requests.
    """

    __slots__ = ("_values",)

    def __init__(self) -> None:
        self._values: dict[ExtensionKey[Any], Any] = {}

    def insert[T](self, key: ExtensionKey[T], value: T) -> T | None:
        """Store *value* under *key*, returning the previous value if any."""
        previous = self._values.get(key)
        self._values[key] = value
        return previous

    @overload
    def get[T](self, key: ExtensionKey[T]) -> T | None: ...

    @overload
    def get[T](self, key: ExtensionKey[T], default: T) -> T: ...

    def get(self, key: ExtensionKey[Any], default: Any = None) -> Any:
        return self._values.get(key, default)

    def remove[T](self, key: ExtensionKey[T]) -> T | None:
        """Drop *key* and return its value (``None`` if it was absent)."""
        return self._values.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    @property
    def is_empty(self) -> bool:
        return not self._values

    def clear(self) -> None:
        self._values.clear()

    def extend(self, other: "Extensions") -> None:
        """Copy every entry of *other* in, overwriting on conflict."""
        self._values.update(other._values)

    def __repr__(self) -> str:
        names = ", ".join(key.name for key in self._values)
        return f"Extensions([{names}])"
