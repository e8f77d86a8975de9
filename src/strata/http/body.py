"""Pull-based byte-stream bodies with size hints.

A ``Body`` is an async iterator of ``bytes`` chunks. Nothing is read until
a consumer asks for the next chunk, so chaining transforms (compressors,
decoders, size limits) as async generators gives backpressure for free:
a slow consumer simply stops pulling.
"""

from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SizeHint:
    """Bounds on the number of bytes a body will yield.

    ``upper`` is ``None`` when the body is unbounded (streamed without a
    known length).
    """

    lower: int = 0
    upper: int | None = None

    @classmethod
    def unbounded(cls) -> "SizeHint":
        return cls(0, None)

    @classmethod
    def exact(cls, size: int) -> "SizeHint":
        return cls(size, size)

    @classmethod
    def range(cls, lower: int, upper: int) -> "SizeHint":
        if upper < lower:
            msg = f"SizeHint upper bound {upper} is below lower bound {lower}"
            raise ValueError(msg)
        return cls(lower, upper)

    @property
    def exact_size(self) -> int | None:
        """The byte length when both bounds agree, else ``None``."""
        if self.upper is not None and self.lower == self.upper:
            return self.lower
        return None


async def _single(chunk: bytes) -> AsyncIterator[bytes]:
    if chunk:
        yield chunk


async def _iterate(source: AsyncIterable[bytes | str]) -> AsyncIterator[bytes]:
    async for chunk in source:
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        if chunk:
            yield bytes(chunk)


class Body:
    """A single-use stream of byte chunks.

    Usage::

        body = Body.from_value("hello")
        async for chunk in body:
            ...

        data = await Body.from_value(b"raw").read()
    """

    __slots__ = ("_consumed", "_source", "content_type", "size_hint")

    def __init__(
        self,
        source: AsyncIterator[bytes],
        *,
        size_hint: SizeHint | None = None,
        content_type: str | None = None,
    ) -> None:
        self._source = source
        self._consumed = False
        self.size_hint = size_hint or SizeHint.unbounded()
        self.content_type = content_type

    # -- Constructors --

    @classmethod
    def empty(cls) -> "Body":
        return cls(_single(b""), size_hint=SizeHint.exact(0))

    @classmethod
    def stream(
        cls,
        chunks: AsyncIterable[bytes | str],
        *,
        size_hint: SizeHint | None = None,
        content_type: str | None = None,
    ) -> "Body":
        """Wrap an async iterable; length is unknown unless hinted."""
        return cls(_iterate(chunks), size_hint=size_hint, content_type=content_type)

    @classmethod
    def from_value(cls, value: "Body | str | bytes | bytearray | AsyncIterable[bytes] | None") -> "Body":
        """Coerce a handler-friendly value into a body.

        ``str`` bodies get a ``text/plain`` content-type hint and
        ``bytes`` bodies an ``application/octet-stream`` one.
        """
        match value:
            case Body():
                return value
            case None:
                return cls.empty()
            case str():
                data = value.encode("utf-8")
                return cls(
                    _single(data),
                    size_hint=SizeHint.exact(len(data)),
                    content_type="text/plain; charset=utf-8",
                )
            case bytes() | bytearray():
                data = bytes(value)
                return cls(
                    _single(data),
                    size_hint=SizeHint.exact(len(data)),
                    content_type="application/octet-stream",
                )
            case _ if isinstance(value, AsyncIterable):
                return cls.stream(value)
        msg = f"Cannot build a Body from {type(value).__name__}"
        raise TypeError(msg)

    # -- Consumption --

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._consumed:
            msg = "Body has already been consumed"
            raise RuntimeError(msg)
        self._consumed = True
        return self._source

    async def read(self) -> bytes:
        """Collect every chunk into one ``bytes`` object."""
        return b"".join([chunk async for chunk in self])

    @property
    def is_empty(self) -> bool:
        """True when the size hint guarantees zero bytes."""
        return self.size_hint.exact_size == 0

    def map_chunks(
        self,
        transform: Callable[[AsyncIterator[bytes]], AsyncIterator[bytes]],
        *,
        size_hint: SizeHint | None = None,
    ) -> "Body":
        """Return a new body whose chunks pass through *transform*.

        The transform is an async generator over this body's chunks; the
        resulting size is unknown unless *size_hint* says otherwise.
        """
        return Body(
            transform(aiter(self)),
            size_hint=size_hint,
            content_type=self.content_type,
        )

    def __repr__(self) -> str:
        return f"Body(size_hint={self.size_hint!r}, content_type={self.content_type!r})"
