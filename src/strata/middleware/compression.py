"""Response compression negotiated from ``Accept-Encoding``.

Usage::

    router.layer(CompressionLayer())

    # Only gzip, only for bodies of 1 KiB or more
    CompressionLayer().no_br().no_deflate().no_zstd().compress_when(SizeAbove(1024))

A response is left alone when the client accepts only ``identity``, when
it already carries ``content-encoding`` or ``content-range``, or when the
predicate rejects it. The default predicate skips small bodies, gRPC,
images other than SVG, and server-sent event streams.
"""

from collections.abc import Callable
from dataclasses import dataclass, field, replace

from strata.http.encoding import Encoding, SupportedEncodings
from strata.http.request import Request
from strata.http.response import Response
from strata.middleware.codecs import CompressionLevel, Level, compress_stream, compressor_for
from strata.service import Service

type Predicate = Callable[[Response], bool]

DEFAULT_MIN_SIZE = 32


class _Combinable:
    __slots__ = ()

    def __and__(self, other: Predicate) -> "And":
        return And(self, other)  # type: ignore[arg-type]


class And(_Combinable):
    """Both predicates must accept the response."""

    __slots__ = ("first", "second")

    def __init__(self, first: Predicate, second: Predicate) -> None:
        self.first = first
        self.second = second

    def __call__(self, response: Response) -> bool:
        return self.first(response) and self.second(response)


class SizeAbove(_Combinable):
    """Accept bodies of at least *min_size* bytes.

    The size comes from the body's size hint, then ``content-length``;
    bodies of unknown size are always accepted.
    """

    __slots__ = ("min_size",)

    def __init__(self, min_size: int) -> None:
        self.min_size = min_size

    def __call__(self, response: Response) -> bool:
        size = response.body.size_hint.upper
        if size is None:
            raw = response.headers.get("content-length")
            if raw is None or not raw.isdigit():
                return True
            size = int(raw)
        return size >= self.min_size


class NotForContentType(_Combinable):
    """Reject responses whose ``content-type`` starts with *prefix*.

    A content type equal to *exception* is accepted regardless.
    """

    __slots__ = ("exception", "prefix")

    def __init__(self, prefix: str, exception: str | None = None) -> None:
        self.prefix = prefix
        self.exception = exception

    def __call__(self, response: Response) -> bool:
        content_type = response.headers.get("content-type", "")
        if self.exception is not None and content_type == self.exception:
            return True
        return not content_type.startswith(self.prefix)


DEFAULT_PREDICATE: Predicate = (
    SizeAbove(DEFAULT_MIN_SIZE)
    & NotForContentType("application/grpc")
    & NotForContentType("image/", exception="image/svg+xml")
    & NotForContentType("text/event-stream")
)


def _has_token(values: list[str], token: str) -> bool:
    return any(
        part.strip().lower() == token for value in values for part in value.split(",")
    )


class Compression:
    """Service compressing ``inner``'s responses."""

    __slots__ = ("accept", "inner", "level", "predicate")

    def __init__(
        self,
        inner: Service,
        accept: SupportedEncodings,
        level: Level,
        predicate: Predicate,
    ) -> None:
        self.inner = inner
        self.accept = accept
        self.level = level
        self.predicate = predicate

    def _should_compress(self, encoding: Encoding, response: Response) -> bool:
        if encoding is Encoding.IDENTITY:
            return False
        headers = response.headers
        if "content-encoding" in headers or "content-range" in headers:
            return False
        return self.predicate(response)

    async def __call__(self, request: Request) -> Response:
        encoding = Encoding.from_headers(request.headers, self.accept)
        response = await self.inner(request)
        if not self._should_compress(encoding, response):
            return response

        compressor = compressor_for(encoding, self.level)
        if compressor is None:
            return response

        headers = response.headers.copy()
        if not _has_token(headers.get_list("vary"), "accept-encoding"):
            headers.append("vary", "accept-encoding")
        headers.remove("accept-ranges")
        headers.remove("content-length")
        headers.insert("content-encoding", encoding.value)

        body = response.body.map_chunks(compress_stream(compressor))
        return replace(response, headers=headers, body=body)


@dataclass(frozen=True, slots=True)
class CompressionLayer:
    """Layer applying ``Compression``.

    Every codec is enabled by default. The setters return a new layer.
    """

    accept: SupportedEncodings = field(default_factory=SupportedEncodings)
    level: Level = CompressionLevel.DEFAULT
    predicate: Predicate = DEFAULT_PREDICATE

    def layer(self, inner: Service) -> Service:
        return Compression(inner, self.accept, self.level, self.predicate)

    def gzip(self, enable: bool = True) -> "CompressionLayer":
        return replace(self, accept=replace(self.accept, gzip=enable))

    def deflate(self, enable: bool = True) -> "CompressionLayer":
        return replace(self, accept=replace(self.accept, deflate=enable))

    def br(self, enable: bool = True) -> "CompressionLayer":
        return replace(self, accept=replace(self.accept, br=enable))

    def zstd(self, enable: bool = True) -> "CompressionLayer":
        return replace(self, accept=replace(self.accept, zstd=enable))

    def no_gzip(self) -> "CompressionLayer":
        return self.gzip(False)

    def no_deflate(self) -> "CompressionLayer":
        return self.deflate(False)

    def no_br(self) -> "CompressionLayer":
        return self.br(False)

    def no_zstd(self) -> "CompressionLayer":
        return self.zstd(False)

    def quality(self, level: Level) -> "CompressionLayer":
        return replace(self, level=level)

    def compress_when(self, predicate: Predicate) -> "CompressionLayer":
        """Replace the default predicate entirely."""
        return replace(self, predicate=predicate)
