"""Request body decompression.

Usage::

    router.layer(DecompressionLayer())

A request with a supported ``content-encoding`` reaches the inner
service with the body decoded and ``content-encoding`` and
``content-length`` removed. ``identity`` and requests without the header
pass through untouched. Any other coding is answered with ``415`` and an
``accept-encoding`` header listing what is supported, unless
``pass_through_unaccepted`` is set.
"""

from dataclasses import dataclass, field, replace

from strata.errors import UnsupportedMediaType
from strata.http.encoding import Encoding, SupportedEncodings
from strata.http.request import Request
from strata.http.response import Response
from strata.middleware.codecs import decompress_stream, decompressor_for
from strata.service import Service


class Decompression:
    """Service decoding request bodies before calling ``inner``."""

    __slots__ = ("accept", "inner", "pass_through_unaccepted")

    def __init__(self, inner: Service, accept: SupportedEncodings, pass_through_unaccepted: bool) -> None:
        self.inner = inner
        self.accept = accept
        self.pass_through_unaccepted = pass_through_unaccepted

    async def __call__(self, request: Request) -> Response:
        content_encoding = request.headers.get("content-encoding")
        if not content_encoding:
            return await self.inner(request)

        encoding = Encoding.parse(content_encoding, self.accept)
        decompressor = decompressor_for(encoding) if encoding is not None else None
        if decompressor is not None:
            headers = request.headers.copy()
            headers.remove("content-encoding")
            headers.remove("content-length")
            body = request.body.map_chunks(decompress_stream(decompressor))
            return await self.inner(request.with_headers(headers).with_body(body))

        if encoding is Encoding.IDENTITY or self.pass_through_unaccepted:
            return await self.inner(request)

        return UnsupportedMediaType(self.accept.accept_encoding_header()).to_response()


@dataclass(frozen=True, slots=True)
class DecompressionLayer:
    """Layer applying ``Decompression``; every codec is enabled by default."""

    accept: SupportedEncodings = field(default_factory=SupportedEncodings)
    pass_through_unaccepted: bool = False

    def layer(self, inner: Service) -> Service:
        return Decompression(inner, self.accept, self.pass_through_unaccepted)

    def gzip(self, enable: bool = True) -> "DecompressionLayer":
        return replace(self, accept=replace(self.accept, gzip=enable))

    def deflate(self, enable: bool = True) -> "DecompressionLayer":
        return replace(self, accept=replace(self.accept, deflate=enable))

    def br(self, enable: bool = True) -> "DecompressionLayer":
        return replace(self, accept=replace(self.accept, br=enable))

    def zstd(self, enable: bool = True) -> "DecompressionLayer":
        return replace(self, accept=replace(self.accept, zstd=enable))

    def no_gzip(self) -> "DecompressionLayer":
        return self.gzip(False)

    def no_deflate(self) -> "DecompressionLayer":
        return self.deflate(False)

    def no_br(self) -> "DecompressionLayer":
        return self.br(False)

    def no_zstd(self) -> "DecompressionLayer":
        return self.zstd(False)

    def pass_through(self, enable: bool = True) -> "DecompressionLayer":
        """Forward requests with unsupported codings instead of answering 415."""
        return replace(self, pass_through_unaccepted=enable)
