"""Request body size limit.

A declared ``content-length`` above the limit is rejected before the
inner service runs. Bodies without one are counted while the inner
service reads them, and reading past the limit raises
``ContentTooLarge``, which the route boundary renders as ``413``.
"""

from collections.abc import AsyncIterator, Callable

from strata.errors import ConfigurationError, ContentTooLarge
from strata.http.request import Request
from strata.http.response import Response
from strata.service import Service


def _limited(limit: int) -> Callable[[AsyncIterator[bytes]], AsyncIterator[bytes]]:
    async def transform(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        read = 0
        async for chunk in chunks:
            read += len(chunk)
            if read > limit:
                raise ContentTooLarge(limit)
            yield chunk

    return transform


class RequestBodyLimit:
    __slots__ = ("inner", "limit")

    def __init__(self, inner: Service, limit: int) -> None:
        self.inner = inner
        self.limit = limit

    async def __call__(self, request: Request) -> Response:
        declared = request.content_length
        if declared is not None and declared > self.limit:
            raise ContentTooLarge(self.limit)
        body = request.body.map_chunks(_limited(self.limit), size_hint=request.body.size_hint)
        return await self.inner(request.with_body(body))


class RequestBodyLimitLayer:
    """Cap request bodies at *limit* bytes."""

    __slots__ = ("limit",)

    def __init__(self, limit: int) -> None:
        if limit < 0:
            msg = f"Body limit must be non-negative, got {limit}"
            raise ConfigurationError(msg)
        self.limit = limit

    def layer(self, inner: Service) -> Service:
        return RequestBodyLimit(inner, self.limit)
