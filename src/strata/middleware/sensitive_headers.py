"""Mark headers as sensitive so their values never reach a log line.

The header still goes over the wire unchanged; only ``HeaderMap``'s
``repr`` (and therefore ``TraceLayer``) shows ``Sensitive`` instead of
the value. Usage::

    router.layer(SetSensitiveHeadersLayer(["authorization", "cookie", "set-cookie"]))

Apply it outside ``TraceLayer`` so the marks are in place before the
request is logged.
"""

from collections.abc import Iterable
from dataclasses import replace

from strata.http.headers import HeaderMap
from strata.http.request import Request
from strata.http.response import Response
from strata.service import Service


def _marked(headers: HeaderMap, names: tuple[str, ...]) -> HeaderMap:
    marked = headers.copy()
    for name in names:
        marked.mark_sensitive(name)
    return marked


class SetSensitiveRequestHeaders:
    __slots__ = ("inner", "names")

    def __init__(self, inner: Service, names: tuple[str, ...]) -> None:
        self.inner = inner
        self.names = names

    async def __call__(self, request: Request) -> Response:
        return await self.inner(request.with_headers(_marked(request.headers, self.names)))


class SetSensitiveResponseHeaders:
    __slots__ = ("inner", "names")

    def __init__(self, inner: Service, names: tuple[str, ...]) -> None:
        self.inner = inner
        self.names = names

    async def __call__(self, request: Request) -> Response:
        response = await self.inner(request)
        return replace(response, headers=_marked(response.headers, self.names))


class _SensitiveHeadersLayer:
    __slots__ = ("names",)

    def __init__(self, names: Iterable[str]) -> None:
        self.names = tuple(name.lower() for name in names)


class SetSensitiveRequestHeadersLayer(_SensitiveHeadersLayer):
    __slots__ = ()

    def layer(self, inner: Service) -> Service:
        return SetSensitiveRequestHeaders(inner, self.names)


class SetSensitiveResponseHeadersLayer(_SensitiveHeadersLayer):
    __slots__ = ()

    def layer(self, inner: Service) -> Service:
        return SetSensitiveResponseHeaders(inner, self.names)


class SetSensitiveHeadersLayer(_SensitiveHeadersLayer):
    """Mark *names* sensitive on both the request and the response."""

    __slots__ = ()

    def layer(self, inner: Service) -> Service:
        return SetSensitiveRequestHeaders(SetSensitiveResponseHeaders(inner, self.names), self.names)
