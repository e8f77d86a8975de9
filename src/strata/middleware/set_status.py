"""Force the status code of every response."""

from strata.http.request import Request
from strata.http.response import Response
from strata.service import Service


class SetStatus:
    __slots__ = ("inner", "status")

    def __init__(self, inner: Service, status: int) -> None:
        self.inner = inner
        self.status = status

    async def __call__(self, request: Request) -> Response:
        response = await self.inner(request)
        return response.with_status(self.status)


class SetStatusLayer:
    __slots__ = ("status",)

    def __init__(self, status: int) -> None:
        self.status = status

    def layer(self, inner: Service) -> Service:
        return SetStatus(inner, self.status)
