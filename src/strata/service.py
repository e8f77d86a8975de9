"""Service protocol and function adapters.

A service is anything matching::

    async def service(request: Request) -> Response: ...

No base class required. Plain ``async def`` functions are services, and
so are routers, routes, and everything a layer returns.

``service_fn`` lifts a friendlier handler (sync or async, with or without
a ``request`` argument, returning a str/dict/int/tuple/...) into a
service by converting its return value with ``into_response``.
"""

from collections.abc import Callable
from typing import Any, Protocol

from strata._internal.invoke import accepts_argument, invoke
from strata.http.request import Request
from strata.http.response import Response, into_response


class Service(Protocol):
    """Protocol for strata services.

    Accepts both functions and callable objects::

        # Function service
        async def hello(request: Request) -> Response:
            return Response.text("hello")

        # Class service
        class Echo:
            async def __call__(self, request: Request) -> Response:
                return Response(body=request.body)
    """

    async def __call__(self, request: Request) -> Response: ...


type Handler = Callable[..., Any]


class ServiceFn:
    """Service adapter around a handler function."""

    __slots__ = ("func", "takes_request")

    def __init__(self, func: Handler) -> None:
        self.func = func
        self.takes_request = accepts_argument(func)

    async def __call__(self, request: Request) -> Response:
        if self.takes_request:
            result = await invoke(self.func, request)
        else:
            result = await invoke(self.func)
        return into_response(result)

    def __repr__(self) -> str:
        name = getattr(self.func, "__qualname__", repr(self.func))
        return f"ServiceFn({name})"


def service_fn(func: Handler | Service) -> Service:
    """Adapt *func* into a service. Already-adapted functions pass through."""
    if isinstance(func, ServiceFn):
        return func
    return ServiceFn(func)
