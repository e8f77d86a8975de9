"""Set a header on every request or response.

Three modes:

* ``overriding``: replace any existing values;
* ``appending``: add a value, keeping existing ones;
* ``if_not_present``: set only when the header is absent.

The value is a string, ``None`` (set nothing), or a function of the
request/response returning either. Usage::

    router.layer(SetResponseHeaderLayer.if_not_present("cache-control", "no-store"))
    router.layer(SetRequestHeaderLayer.overriding("x-tenant", tenant_from_host))
"""

import enum
from collections.abc import Callable
from dataclasses import replace
from typing import Any, Self

from strata.http.headers import HeaderMap
from strata.http.request import Request
from strata.http.response import Response
from strata.service import Service

type MakeHeaderValue = str | None | Callable[[Any], str | None]


class InsertMode(enum.Enum):
    OVERRIDE = "override"
    APPEND = "append"
    IF_NOT_PRESENT = "if_not_present"


def _make_value(target: Request | Response, make: MakeHeaderValue) -> str | None:
    if make is None or isinstance(make, str):
        return make
    return make(target)


def apply_header(
    mode: InsertMode, name: str, target: Request | Response, make: MakeHeaderValue
) -> HeaderMap | None:
    """The target's headers with *name* set per *mode*; ``None`` if unchanged."""
    if mode is InsertMode.IF_NOT_PRESENT and name in target.headers:
        return None
    value = _make_value(target, make)
    if value is None:
        return None
    headers = target.headers.copy()
    if mode is InsertMode.APPEND:
        headers.append(name, value)
    else:
        headers.insert(name, value)
    return headers


class SetResponseHeader:
    __slots__ = ("inner", "make", "mode", "name")

    def __init__(self, inner: Service, mode: InsertMode, name: str, make: MakeHeaderValue) -> None:
        self.inner = inner
        self.mode = mode
        self.name = name
        self.make = make

    async def __call__(self, request: Request) -> Response:
        response = await self.inner(request)
        headers = apply_header(self.mode, self.name, response, self.make)
        if headers is None:
            return response
        return replace(response, headers=headers)


class SetRequestHeader:
    __slots__ = ("inner", "make", "mode", "name")

    def __init__(self, inner: Service, mode: InsertMode, name: str, make: MakeHeaderValue) -> None:
        self.inner = inner
        self.mode = mode
        self.name = name
        self.make = make

    async def __call__(self, request: Request) -> Response:
        headers = apply_header(self.mode, self.name, request, self.make)
        if headers is not None:
            request = request.with_headers(headers)
        return await self.inner(request)


class _SetHeaderLayer:
    __slots__ = ("make", "mode", "name")

    def __init__(self, mode: InsertMode, name: str, make: MakeHeaderValue) -> None:
        self.mode = mode
        self.name = name.lower()
        self.make = make

    @classmethod
    def overriding(cls, name: str, make: MakeHeaderValue) -> Self:
        return cls(InsertMode.OVERRIDE, name, make)

    @classmethod
    def appending(cls, name: str, make: MakeHeaderValue) -> Self:
        return cls(InsertMode.APPEND, name, make)

    @classmethod
    def if_not_present(cls, name: str, make: MakeHeaderValue) -> Self:
        return cls(InsertMode.IF_NOT_PRESENT, name, make)


class SetResponseHeaderLayer(_SetHeaderLayer):
    __slots__ = ()

    def layer(self, inner: Service) -> Service:
        return SetResponseHeader(inner, self.mode, self.name, self.make)


class SetRequestHeaderLayer(_SetHeaderLayer):
    __slots__ = ()

    def layer(self, inner: Service) -> Service:
        return SetRequestHeader(inner, self.mode, self.name, self.make)
