"""Request IDs.

``SetRequestIdLayer`` makes sure every request carries an ID header
(generating a UUID4 when the client sent none) and records it under
``REQUEST_ID``. ``PropagateRequestIdLayer`` copies the request's ID onto
the response. Usage::

    ServiceBuilder().set_request_id().propagate_request_id().service(handler)
"""

import uuid
from collections.abc import Callable

from strata.http.extensions import ExtensionKey
from strata.http.request import Request
from strata.http.response import Response
from strata.service import Service

REQUEST_ID: ExtensionKey[str] = ExtensionKey("RequestId")

DEFAULT_HEADER = "x-request-id"

type MakeRequestId = Callable[[Request], str | None]


def uuid_request_id(request: Request) -> str:
    return str(uuid.uuid4())


class SetRequestId:
    __slots__ = ("header", "inner", "make_request_id")

    def __init__(self, inner: Service, header: str, make_request_id: MakeRequestId) -> None:
        self.inner = inner
        self.header = header
        self.make_request_id = make_request_id

    async def __call__(self, request: Request) -> Response:
        request_id = request.headers.get(self.header)
        if request_id:
            request.extensions.insert(REQUEST_ID, request_id)
            return await self.inner(request)

        request_id = self.make_request_id(request)
        if request_id is None:
            return await self.inner(request)

        headers = request.headers.copy()
        headers.insert(self.header, request_id)
        request.extensions.insert(REQUEST_ID, request_id)
        return await self.inner(request.with_headers(headers))


class SetRequestIdLayer:
    """Add an ID header to requests that lack one.

    *make_request_id* may return ``None`` to leave a request without an ID.
    """

    __slots__ = ("header", "make_request_id")

    def __init__(
        self,
        header: str = DEFAULT_HEADER,
        make_request_id: MakeRequestId = uuid_request_id,
    ) -> None:
        self.header = header.lower()
        self.make_request_id = make_request_id

    def layer(self, inner: Service) -> Service:
        return SetRequestId(inner, self.header, self.make_request_id)


class PropagateRequestId:
    __slots__ = ("header", "inner")

    def __init__(self, inner: Service, header: str) -> None:
        self.inner = inner
        self.header = header

    async def __call__(self, request: Request) -> Response:
        response = await self.inner(request)
        response_id = response.headers.get(self.header)
        if response_id:
            if REQUEST_ID not in response.extensions:
                response.extensions.insert(REQUEST_ID, response_id)
            return response

        request_id = request.headers.get(self.header)
        if not request_id:
            return response
        response = response.replace_header(self.header, request_id)
        response.extensions.insert(REQUEST_ID, request_id)
        return response


class PropagateRequestIdLayer:
    """Copy the request's ID header onto responses that do not set their own."""

    __slots__ = ("header",)

    def __init__(self, header: str = DEFAULT_HEADER) -> None:
        self.header = header.lower()

    def layer(self, inner: Service) -> Service:
        return PropagateRequestId(inner, self.header)
