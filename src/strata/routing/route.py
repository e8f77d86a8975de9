"""Route — a service with error isolation and HTTP normalization.

Every endpoint the router can reach is a ``Route``. It guarantees two
things to whatever sits above it:

* it never raises: exceptions from the wrapped service go through the
  request's active error handler and come back as responses;
* the outermost route of a request fixes up the response for strict
  HTTP semantics (Content-Length, HEAD, CONNECT).
"""

import logging

from strata.errors import NoRouteMatched
from strata.http.body import Body
from strata.http.extensions import ExtensionKey
from strata.http.request import Request
from strata.http.response import Response
from strata.layer import Layer
from strata.routing.error_handler import handle_error
from strata.service import Service

logger = logging.getLogger("strata.routing")

# Set while a Route is running so nested routes skip normalization.
_ROUTE_ACTIVE: ExtensionKey[bool] = ExtensionKey("RouteActive")


class Route:
    """A frozen endpoint service.

    ``layer()`` never mutates: it returns a new ``Route`` around the
    layered old one, so errors raised inside are already responses by
    the time the new layer sees them.
    """

    __slots__ = ("inner",)

    def __init__(self, inner: Service) -> None:
        self.inner = inner

    def layer(self, layer: Layer) -> "Route":
        return Route(layer.layer(self))

    async def __call__(self, request: Request) -> Response:
        top_level = _ROUTE_ACTIVE not in request.extensions
        if top_level:
            request.extensions.insert(_ROUTE_ACTIVE, True)
        try:
            response = await self._call_isolated(request)
        finally:
            if top_level:
                request.extensions.remove(_ROUTE_ACTIVE)

        if not top_level:
            return response
        return normalize_response(request, response)

    async def _call_isolated(self, request: Request) -> Response:
        try:
            return await self.inner(request)
        except NoRouteMatched:
            raise
        except Exception as exc:
            return handle_error(request, exc)

    def __repr__(self) -> str:
        return f"Route({self.inner!r})"


def _may_declare_length(status: int) -> bool:
    """1xx, 204 and 304 responses never carry ``content-length``."""
    return status >= 200 and status not in (204, 304)


def normalize_response(request: Request, response: Response) -> Response:
    """Apply CONNECT, Content-Length and HEAD rules to a final response."""
    if request.method == "CONNECT" and 200 <= response.status < 300:
        if (
            "content-length" in response.headers
            or "transfer-encoding" in response.headers
            or response.body.size_hint.lower != 0
        ):
            logger.error(
                "response to CONNECT with nonempty body, status %d", response.status,
            )
            return (
                response
                .without_header("content-length")
                .without_header("transfer-encoding")
                .with_body(Body.empty())
            )
        return response

    exact = response.body.size_hint.exact_size
    if (
        "content-length" not in response.headers
        and exact is not None
        and _may_declare_length(response.status)
    ):
        response = response.replace_header("content-length", str(exact))

    if request.method == "HEAD":
        response = response.with_body(Body.empty())

    return response
