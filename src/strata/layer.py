"""Layers — service decorators and their composition.

A layer is anything with a ``layer(inner) -> Service`` method. Layers
hold configuration only; every call to ``layer()`` builds a fresh
service, so two services wrapped by the same layer share no state.

Ordering rule, used everywhere layers are combined: the first layer
declared ends up outermost. ``Layers(a, b, c).layer(svc)`` behaves like
``a.layer(b.layer(c.layer(svc)))``, so ``a`` sees the request first and
the response last.

Function adapters::

    # Middleware-shaped function
    async def timing(request: Request, next: Service) -> Response:
        start = time.monotonic()
        response = await next(request)
        return response.with_header("x-time", f"{time.monotonic() - start:.3f}")

    layer = from_fn(timing)

    # Layer-shaped function
    layer = layer_fn(lambda inner: MyService(inner))
"""

from collections.abc import Callable, Iterable
from functools import reduce
from typing import TYPE_CHECKING, Any, Protocol

from strata._internal.invoke import invoke
from strata.http.request import Request
from strata.http.response import Response, into_response
from strata.service import Service, service_fn

if TYPE_CHECKING:
    from strata.routing.error_handler import ErrorHandler


class Layer(Protocol):
    """Protocol for strata layers."""

    def layer(self, inner: Service) -> Service: ...


class LayerFn:
    """Layer adapter around a ``(inner) -> Service`` function."""

    __slots__ = ("func",)

    def __init__(self, func: Callable[[Service], Service]) -> None:
        self.func = func

    def layer(self, inner: Service) -> Service:
        return self.func(inner)


def layer_fn(func: Callable[[Service], Service]) -> LayerFn:
    """Turn a ``(inner) -> Service`` function into a layer."""
    return LayerFn(func)


class Identity:
    """A layer that returns the inner service unchanged."""

    __slots__ = ()

    def layer(self, inner: Service) -> Service:
        return inner


class Stack:
    """Two layers composed into one: ``outer`` wraps ``inner``."""

    __slots__ = ("inner", "outer")

    def __init__(self, inner: Layer, outer: Layer) -> None:
        self.inner = inner
        self.outer = outer

    def layer(self, inner: Service) -> Service:
        return self.outer.layer(self.inner.layer(inner))


class Layers:
    """An ordered list of layers applied as one.

    Reduced right to left: the last layer wraps the service first, the
    first layer is applied last and therefore sits outermost.
    """

    __slots__ = ("layers",)

    def __init__(self, *layers: Layer) -> None:
        self.layers = layers

    def layer(self, inner: Service) -> Service:
        return reduce(lambda svc, layer: layer.layer(svc), reversed(self.layers), inner)


class FromFn:
    """Service that runs a middleware function around ``inner``."""

    __slots__ = ("func", "inner")

    def __init__(self, func: Callable[..., Any], inner: Service) -> None:
        self.func = func
        self.inner = inner

    async def __call__(self, request: Request) -> Response:
        return into_response(await invoke(self.func, request, self.inner))


class FromFnLayer:
    __slots__ = ("func",)

    def __init__(self, func: Callable[..., Any]) -> None:
        self.func = func

    def layer(self, inner: Service) -> Service:
        return FromFn(self.func, inner)


def from_fn(func: Callable[..., Any]) -> FromFnLayer:
    """Turn an ``async def mw(request, next)`` function into a layer."""
    return FromFnLayer(func)


class MapResponse:
    """Service applying a sync-or-async function to every response."""

    __slots__ = ("func", "inner")

    def __init__(self, func: Callable[[Response], Any], inner: Service) -> None:
        self.func = func
        self.inner = inner

    async def __call__(self, request: Request) -> Response:
        response = await self.inner(request)
        return into_response(await invoke(self.func, response))


class MapResponseLayer:
    __slots__ = ("func",)

    def __init__(self, func: Callable[[Response], Any]) -> None:
        self.func = func

    def layer(self, inner: Service) -> Service:
        return MapResponse(self.func, inner)


class ServiceBuilder:
    """Declarative layer stack, first-declared outermost.

    Usage::

        svc = (
            ServiceBuilder()
            .trace()
            .set_request_id()
            .compression()
            .service(handler)
        )

    Each method returns a new builder; a builder can be reused as a
    base for several stacks.
    """

    __slots__ = ("_layers",)

    def __init__(self, layers: tuple[Layer, ...] = ()) -> None:
        self._layers = layers

    def layer(self, layer: Layer) -> "ServiceBuilder":
        """Add *layer* inside every layer added so far."""
        return ServiceBuilder((*self._layers, layer))

    def layer_fn(self, func: Callable[[Service], Service]) -> "ServiceBuilder":
        return self.layer(LayerFn(func))

    def from_fn(self, func: Callable[..., Any]) -> "ServiceBuilder":
        return self.layer(FromFnLayer(func))

    def map_response(self, func: Callable[[Response], Any]) -> "ServiceBuilder":
        return self.layer(MapResponseLayer(func))

    def catch_error(self, handler: "ErrorHandler | None" = None) -> "ServiceBuilder":
        from strata.routing.error_handler import CatchErrorLayer

        return self.layer(CatchErrorLayer(handler))

    def map_to_response(self) -> "ServiceBuilder":
        from strata.routing.error_handler import MapToResponseLayer

        return self.layer(MapToResponseLayer())

    def compression(self) -> "ServiceBuilder":
        from strata.middleware.compression import CompressionLayer

        return self.layer(CompressionLayer())

    def decompression(self) -> "ServiceBuilder":
        from strata.middleware.decompression import DecompressionLayer

        return self.layer(DecompressionLayer())

    def set_request_id(self, header: str = "x-request-id") -> "ServiceBuilder":
        from strata.middleware.request_id import SetRequestIdLayer

        return self.layer(SetRequestIdLayer(header))

    def propagate_request_id(self, header: str = "x-request-id") -> "ServiceBuilder":
        from strata.middleware.request_id import PropagateRequestIdLayer

        return self.layer(PropagateRequestIdLayer(header))

    def request_body_limit(self, limit: int) -> "ServiceBuilder":
        from strata.middleware.limit import RequestBodyLimitLayer

        return self.layer(RequestBodyLimitLayer(limit))

    def set_client_ip(self, *, trust_proxy: bool = False) -> "ServiceBuilder":
        from strata.middleware.client_ip import SetClientIpLayer

        return self.layer(SetClientIpLayer(trust_proxy=trust_proxy))

    def sensitive_headers(self, names: Iterable[str]) -> "ServiceBuilder":
        from strata.middleware.sensitive_headers import SetSensitiveHeadersLayer

        return self.layer(SetSensitiveHeadersLayer(names))

    def set_status(self, status: int) -> "ServiceBuilder":
        from strata.middleware.set_status import SetStatusLayer

        return self.layer(SetStatusLayer(status))

    def trace(self) -> "ServiceBuilder":
        from strata.middleware.trace import TraceLayer

        return self.layer(TraceLayer())

    def into_layer(self) -> Layers:
        """The declared stack as a single layer."""
        return Layers(*self._layers)

    def service(self, handler: Callable[..., Any] | Service) -> Service:
        """Wrap *handler* with every declared layer."""
        return self.into_layer().layer(service_fn(handler))
