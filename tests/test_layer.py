"""Tests for services, layers, and their composition order."""

from strata.http.request import Request
from strata.http.response import Response
from strata.layer import Identity, Layers, ServiceBuilder, Stack, from_fn, layer_fn
from strata.service import Service, service_fn


def _tagging_layer(tag: str, log: list[str]):
    """Layer recording when its service sees the request and the response."""

    async def middleware(request: Request, next: Service) -> Response:
        log.append(f"{tag}:request")
        response = await next(request)
        log.append(f"{tag}:response")
        return response.with_header("x-tags", tag)

    return from_fn(middleware)


async def _ok(request: Request) -> Response:
    return Response.text("ok")


class TestServiceFn:
    async def test_handler_without_request(self) -> None:
        service = service_fn(lambda: "hello")
        response = await service(Request.build())
        assert await response.body.read() == b"hello"

    async def test_sync_handler_with_request(self) -> None:
        service = service_fn(lambda request: request.path)
        response = await service(Request.build("GET", "/where"))
        assert await response.body.read() == b"/where"

    async def test_async_handler(self) -> None:
        async def handler(request: Request) -> int:
            return 204

        response = await service_fn(handler)(Request.build())
        assert response.status == 204

    def test_service_fn_is_idempotent(self) -> None:
        service = service_fn(_ok)
        assert service_fn(service) is service


class TestLayerOrdering:
    async def test_first_declared_is_outermost(self) -> None:
        log: list[str] = []
        layers = Layers(_tagging_layer("a", log), _tagging_layer("b", log))
        response = await layers.layer(_ok)(Request.build())
        assert log == ["a:request", "b:request", "b:response", "a:response"]
        # Inner layer adds its header first
        assert response.headers.get_list("x-tags") == ["b", "a"]

    async def test_stack_outer_wraps_inner(self) -> None:
        log: list[str] = []
        stack = Stack(inner=_tagging_layer("inner", log), outer=_tagging_layer("outer", log))
        await stack.layer(_ok)(Request.build())
        assert log[0] == "outer:request"

    async def test_service_builder_order(self) -> None:
        log: list[str] = []
        service = (
            ServiceBuilder()
            .layer(_tagging_layer("first", log))
            .layer(_tagging_layer("second", log))
            .service(_ok)
        )
        await service(Request.build())
        assert log[0] == "first:request"
        assert log[-1] == "first:response"

    async def test_builder_is_reusable(self) -> None:
        base = ServiceBuilder().set_status(202)
        first = base.service(_ok)
        second = base.set_status(203).service(_ok)
        assert (await first(Request.build())).status == 202
        # The outer (first-declared) status layer runs last
        assert (await second(Request.build())).status == 202

    async def test_identity(self) -> None:
        assert Identity().layer(_ok) is _ok


class TestFunctionAdapters:
    async def test_from_fn_converts_return_value(self) -> None:
        async def short_circuit(request: Request, next: Service) -> str:
            return "intercepted"

        service = from_fn(short_circuit).layer(_ok)
        response = await service(Request.build())
        assert await response.body.read() == b"intercepted"

    async def test_layer_fn(self) -> None:
        class Upper:
            def __init__(self, inner: Service) -> None:
                self.inner = inner

            async def __call__(self, request: Request) -> Response:
                response = await self.inner(request)
                return Response.text((await response.body.read()).decode().upper())

        service = layer_fn(Upper).layer(_ok)
        response = await service(Request.build())
        assert await response.body.read() == b"OK"

    async def test_map_response(self) -> None:
        service = ServiceBuilder().map_response(lambda r: r.with_status(201)).service(_ok)
        assert (await service(Request.build())).status == 201

    async def test_layers_build_fresh_services(self) -> None:
        layer = ServiceBuilder().set_status(299).into_layer()
        assert layer.layer(_ok) is not layer.layer(_ok)
