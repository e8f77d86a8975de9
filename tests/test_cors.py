"""Tests for CORS middleware."""

import pytest

from strata.errors import ConfigurationError, HTTPError
from strata.http.request import Request
from strata.http.response import Response
from strata.middleware.cors import (
    ANY,
    MIRROR_REQUEST,
    AllowCredentials,
    AllowOrigin,
    CorsLayer,
    ExposeHeaders,
)
from strata.routing import Router, get
from strata.testing import TestClient

ORIGIN = "https://example.com"


def _make_cors_app(layer: CorsLayer) -> tuple[Router, list[str]]:
    """Helper: router with one layered route, recording which methods reached it."""
    calls: list[str] = []

    def data(request: Request) -> dict:
        calls.append(request.method)
        return {"message": "hello"}

    def create(request: Request) -> tuple[str, int]:
        calls.append(request.method)
        return ("created", 201)

    router = Router().route("/api/data", get(data).post(create)).layer(layer)
    return router, calls


class TestPreflight:
    async def test_preflight_is_answered_without_inner_service(self) -> None:
        layer = (
            CorsLayer()
            .allow_origin([ORIGIN])
            .allow_methods(["get", "post"])
            .allow_headers(["content-type"])
            .max_age(600)
        )
        app, calls = _make_cors_app(layer)
        async with TestClient(app) as client:
            response = await client.options(
                "/api/data",
                headers={"origin": ORIGIN, "access-control-request-method": "POST"},
            )
        assert response.status == 200
        assert response.body == b""
        assert response.headers["access-control-allow-origin"] == ORIGIN
        assert response.headers["access-control-allow-methods"] == "GET,POST"
        assert response.headers["access-control-allow-headers"] == "content-type"
        assert response.headers["access-control-max-age"] == "600"
        assert response.headers["vary"] == (
            "origin, access-control-request-method, access-control-request-headers"
        )
        assert calls == []

    async def test_preflight_from_disallowed_origin(self) -> None:
        app, _ = _make_cors_app(CorsLayer().allow_origin([ORIGIN]).allow_methods(ANY))
        async with TestClient(app) as client:
            response = await client.options("/api/data", headers={"origin": "https://evil.com"})
        assert response.status == 200
        assert "access-control-allow-origin" not in response.headers
        assert response.headers["access-control-allow-methods"] == "*"

    async def test_preflight_mirrors_request(self) -> None:
        app, _ = _make_cors_app(CorsLayer.very_permissive())
        async with TestClient(app) as client:
            response = await client.options(
                "/api/data",
                headers={
                    "origin": ORIGIN,
                    "access-control-request-method": "PUT",
                    "access-control-request-headers": "x-custom, content-type",
                },
            )
        assert response.headers["access-control-allow-origin"] == ORIGIN
        assert response.headers["access-control-allow-methods"] == "PUT"
        assert response.headers["access-control-allow-headers"] == "x-custom, content-type"
        assert response.headers["access-control-allow-credentials"] == "true"

    async def test_preflight_with_wildcards(self) -> None:
        layer = CorsLayer().allow_origin(ANY).allow_methods(ANY).allow_headers(ANY).max_age(60)
        app, calls = _make_cors_app(layer)
        async with TestClient(app) as client:
            response = await client.options(
                "/api/data",
                headers={
                    "origin": ORIGIN,
                    "access-control-request-method": "DELETE",
                    "access-control-request-headers": "x-custom",
                },
            )
        assert response.status == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "*"
        assert response.headers["access-control-allow-headers"] == "*"
        assert response.headers["access-control-max-age"] == "60"
        assert "access-control-allow-credentials" not in response.headers
        assert calls == []

    async def test_dynamic_max_age(self) -> None:
        def max_age(origin: str, request: Request) -> int:
            return 60 if "example" in origin else 5

        app, _ = _make_cors_app(CorsLayer().allow_origin(ANY).max_age(max_age))
        async with TestClient(app) as client:
            response = await client.options("/api/data", headers={"origin": ORIGIN})
        assert response.headers["access-control-max-age"] == "60"

    async def test_private_network(self) -> None:
        app, _ = _make_cors_app(CorsLayer().allow_origin([ORIGIN]).allow_private_network(True))
        async with TestClient(app) as client:
            asked = await client.options(
                "/api/data",
                headers={"origin": ORIGIN, "access-control-request-private-network": "true"},
            )
            not_asked = await client.options("/api/data", headers={"origin": ORIGIN})
        assert asked.headers["access-control-allow-private-network"] == "true"
        assert "access-control-allow-private-network" not in not_asked.headers


class TestSimpleRequests:
    async def test_allowed_origin_gets_cors_headers(self) -> None:
        app, calls = _make_cors_app(CorsLayer().allow_origin([ORIGIN]))
        async with TestClient(app) as client:
            response = await client.get("/api/data", headers={"origin": ORIGIN})
        assert response.status == 200
        assert response.json() == {"message": "hello"}
        assert response.headers["access-control-allow-origin"] == ORIGIN
        assert calls == ["GET"]

    async def test_disallowed_origin_gets_no_allow_origin(self) -> None:
        app, _ = _make_cors_app(CorsLayer().allow_origin([ORIGIN]))
        async with TestClient(app) as client:
            response = await client.get("/api/data", headers={"origin": "https://evil.com"})
        assert response.status == 200
        assert "access-control-allow-origin" not in response.headers

    async def test_no_origin_header(self) -> None:
        app, _ = _make_cors_app(CorsLayer().allow_origin([ORIGIN]))
        async with TestClient(app) as client:
            response = await client.get("/api/data")
        assert "access-control-allow-origin" not in response.headers
        assert "vary" in response.headers

    async def test_permissive(self) -> None:
        app, _ = _make_cors_app(CorsLayer.permissive())
        async with TestClient(app) as client:
            response = await client.post("/api/data", headers={"origin": ORIGIN})
        assert response.status == 201
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-expose-headers"] == "*"

    async def test_predicate_origin(self) -> None:
        layer = CorsLayer().allow_origin(lambda origin, request: origin.endswith(".example.com"))
        app, _ = _make_cors_app(layer)
        async with TestClient(app) as client:
            allowed = await client.get("/api/data", headers={"origin": "https://api.example.com"})
            denied = await client.get("/api/data", headers={"origin": "https://example.org"})
        assert allowed.headers["access-control-allow-origin"] == "https://api.example.com"
        assert "access-control-allow-origin" not in denied.headers

    async def test_async_predicate_origin(self) -> None:
        async def is_allowed(origin: str, request: Request) -> bool:
            return origin == ORIGIN

        app, _ = _make_cors_app(CorsLayer().allow_origin(is_allowed))
        async with TestClient(app) as client:
            response = await client.get("/api/data", headers={"origin": ORIGIN})
        assert response.headers["access-control-allow-origin"] == ORIGIN

    async def test_credentials_predicate(self) -> None:
        layer = (
            CorsLayer()
            .allow_origin([ORIGIN])
            .allow_credentials(lambda origin, request: origin == ORIGIN)
        )
        app, _ = _make_cors_app(layer)
        async with TestClient(app) as client:
            response = await client.get("/api/data", headers={"origin": ORIGIN})
        assert response.headers["access-control-allow-credentials"] == "true"

    async def test_expose_headers(self) -> None:
        layer = CorsLayer().allow_origin([ORIGIN]).expose_headers(["x-request-id", "x-total"])
        app, _ = _make_cors_app(layer)
        async with TestClient(app) as client:
            response = await client.get("/api/data", headers={"origin": ORIGIN})
        assert response.headers["access-control-expose-headers"] == "x-request-id,x-total"


class TestHeaderMerging:
    async def test_vary_is_appended_to_inner_vary(self) -> None:
        def handler() -> Response:
            return Response.text("x").with_header("vary", "accept-encoding")

        router = Router().route("/", get(handler)).layer(CorsLayer().allow_origin(ANY))
        async with TestClient(router) as client:
            response = await client.get("/", headers={"origin": ORIGIN})
        assert response.headers.get_list("vary") == [
            "accept-encoding",
            "origin, access-control-request-method, access-control-request-headers",
        ]

    async def test_credentials_with_exact_origin_and_inner_vary(self) -> None:
        def handler() -> Response:
            return Response.text("x").with_header("Vary", "Origin")

        layer = (
            CorsLayer()
            .allow_credentials(True)
            .allow_origin(AllowOrigin.exact(ORIGIN))
            .expose_headers(["X-Custom"])
        )
        router = Router().route("/", get(handler)).layer(layer)
        async with TestClient(router) as client:
            response = await client.get("/", headers={"origin": ORIGIN})
        assert response.status == 200
        assert response.headers["access-control-allow-origin"] == ORIGIN
        assert response.headers["access-control-allow-credentials"] == "true"
        assert response.headers["access-control-expose-headers"] == "X-Custom"
        assert response.headers.get_list("vary") == [
            "Origin",
            "origin, access-control-request-method, access-control-request-headers",
        ]

    async def test_cors_headers_replace_inner_values(self) -> None:
        def handler() -> Response:
            stale = "https://stale.example"
            return Response.text("x").with_header("access-control-allow-origin", stale)

        router = Router().route("/", get(handler)).layer(CorsLayer().allow_origin([ORIGIN]))
        async with TestClient(router) as client:
            response = await client.get("/", headers={"origin": ORIGIN})
        assert response.headers.get_list("access-control-allow-origin") == [ORIGIN]

    async def test_custom_vary(self) -> None:
        app, _ = _make_cors_app(CorsLayer().allow_origin(ANY).vary(["origin"]))
        async with TestClient(app) as client:
            response = await client.get("/api/data", headers={"origin": ORIGIN})
        assert response.headers.get_list("vary") == ["origin"]

    async def test_inner_errors_propagate(self) -> None:
        async def teapot(request: Request) -> Response:
            raise HTTPError(418, "short and stout")

        service = CorsLayer().allow_origin(ANY).layer(teapot)
        with pytest.raises(HTTPError) as exc_info:
            await service(Request.build(headers={"origin": ORIGIN}))
        assert exc_info.value.status == 418

    async def test_inner_errors_become_responses_under_a_router(self) -> None:
        def teapot() -> None:
            raise HTTPError(418, "short and stout")

        router = Router().route("/", get(teapot)).layer(CorsLayer().allow_origin(ANY))
        async with TestClient(router) as client:
            response = await client.get("/", headers={"origin": ORIGIN})
        assert response.status == 418
        assert response.headers["access-control-allow-origin"] == "*"


class TestValidation:
    @pytest.mark.parametrize(
        ("setter", "header"),
        [
            ("allow_headers", "access-control-allow-headers"),
            ("allow_methods", "access-control-allow-methods"),
            ("allow_origin", "access-control-allow-origin"),
            ("expose_headers", "access-control-expose-headers"),
        ],
    )
    def test_credentials_with_wildcard_rejected(self, setter: str, header: str) -> None:
        layer = getattr(CorsLayer().allow_credentials(True), setter)(ANY)
        with pytest.raises(ConfigurationError, match=f"`{header}: \\*`"):
            Router().route("/", get(lambda: "x")).layer(layer)

    def test_credentials_predicate_with_wildcard_allowed(self) -> None:
        layer = CorsLayer().allow_credentials(lambda origin, request: True).allow_origin(ANY)
        Router().route("/", get(lambda: "x")).layer(layer)

    def test_wildcard_in_origin_list_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="AllowOrigin.any"):
            AllowOrigin.list(["https://a.com", "*"])

    def test_expose_headers_cannot_mirror(self) -> None:
        with pytest.raises(ConfigurationError, match="cannot mirror"):
            ExposeHeaders.from_value(MIRROR_REQUEST)

    def test_from_value_shapes(self) -> None:
        assert AllowOrigin.from_value("https://a.com") == AllowOrigin.exact("https://a.com")
        assert AllowOrigin.from_value(ANY).is_wildcard
        assert AllowCredentials.from_value(True).is_true
        assert not AllowCredentials.from_value(lambda origin, request: True).is_true
