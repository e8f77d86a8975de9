"""Tests for the ASGI adapter: streaming, lifespan, and graceful shutdown."""

import logging
from typing import Any

import anyio
import pytest

from strata.config import ServeConfig
from strata.errors import NoRouteMatched
from strata.http.body import Body
from strata.http.request import Request
from strata.http.response import Response
from strata.routing import Router, get, post
from strata.server.asgi import ASGIApp, send_response
from strata.testing import TestClient


def _make_scope(**overrides: Any) -> dict[str, Any]:
    scope: dict[str, Any] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "root_path": "",
        "headers": [],
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 1234),
    }
    scope.update(overrides)
    return scope


async def _chunks(*parts: bytes):
    for part in parts:
        yield part


class _Recorder:
    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)


class TestSendResponse:
    async def test_streams_chunk_by_chunk(self) -> None:
        send = _Recorder()
        response = Response.stream(_chunks(b"one", b"two"), content_type="text/plain")
        await send_response(response, send)
        assert send.messages[0] == {
            "type": "http.response.start",
            "status": 200,
            "headers": [(b"content-type", b"text/plain")],
        }
        bodies = [(m["body"], m["more_body"]) for m in send.messages[1:]]
        assert bodies == [(b"one", True), (b"two", True), (b"", False)]

    async def test_no_body_for_204(self) -> None:
        send = _Recorder()
        await send_response(Response.text("ignored", status=204), send)
        assert [m["type"] for m in send.messages] == ["http.response.start", "http.response.body"]
        assert send.messages[1]["body"] == b""

    async def test_error_mid_stream_ends_body(self, caplog: pytest.LogCaptureFixture) -> None:
        async def broken():
            yield b"partial"
            raise RuntimeError("producer died")

        send = _Recorder()
        with caplog.at_level(logging.ERROR, logger="strata.server"):
            await send_response(Response.stream(broken()), send)
        assert send.messages[-1] == {"type": "http.response.body", "body": b"", "more_body": False}
        assert "error while streaming response body" in caplog.text


class TestHttp:
    async def test_request_body_is_streamed_from_receive(self) -> None:
        async def echo(request: Request) -> bytes:
            return await request.body.read()

        messages = [
            {"type": "http.request", "body": b"hel", "more_body": True},
            {"type": "http.request", "body": b"lo", "more_body": False},
        ]

        async def receive() -> dict[str, Any]:
            return messages.pop(0)

        send = _Recorder()
        app = ASGIApp(Router().route("/", post(echo)))
        await app(_make_scope(method="POST"), receive, send)
        assert send.messages[0]["status"] == 200
        assert b"".join(m.get("body", b"") for m in send.messages[1:]) == b"hello"

    async def test_query_string_reaches_service(self) -> None:
        router = Router().route("/search", get(lambda request: request.query_string))
        async with TestClient(router) as client:
            response = await client.get("/search?q=strata")
        assert response.text == "q=strata"

    async def test_json_body_round_trips_through_client(self) -> None:
        async def echo(request: Request) -> Response:
            payload = await request.body.read()
            return Response(body=Body.from_value(payload)).replace_header(
                "content-type", request.headers.get("content-type", "")
            )

        router = Router().route("/echo", post(echo))
        async with TestClient(router) as client:
            response = await client.post("/echo", json={"name": "strata"})
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {"name": "strata"}

    async def test_unhandled_error_without_route_is_500(self, caplog: pytest.LogCaptureFixture) -> None:
        async def broken(request: Request) -> Response:
            raise RuntimeError("no boundary")

        with caplog.at_level(logging.ERROR):
            async with TestClient(broken) as client:
                response = await client.get("/")
        assert response.status == 500
        assert "failed to serve request" in caplog.text

    async def test_escaped_no_route_matched_is_404(self) -> None:
        async def nested_miss(request: Request) -> Response:
            raise NoRouteMatched(request.path)

        async with TestClient(nested_miss) as client:
            response = await client.get("/anything")
        assert response.status == 404

    async def test_unsupported_scope_is_ignored(self) -> None:
        send = _Recorder()
        app = ASGIApp(lambda: "ok")
        await app({"type": "websocket"}, _never_called, send)
        assert send.messages == []


class TestLifespan:
    async def test_startup_and_shutdown_hooks(self) -> None:
        events: list[str] = []

        async def on_startup() -> None:
            events.append("startup")

        def on_shutdown() -> None:
            events.append("shutdown")

        app = ASGIApp(lambda: "ok", on_startup=[on_startup], on_shutdown=[on_shutdown])
        messages = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]

        async def receive() -> dict[str, Any]:
            return messages.pop(0)

        send = _Recorder()
        await app({"type": "lifespan"}, receive, send)
        assert events == ["startup", "shutdown"]
        assert [m["type"] for m in send.messages] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    async def test_startup_failure_is_reported(self) -> None:
        def fail() -> None:
            raise RuntimeError("database unreachable")

        app = ASGIApp(lambda: "ok", on_startup=[fail])

        async def receive() -> dict[str, Any]:
            return {"type": "lifespan.startup"}

        send = _Recorder()
        await app({"type": "lifespan"}, receive, send)
        assert send.messages == [
            {"type": "lifespan.startup.failed", "message": "database unreachable"},
        ]


class TestGracefulShutdown:
    async def test_requests_after_shutdown_get_503(self) -> None:
        app = ASGIApp(lambda: "ok")
        await app.shutdown()
        assert app.aborting
        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 503
        assert response.headers["connection"] == "close"

    async def test_shutdown_waits_for_in_flight_requests(self) -> None:
        started = anyio.Event()
        release = anyio.Event()

        async def slow(request: Request) -> str:
            started.set()
            await release.wait()
            return "done"

        app = ASGIApp(slow, ServeConfig(shutdown_timeout=5))
        results: list[int] = []

        async def make_request() -> None:
            async with TestClient(app) as client:
                results.append((await client.get("/")).status)

        async with anyio.create_task_group() as tg:
            tg.start_soon(make_request)
            await started.wait()
            assert app.in_flight == 1
            tg.start_soon(app.shutdown)
            await anyio.sleep(0.01)
            release.set()

        assert results == [200]
        assert app.in_flight == 0

    async def test_shutdown_timeout(self, caplog: pytest.LogCaptureFixture) -> None:
        started = anyio.Event()
        release = anyio.Event()

        async def stuck(request: Request) -> str:
            started.set()
            await release.wait()
            return "late"

        app = ASGIApp(stuck, ServeConfig(shutdown_timeout=0.05))
        async with anyio.create_task_group() as tg:
            tg.start_soon(_request, app)
            await started.wait()
            with caplog.at_level(logging.WARNING, logger="strata.server"):
                await app.shutdown()
            assert "shutdown timeout" in caplog.text
            release.set()


async def _request(app: ASGIApp) -> None:
    async with TestClient(app) as client:
        await client.get("/")


async def _never_called() -> dict[str, Any]:
    msg = "receive should not be called"
    raise AssertionError(msg)
