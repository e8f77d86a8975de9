"""Tests for request tracing through the logging module."""

import logging

import pytest

from strata.http.request import Request
from strata.http.response import Response
from strata.middleware.trace import TraceLayer, server_errors_as_failures
from strata.routing import Router, get
from strata.testing import TestClient


class TestTrace:
    async def test_logs_start_and_finish_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        router = Router().route("/users", get(lambda: "ok")).layer(TraceLayer())
        with caplog.at_level(logging.DEBUG, logger="strata.trace"):
            async with TestClient(router) as client:
                await client.get("/users")
        messages = [r.getMessage() for r in caplog.records if r.name == "strata.trace"]
        assert messages[0] == "started processing request GET /users"
        assert messages[1].startswith("finished processing request GET /users: 200 in ")
        assert len(messages) == 2

    async def test_server_errors_logged_as_failures(self, caplog: pytest.LogCaptureFixture) -> None:
        router = Router().route("/", get(lambda: 503)).layer(TraceLayer())
        with caplog.at_level(logging.ERROR, logger="strata.trace"):
            async with TestClient(router) as client:
                await client.get("/")
        failures = [r for r in caplog.records if r.name == "strata.trace"]
        assert len(failures) == 1
        assert "Service Unavailable" in failures[0].getMessage()

    async def test_custom_classifier_and_level(self, caplog: pytest.LogCaptureFixture) -> None:
        def client_errors(response: Response) -> str | None:
            return "client error" if 400 <= response.status < 500 else None

        layer = TraceLayer(classify=client_errors, level=logging.INFO, failure_level=logging.WARNING)
        service = layer.layer(_not_found)
        with caplog.at_level(logging.INFO, logger="strata.trace"):
            await service(Request.build("GET", "/missing"))
        levels = [(r.levelno, r.getMessage().split(" ")[0]) for r in caplog.records]
        assert levels == [
            (logging.INFO, "started"),
            (logging.INFO, "finished"),
            (logging.WARNING, "response"),
        ]


class TestClassifier:
    def test_success_is_not_a_failure(self) -> None:
        assert server_errors_as_failures(Response.empty(404)) is None

    def test_unknown_server_status(self) -> None:
        assert server_errors_as_failures(Response.empty(599)) == "599"


async def _not_found(request: Request) -> Response:
    return Response.empty(404)
