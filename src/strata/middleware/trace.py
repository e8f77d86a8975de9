"""Request tracing through the ``strata.trace`` logger.

Logs the start of every request and its completion with status and
latency at DEBUG, and logs responses the classifier flags as failures
(5xx by default) at ERROR. Usage::

    router.layer(TraceLayer())

    # Treat 4xx as failures too, and log completions at INFO
    TraceLayer(classify=lambda response: str(response.status) if response.status >= 400 else None,
               level=logging.INFO)

With ``include_headers=True`` the start and finish lines also carry the
request and response headers. Values marked sensitive (see
``SetSensitiveHeadersLayer``) are logged as ``Sensitive``.
"""

import logging
import time
from collections.abc import Callable
from http import HTTPStatus

from strata.http.request import Request
from strata.http.response import Response
from strata.service import Service

logger = logging.getLogger("strata.trace")

type Classifier = Callable[[Response], str | None]


def server_errors_as_failures(response: Response) -> str | None:
    """Classify 5xx responses as failures, named by their reason phrase."""
    if response.status < 500:
        return None
    try:
        return HTTPStatus(response.status).phrase
    except ValueError:
        return str(response.status)


class Trace:
    __slots__ = ("classify", "failure_level", "include_headers", "inner", "level")

    def __init__(
        self,
        inner: Service,
        classify: Classifier,
        level: int,
        failure_level: int,
        include_headers: bool = False,
    ) -> None:
        self.inner = inner
        self.classify = classify
        self.level = level
        self.failure_level = failure_level
        self.include_headers = include_headers

    async def __call__(self, request: Request) -> Response:
        start = time.perf_counter()
        if self.include_headers:
            logger.log(
                self.level,
                "started processing request %s %s headers=%r",
                request.method,
                request.path,
                request.headers,
            )
        else:
            logger.log(self.level, "started processing request %s %s", request.method, request.path)

        response = await self.inner(request)

        latency_ms = (time.perf_counter() - start) * 1000
        if self.include_headers:
            logger.log(
                self.level,
                "finished processing request %s %s: %d in %.2fms headers=%r",
                request.method,
                request.path,
                response.status,
                latency_ms,
                response.headers,
            )
        else:
            logger.log(
                self.level,
                "finished processing request %s %s: %d in %.2fms",
                request.method,
                request.path,
                response.status,
                latency_ms,
            )
        classification = self.classify(response)
        if classification is not None:
            logger.log(
                self.failure_level,
                "response failed %s %s: %s in %.2fms",
                request.method,
                request.path,
                classification,
                latency_ms,
            )
        return response


class TraceLayer:
    __slots__ = ("classify", "failure_level", "include_headers", "level")

    def __init__(
        self,
        *,
        classify: Classifier = server_errors_as_failures,
        level: int = logging.DEBUG,
        failure_level: int = logging.ERROR,
        include_headers: bool = False,
    ) -> None:
        self.classify = classify
        self.level = level
        self.failure_level = failure_level
        self.include_headers = include_headers

    def layer(self, inner: Service) -> Service:
        return Trace(inner, self.classify, self.level, self.failure_level, self.include_headers)
