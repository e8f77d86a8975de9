"""ASGI adapter — runs a strata service under any ASGI server.

Converts ``http`` scopes into ``Request`` objects, calls the service, and
streams the ``Response`` back chunk by chunk. Handles the ``lifespan``
protocol, including graceful shutdown::

    app = ASGIApp(router, ServeConfig(shutdown_timeout=5))

Once shutdown starts, new requests get ``503`` while in-flight requests
get up to ``shutdown_timeout`` seconds to finish. After that the adapter
reports shutdown complete anyway and logs the stragglers.
"""

import logging
from collections.abc import Callable, Sequence
from typing import Any

import anyio

from strata._internal.asgi import Receive, Scope, Send
from strata._internal.invoke import invoke
from strata.config import ServeConfig
from strata.errors import NoRouteMatched
from strata.http.request import Request
from strata.http.response import Response
from strata.middleware.client_ip import CLIENT_IP, forwarded_for
from strata.routing.error_handler import handle_error
from strata.service import Handler, Service, service_fn

logger = logging.getLogger("strata.server")

type Hook = Callable[[], Any]


def _body_allowed(status: int) -> bool:
    # 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


async def send_response(response: Response, send: Send) -> None:
    """Translate a Response into ASGI ``send()`` calls.

    The body is pulled one chunk at a time, so a slow client slows the
    producer down instead of the adapter buffering the whole body.
    """
    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": response.headers.raw,
        }
    )

    if _body_allowed(response.status):
        try:
            async for chunk in response.body:
                await send({"type": "http.response.body", "body": chunk, "more_body": True})
        except Exception:
            # Headers are already sent; all we can do is end the body.
            logger.exception("error while streaming response body")

    await send({"type": "http.response.body", "body": b"", "more_body": False})


class ASGIApp:
    """ASGI 3.0 application wrapping a strata service."""

    __slots__ = (
        "_aborting",
        "_drained",
        "_in_flight",
        "config",
        "on_shutdown",
        "on_startup",
        "service",
    )

    def __init__(
        self,
        service: Handler | Service,
        config: ServeConfig | None = None,
        *,
        on_startup: Sequence[Hook] = (),
        on_shutdown: Sequence[Hook] = (),
    ) -> None:
        self.service = service_fn(service)
        self.config = config or ServeConfig()
        self.on_startup = tuple(on_startup)
        self.on_shutdown = tuple(on_shutdown)
        self._in_flight = 0
        self._aborting = False
        self._drained: anyio.Event | None = None

    @property
    def in_flight(self) -> int:
        """Number of requests currently being served."""
        return self._in_flight

    @property
    def aborting(self) -> bool:
        """True once shutdown has started."""
        return self._aborting

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        match scope["type"]:
            case "http":
                await self._handle_http(scope, receive, send)
            case "lifespan":
                await self._handle_lifespan(receive, send)
            case other:
                logger.debug("ignoring unsupported ASGI scope type %r", other)

    # -- HTTP --

    async def _handle_http(self, scope: Scope, receive: Receive, send: Send) -> None:
        if self._aborting:
            await send_response(Response.empty(503).replace_header("connection", "close"), send)
            return

        self._in_flight += 1
        try:
            request = Request.from_asgi(scope, receive)
            self._record_client_ip(request)
            response = await self._serve(request)
            await send_response(response, send)
        finally:
            self._in_flight -= 1
            if self._in_flight == 0 and self._drained is not None:
                self._drained.set()

    def _record_client_ip(self, request: Request) -> None:
        address = forwarded_for(request) if self.config.trust_proxy else None
        if address is None and request.client is not None:
            address = request.client[0]
        if address is not None:
            request.extensions.insert(CLIENT_IP, address)

    async def _serve(self, request: Request) -> Response:
        try:
            return await self.service(request)
        except NoRouteMatched:
            return Response.empty(404)
        except Exception as exc:
            # Services without a route boundary still never take the server down.
            return handle_error(request, exc)

    # -- Lifespan --

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            match message["type"]:
                case "lifespan.startup":
                    try:
                        for hook in self.on_startup:
                            await invoke(hook)
                    except Exception as exc:
                        logger.exception("startup hook failed")
                        await send({"type": "lifespan.startup.failed", "message": str(exc)})
                        return
                    await send({"type": "lifespan.startup.complete"})
                case "lifespan.shutdown":
                    await self.shutdown()
                    for hook in self.on_shutdown:
                        await invoke(hook)
                    await send({"type": "lifespan.shutdown.complete"})
                    return

    async def shutdown(self) -> None:
        """Stop accepting requests and wait for in-flight ones to drain.

        Waits at most ``config.shutdown_timeout`` seconds (forever when
        it is ``None``).
        """
        self._aborting = True
        if self._in_flight == 0:
            return

        logger.info("waiting for %d in-flight request(s) to finish", self._in_flight)
        self._drained = anyio.Event()
        with anyio.move_on_after(self.config.shutdown_timeout) as scope:
            await self._drained.wait()
        if scope.cancelled_caught:
            logger.warning(
                "shutdown timeout after %ss with %d request(s) still in flight",
                self.config.shutdown_timeout,
                self._in_flight,
            )
