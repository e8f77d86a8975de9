"""Error isolation — turning exceptions into responses.

An error handler is a total function ``(error) -> Response``. The active
handler travels with the request in its ``Extensions`` under
``ERROR_HANDLER``: the router installs it on entry, and every route
boundary below (including inside nested routers) resolves errors with
whatever handler the request carries.
"""

import logging
from collections.abc import Callable

from strata.errors import NoRouteMatched
from strata.http.extensions import ExtensionKey
from strata.http.request import Request
from strata.http.response import Response, ToResponse
from strata.service import Service

logger = logging.getLogger("strata.errors")

type ErrorHandler = Callable[[BaseException], Response]

ERROR_HANDLER: ExtensionKey[ErrorHandler] = ExtensionKey("ErrorHandler")


def default_error_handler(error: BaseException) -> Response:
    """Render response-convertible errors, map everything else to 500.

    Response-convertible errors are logged only when they render a
    server error; opaque errors are always logged.
    """
    if isinstance(error, ToResponse):
        response = error.to_response()
        if response.status >= 500:
            logger.error("failed to serve request", exc_info=error)
        return response

    logger.error("failed to serve request", exc_info=error)
    return Response.empty(500)


def current_error_handler(request: Request) -> ErrorHandler:
    """The handler installed on *request*, or the default one."""
    return request.extensions.get(ERROR_HANDLER) or default_error_handler


def handle_error(request: Request, error: Exception) -> Response:
    """Run the request's error handler, keeping the boundary total.

    A handler that raises is itself treated as an opaque failure.
    """
    handler = current_error_handler(request)
    try:
        return handler(error)
    except Exception as handler_error:
        logger.exception("error handler raised while handling %r", error)
        if handler is default_error_handler:
            return Response.empty(500)
        return default_error_handler(handler_error)


class CatchError:
    """Service boundary converting any exception from ``inner``."""

    __slots__ = ("handler", "inner")

    def __init__(self, inner: Service, handler: ErrorHandler | None = None) -> None:
        self.inner = inner
        self.handler = handler

    async def __call__(self, request: Request) -> Response:
        try:
            return await self.inner(request)
        except NoRouteMatched:
            raise
        except Exception as exc:
            if self.handler is not None:
                try:
                    return self.handler(exc)
                except Exception as handler_error:
                    return default_error_handler(handler_error)
            return handle_error(request, exc)


class CatchErrorLayer:
    """Layer form of ``CatchError``.

    With no explicit handler the request's active handler is used.
    """

    __slots__ = ("handler",)

    def __init__(self, handler: ErrorHandler | None = None) -> None:
        self.handler = handler

    def layer(self, inner: Service) -> Service:
        return CatchError(inner, self.handler)


class MapToResponseLayer:
    """Boundary that only renders response-convertible errors.

    Opaque errors propagate to the next boundary up.
    """

    __slots__ = ()

    def layer(self, inner: Service) -> Service:
        async def map_to_response(request: Request) -> Response:
            try:
                return await inner(request)
            except Exception as exc:
                if isinstance(exc, ToResponse):
                    return exc.to_response()
                raise

        return map_to_response
