"""Router — the top-level service.

Routes are registered during setup; the router freezes on its first
request. Usage::

    router = (
        Router()
        .route("/", get(lambda: "Hello, World!"))
        .route("/users/:id", get(show_user).delete(delete_user))
        .nest("/api", api_router)
        .nest_service("/static", static_files)
        .fallback(not_found_page)
        .layer(CompressionLayer())
    )

Unmatched requests resolve in this order:

1. path matched, method did not: the path's method-not-allowed fallback
   if one was registered, else this router's fallback if the user set
   one, else the library ``405`` with ``Allow``;
2. no path matched: this router's fallback (library default ``404``).
   A router mounted with ``nest_service`` that still has the default
   fallback raises ``NoRouteMatched`` instead, so the enclosing router
   answers with its own fallback.
"""

from typing import TYPE_CHECKING

from strata.config import ServeConfig
from strata.errors import ConfigurationError, NoRouteMatched
from strata.http.extensions import ExtensionKey
from strata.http.request import Request
from strata.http.response import Response
from strata.layer import Layer
from strata.routing.error_handler import ERROR_HANDLER, ErrorHandler, default_error_handler
from strata.routing.fallback import Fallback
from strata.routing.method_router import MethodMiss, MethodRouter
from strata.routing.path_router import PathRouter
from strata.routing.route import Route
from strata.service import Handler, Service, service_fn

if TYPE_CHECKING:
    from strata.server.asgi import ASGIApp

ORIGINAL_URI: ExtensionKey[str] = ExtensionKey("OriginalUri")

# Set while a Router is handling the request; inner routers are nested.
_ROUTER_ACTIVE: ExtensionKey[bool] = ExtensionKey("RouterActive")


def _not_found() -> int:
    return 404


def _default_fallback() -> Fallback:
    return Fallback.default(Route(service_fn(_not_found)))


class Router:
    """Path and method router with fallbacks and an error handler.

    Mutable during setup (every builder method returns ``self``), frozen
    once it has served a request.
    """

    __slots__ = ("_error_handler", "_fallback", "_frozen", "_paths")

    def __init__(self) -> None:
        self._paths = PathRouter()
        self._fallback: Fallback = _default_fallback()
        self._error_handler: ErrorHandler | None = None
        self._frozen = False

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = "Cannot modify a Router after it has started serving requests."
            raise RuntimeError(msg)

    # -- Registration --

    def route(self, path: str, method_router: MethodRouter) -> "Router":
        """Dispatch *path* by method, merging with routes already on it."""
        self._check_not_frozen()
        self._paths.route(path, method_router)
        return self

    def route_service(self, path: str, service: Handler | Service) -> "Router":
        """Send every request for exactly *path* to *service*."""
        self._check_not_frozen()
        self._paths.route_service(path, service)
        return self

    def nest(self, path: str, router: "Router") -> "Router":
        """Copy *router*'s routes under the prefix *path*.

        Only routes are copied; the nested router's fallback and error
        handler stay behind. Use ``nest_service`` to keep them.
        """
        self._check_not_frozen()
        self._paths.nest(path, router._paths)
        return self

    def nest_service(self, path: str, service: Handler | Service) -> "Router":
        """Mount *service* at *path*, forwarding with the prefix stripped."""
        self._check_not_frozen()
        self._paths.nest_service(path, service)
        return self

    def merge(self, other: "Router") -> "Router":
        """Take over every route of *other*, and its fallback if it has one."""
        self._check_not_frozen()
        self._paths.merge(other._paths)
        match (self._fallback.is_default, other._fallback.is_default):
            case (True, False):
                self._fallback = other._fallback
            case (False, False):
                msg = "Cannot merge two `Router`s that both have a fallback"
                raise ConfigurationError(msg)
        return self

    def fallback(self, handler: Handler | Service) -> "Router":
        """Answer requests no route matched with *handler*."""
        self._check_not_frozen()
        self._fallback = Fallback(Route(service_fn(handler)))
        return self

    def reset_fallback(self) -> "Router":
        """Go back to the library ``404`` fallback."""
        self._check_not_frozen()
        self._fallback = _default_fallback()
        return self

    def method_not_allowed_fallback(self, handler: Handler | Service) -> "Router":
        """Answer method mismatches with *handler* on every path registered so far."""
        self._check_not_frozen()
        self._paths.method_not_allowed_fallback(handler)
        return self

    def error_handler(self, handler: ErrorHandler) -> "Router":
        """Resolve errors raised below this router with *handler*.

        *handler* must not raise; if it does, the failure is logged and
        answered with an empty ``500``.
        """
        self._check_not_frozen()
        self._error_handler = handler
        return self

    def layer(self, layer: Layer) -> "Router":
        """Wrap every route registered so far, and the fallback, with *layer*.

        Calling ``layer`` again wraps the result, so the last layer added
        is outermost.
        """
        self._check_not_frozen()
        self._paths.layer(layer)
        self._fallback = self._fallback.layer(layer)
        return self

    # -- Introspection --

    @property
    def paths(self) -> PathRouter:
        return self._paths

    # -- Dispatch --

    async def __call__(self, request: Request) -> Response:
        self._frozen = True
        extensions = request.extensions
        nested = _ROUTER_ACTIVE in extensions

        if ORIGINAL_URI not in extensions:
            extensions.insert(ORIGINAL_URI, request.uri)

        previous_handler = extensions.get(ERROR_HANDLER)
        if self._error_handler is not None:
            extensions.insert(ERROR_HANDLER, self._error_handler)
        elif previous_handler is None:
            extensions.insert(ERROR_HANDLER, default_error_handler)
        if not nested:
            extensions.insert(_ROUTER_ACTIVE, True)

        try:
            return await self._dispatch(request, nested=nested)
        finally:
            if previous_handler is None:
                extensions.remove(ERROR_HANDLER)
            else:
                extensions.insert(ERROR_HANDLER, previous_handler)
            if not nested:
                extensions.remove(_ROUTER_ACTIVE)

    async def _dispatch(self, request: Request, *, nested: bool) -> Response:
        try:
            result = await self._paths(request)
        except NoRouteMatched:
            result = None

        match result:
            case Response():
                return result
            case MethodMiss(method_router=method_router):
                if not self._fallback.is_default:
                    return await self._fallback.route(request)
                return await method_router.call_fallback(request)
            case None:
                if nested and self._fallback.is_default:
                    raise NoRouteMatched(request.path)
                return await self._fallback.route(request)
        msg = f"Unexpected dispatch result {result!r}"
        raise TypeError(msg)

    # -- ASGI --

    def into_asgi(self, config: ServeConfig | None = None) -> "ASGIApp":
        """Wrap this router as an ASGI application."""
        from strata.server.asgi import ASGIApp

        return ASGIApp(self, config)

    def __repr__(self) -> str:
        return f"Router(routes={len(self._paths)}, default_fallback={self._fallback.is_default})"
