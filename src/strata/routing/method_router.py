"""Per-method dispatch for a single path.

Usage::

    router.route("/users", get(list_users).post(create_user))
    router.route("/users/:id", on(MethodFilter.PUT | MethodFilter.PATCH, update_user))

Registering ``GET`` also answers ``HEAD`` (the route boundary strips the
body). When no endpoint matches the request method, ``dispatch``
returns ``None`` unless a method-not-allowed fallback was registered,
which lets the router decide between its own fallback and a 405.
"""

from dataclasses import dataclass

from strata.errors import ConfigurationError
from strata.http.request import Request
from strata.http.response import Response
from strata.layer import Layer
from strata.routing.fallback import Fallback
from strata.routing.method_filter import DISPATCH_ORDER, MethodFilter
from strata.routing.route import Route
from strata.service import Handler, service_fn

# Methods registered for each filter bit, in the order they join ``Allow``.
_ALLOW_FOR: tuple[tuple[MethodFilter, tuple[str, ...]], ...] = (
    (MethodFilter.GET, ("GET", "HEAD")),
    (MethodFilter.HEAD, ("HEAD",)),
    (MethodFilter.TRACE, ("TRACE",)),
    (MethodFilter.PUT, ("PUT",)),
    (MethodFilter.POST, ("POST",)),
    (MethodFilter.PATCH, ("PATCH",)),
    (MethodFilter.OPTIONS, ("OPTIONS",)),
    (MethodFilter.DELETE, ("DELETE",)),
    (MethodFilter.CONNECT, ("CONNECT",)),
)


def _method_not_allowed() -> int:
    return 405


def _default_fallback() -> Fallback:
    return Fallback.default(Route(service_fn(_method_not_allowed)))


class MethodRouter:
    """Maps HTTP methods to routes for one path pattern.

    The builder methods (``on``, ``get``, ``post``, ...) return ``self``
    for chaining while the router is assembled; ``layer`` and ``merge``
    return new instances.
    """

    __slots__ = ("_allow", "_endpoints", "_fallback")

    def __init__(self) -> None:
        self._endpoints: dict[str, Route] = {}
        self._fallback: Fallback = _default_fallback()
        # None disables the Allow header (see ``any``).
        self._allow: dict[str, None] | None = {}

    # -- Registration --

    def on(self, method_filter: MethodFilter, handler: Handler) -> "MethodRouter":
        """Route every method in *method_filter* to *handler*."""
        route = Route(service_fn(handler))
        for flag, methods in _ALLOW_FOR:
            if not method_filter.contains(flag):
                continue
            self._endpoints[flag.name] = route
            if self._allow is not None:
                self._allow.update(dict.fromkeys(methods))
        return self

    def connect(self, handler: Handler) -> "MethodRouter":
        return self.on(MethodFilter.CONNECT, handler)

    def delete(self, handler: Handler) -> "MethodRouter":
        return self.on(MethodFilter.DELETE, handler)

    def get(self, handler: Handler) -> "MethodRouter":
        return self.on(MethodFilter.GET, handler)

    def head(self, handler: Handler) -> "MethodRouter":
        return self.on(MethodFilter.HEAD, handler)

    def options(self, handler: Handler) -> "MethodRouter":
        return self.on(MethodFilter.OPTIONS, handler)

    def patch(self, handler: Handler) -> "MethodRouter":
        return self.on(MethodFilter.PATCH, handler)

    def post(self, handler: Handler) -> "MethodRouter":
        return self.on(MethodFilter.POST, handler)

    def put(self, handler: Handler) -> "MethodRouter":
        return self.on(MethodFilter.PUT, handler)

    def trace(self, handler: Handler) -> "MethodRouter":
        return self.on(MethodFilter.TRACE, handler)

    def fallback(self, handler: Handler) -> "MethodRouter":
        """Answer unmatched methods on this path with *handler*."""
        self._fallback = Fallback(Route(service_fn(handler)))
        return self

    method_not_allowed = fallback

    def skip_allow_header(self) -> "MethodRouter":
        self._allow = None
        return self

    # -- Introspection --

    @property
    def allow_header(self) -> str | None:
        """``Allow`` value for this path, or ``None`` when disabled."""
        if self._allow is None:
            return None
        return ",".join(self._allow)

    @property
    def has_default_fallback(self) -> bool:
        return self._fallback.is_default

    @property
    def methods(self) -> frozenset[str]:
        return frozenset(self._endpoints)

    # -- Derivation --

    def _copy(self) -> "MethodRouter":
        clone = MethodRouter()
        clone._endpoints = dict(self._endpoints)
        clone._fallback = self._fallback
        clone._allow = None if self._allow is None else dict(self._allow)
        return clone

    def layer(self, layer: Layer) -> "MethodRouter":
        """New router with every endpoint and the fallback wrapped by *layer*."""
        clone = self._copy()
        clone._endpoints = {method: route.layer(layer) for method, route in self._endpoints.items()}
        clone._fallback = self._fallback.layer(layer)
        return clone

    def with_default_fallback(self, handler: Handler) -> "MethodRouter":
        """Replace the fallback only if it is still the library default."""
        if not self._fallback.is_default:
            return self
        clone = self._copy()
        clone._fallback = Fallback(Route(service_fn(handler)))
        return clone

    def merge_for_path(self, path: str, other: "MethodRouter") -> "MethodRouter":
        """Combine two routers registered on the same *path*.

        Raises ``ConfigurationError`` if both handle a method or both
        carry a user fallback.
        """
        merged = self._copy()
        for method, route in other._endpoints.items():
            if method in merged._endpoints:
                msg = f"Overlapping method route. Handler for `{method} {path}` already exists"
                raise ConfigurationError(msg)
            merged._endpoints[method] = route

        match (self._fallback.is_default, other._fallback.is_default):
            case (True, False):
                merged._fallback = other._fallback
            case (False, False):
                msg = "Cannot merge two `MethodRouter`s that both have a fallback"
                raise ConfigurationError(msg)

        if self._allow is None:
            merged._allow = None if other._allow is None else dict(other._allow)
        elif other._allow is not None:
            merged._allow.update(other._allow)  # type: ignore[union-attr]
        return merged

    # -- Dispatch --

    async def dispatch(self, request: Request) -> Response | None:
        """Run the endpoint for the request method.

        Returns ``None`` when no endpoint matches and the fallback is
        still the library default.
        """
        method = MethodFilter.from_method(request.method)
        for accepted, endpoint in DISPATCH_ORDER:
            if method is accepted and endpoint in self._endpoints:
                return await self._endpoints[endpoint](request)
        if self._fallback.is_default:
            return None
        return await self.call_fallback(request)

    async def call_fallback(self, request: Request) -> Response:
        """Run the fallback (default 405) and attach ``Allow``."""
        response = await self._fallback.route(request)
        allow = self.allow_header
        if allow is None:
            return response
        return response.replace_header("allow", allow)

    async def __call__(self, request: Request) -> Response:
        response = await self.dispatch(request)
        if response is None:
            return await self.call_fallback(request)
        return response

    def __repr__(self) -> str:
        methods = ", ".join(sorted(self._endpoints))
        return f"MethodRouter([{methods}])"


@dataclass(frozen=True, slots=True)
class MethodMiss:
    """The path matched but no endpoint handles the request method."""

    method_router: MethodRouter


def on(method_filter: MethodFilter, handler: Handler) -> MethodRouter:
    return MethodRouter().on(method_filter, handler)


def any(handler: Handler) -> MethodRouter:  # noqa: A001
    """Route every method to *handler*, without an ``Allow`` header."""
    return MethodRouter().fallback(handler).skip_allow_header()


def connect(handler: Handler) -> MethodRouter:
    return on(MethodFilter.CONNECT, handler)


def delete(handler: Handler) -> MethodRouter:
    return on(MethodFilter.DELETE, handler)


def get(handler: Handler) -> MethodRouter:
    return on(MethodFilter.GET, handler)


def head(handler: Handler) -> MethodRouter:
    return on(MethodFilter.HEAD, handler)


def options(handler: Handler) -> MethodRouter:
    return on(MethodFilter.OPTIONS, handler)


def patch(handler: Handler) -> MethodRouter:
    return on(MethodFilter.PATCH, handler)


def post(handler: Handler) -> MethodRouter:
    return on(MethodFilter.POST, handler)


def put(handler: Handler) -> MethodRouter:
    return on(MethodFilter.PUT, handler)


def trace(handler: Handler) -> MethodRouter:
    return on(MethodFilter.TRACE, handler)
