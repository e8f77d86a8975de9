"""CORS layer.

Usage::

    router.layer(
        CorsLayer()
        .allow_origin(["https://example.com"])
        .allow_methods(["GET", "POST"])
        .allow_headers(["content-type", "authorization"])
        .max_age(600)
    )

    router.layer(CorsLayer.permissive())

Every ``OPTIONS`` request is treated as a preflight and answered with an
empty ``200`` carrying the preflight headers; the inner service never
sees it. Other requests run the inner service and the allow-origin
decision concurrently, then add the CORS headers to the response.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any

import anyio

from strata.errors import ConfigurationError
from strata.http.headers import HeaderMap
from strata.http.request import Request
from strata.http.response import Response
from strata.middleware.cors.policy import (
    AllowCredentials,
    AllowHeaders,
    AllowMethods,
    AllowOrigin,
    AllowPrivateNetwork,
    DynamicMaxAge,
    ExposeHeaders,
    HeaderEntry,
    MaxAge,
    OriginPredicate,
    Vary,
)
from strata.service import Service


def _add(headers: HeaderMap, entry: HeaderEntry | None) -> None:
    if entry is not None:
        headers.insert(*entry)


class Cors:
    """Service adding CORS headers around ``inner``."""

    __slots__ = ("inner", "policy")

    def __init__(self, inner: Service, policy: "CorsLayer") -> None:
        self.inner = inner
        self.policy = policy

    async def __call__(self, request: Request) -> Response:
        policy = self.policy
        origin = request.headers.get("origin")

        headers = HeaderMap()
        _add(headers, await policy.credentials.to_header(origin, request))
        _add(headers, await policy.private_network.to_header(origin, request))
        _add(headers, policy.vary_headers.to_header())

        if request.method == "OPTIONS":
            _add(headers, policy.methods.to_header(request))
            _add(headers, policy.headers.to_header(request))
            _add(headers, await policy.age.to_header(origin, request))
            _add(headers, await policy.origin.to_header(origin, request))
            return Response(headers=headers)

        _add(headers, policy.expose.to_header())

        response, allow_origin = await self._call_with_origin(request, origin)
        _add(headers, allow_origin)

        merged = response.headers.copy()
        for vary in headers.remove("vary"):
            merged.append("vary", vary)
        for name, value in headers.items():
            merged.insert(name, value)
        return replace(response, headers=merged)

    async def _call_with_origin(
        self, request: Request, origin: str | None
    ) -> tuple[Response, HeaderEntry | None]:
        results: dict[str, Any] = {}

        async def _respond() -> None:
            results["response"] = await self.inner(request)

        async def _allow_origin() -> None:
            results["origin"] = await self.policy.origin.to_header(origin, request)

        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(_respond)
                tg.start_soon(_allow_origin)
        except BaseExceptionGroup as group:
            if len(group.exceptions) == 1:
                raise group.exceptions[0] from None
            raise
        return results["response"], results["origin"]


@dataclass(frozen=True, slots=True)
class CorsLayer:
    """Declarative CORS policy; every setter returns a new layer.

    The defaults allow nothing: no origin, method, or header is granted
    and no max-age is sent. Only ``vary`` has a non-empty default.
    """

    credentials: AllowCredentials = field(default_factory=AllowCredentials)
    headers: AllowHeaders = field(default_factory=AllowHeaders)
    methods: AllowMethods = field(default_factory=AllowMethods)
    origin: AllowOrigin = field(default_factory=AllowOrigin)
    private_network: AllowPrivateNetwork = field(default_factory=AllowPrivateNetwork)
    expose: ExposeHeaders = field(default_factory=ExposeHeaders)
    age: MaxAge = field(default_factory=MaxAge)
    vary_headers: Vary = field(default_factory=Vary)

    @classmethod
    def permissive(cls) -> "CorsLayer":
        """Any origin, method, and request header; every header exposed."""
        return cls(
            headers=AllowHeaders.any(),
            methods=AllowMethods.any(),
            origin=AllowOrigin.any(),
            expose=ExposeHeaders.any(),
        )

    @classmethod
    def very_permissive(cls) -> "CorsLayer":
        """Credentials allowed, with origin, method and headers mirrored from the request."""
        return cls(
            credentials=AllowCredentials.yes(),
            headers=AllowHeaders.mirror_request(),
            methods=AllowMethods.mirror_request(),
            origin=AllowOrigin.mirror_request(),
        )

    # -- Setters --

    def allow_credentials(self, value: AllowCredentials | bool | OriginPredicate) -> "CorsLayer":
        return replace(self, credentials=AllowCredentials.from_value(value))

    def allow_headers(self, value: AllowHeaders | Sequence[str] | Any) -> "CorsLayer":
        """Set ``access-control-allow-headers``; pass ``ANY`` for ``*``."""
        return replace(self, headers=AllowHeaders.from_value(value))

    def allow_methods(self, value: AllowMethods | str | Sequence[str] | Any) -> "CorsLayer":
        """Set ``access-control-allow-methods``; pass ``ANY`` for ``*``."""
        return replace(self, methods=AllowMethods.from_value(value))

    def allow_origin(self, value: Any) -> "CorsLayer":
        """Set ``access-control-allow-origin``.

        Accepts one origin, a list, ``ANY``, ``MIRROR_REQUEST``, or a
        predicate ``(origin, request) -> bool`` (sync or async).
        """
        return replace(self, origin=AllowOrigin.from_value(value))

    def allow_private_network(self, value: AllowPrivateNetwork | bool | OriginPredicate) -> "CorsLayer":
        return replace(self, private_network=AllowPrivateNetwork.from_value(value))

    def expose_headers(self, value: ExposeHeaders | Sequence[str] | Any) -> "CorsLayer":
        return replace(self, expose=ExposeHeaders.from_value(value))

    def max_age(self, value: MaxAge | int | DynamicMaxAge | None) -> "CorsLayer":
        return replace(self, age=MaxAge.from_value(value))

    def vary(self, value: Vary | Sequence[str]) -> "CorsLayer":
        """Replace the default ``vary`` list."""
        return replace(self, vary_headers=Vary.from_value(value))

    # -- Layer --

    def validate(self) -> None:
        """Raise ``ConfigurationError`` if credentials are combined with a wildcard."""
        if not self.credentials.is_true:
            return
        for header, wildcard in (
            ("access-control-allow-headers", self.headers.is_wildcard),
            ("access-control-allow-methods", self.methods.is_wildcard),
            ("access-control-allow-origin", self.origin.is_wildcard),
            ("access-control-expose-headers", self.expose.is_wildcard),
        ):
            if wildcard:
                msg = (
                    "Invalid CORS configuration: Cannot combine "
                    f"`access-control-allow-credentials: true` with `{header}: *`"
                )
                raise ConfigurationError(msg)

    def layer(self, inner: Service) -> Service:
        self.validate()
        return Cors(inner, self)
