"""CORS policy value objects.

Each class decides one ``Access-Control-*`` header (or ``Vary``) from
its configuration and the incoming request. Most accept several shapes:

* ``ANY``: the wildcard ``*``;
* a fixed value or a list of values;
* ``MIRROR_REQUEST``: echo the matching preflight request header;
* a predicate ``(origin, request) -> bool``, sync or async.

The ``from_value`` constructors turn those plain shapes into policy
objects, which is what the ``CorsLayer`` setters call.
"""

import enum
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Final

from strata._internal.invoke import invoke
from strata.errors import ConfigurationError
from strata.http.request import Request

type HeaderEntry = tuple[str, str]
type OriginPredicate = Callable[[str, Request], bool | Awaitable[bool]]
type DynamicMaxAge = Callable[[str, Request], int | Awaitable[int]]


class _Marker(enum.Enum):
    ANY = "any"
    MIRROR_REQUEST = "mirror-request"

    def __repr__(self) -> str:
        return self.name


ANY: Final = _Marker.ANY
MIRROR_REQUEST: Final = _Marker.MIRROR_REQUEST

WILDCARD = "*"

PREFLIGHT_REQUEST_HEADERS: Final = (
    "origin",
    "access-control-request-method",
    "access-control-request-headers",
)


def _join(values: Sequence[str]) -> str:
    return ",".join(values)


# -- Access-Control-Allow-Credentials --


@dataclass(frozen=True, slots=True)
class AllowCredentials:
    """``access-control-allow-credentials``; only ever sent as ``true``."""

    allow: bool | OriginPredicate = False

    @classmethod
    def yes(cls) -> "AllowCredentials":
        return cls(True)

    @classmethod
    def no(cls) -> "AllowCredentials":
        return cls(False)

    @classmethod
    def predicate(cls, predicate: OriginPredicate) -> "AllowCredentials":
        return cls(predicate)

    @classmethod
    def from_value(cls, value: "AllowCredentials | bool | OriginPredicate") -> "AllowCredentials":
        if isinstance(value, AllowCredentials):
            return value
        return cls(value)

    @property
    def is_true(self) -> bool:
        return self.allow is True

    async def to_header(self, origin: str | None, request: Request) -> HeaderEntry | None:
        match self.allow:
            case bool() as allow:
                allowed = allow
            case predicate:
                allowed = origin is not None and bool(await invoke(predicate, origin, request))
        return ("access-control-allow-credentials", "true") if allowed else None


# -- Access-Control-Allow-Headers / -Methods / -Expose-Headers --


@dataclass(frozen=True, slots=True)
class AllowHeaders:
    """``access-control-allow-headers``, sent on preflight responses only."""

    value: str | _Marker | None = None

    @classmethod
    def none(cls) -> "AllowHeaders":
        return cls(None)

    @classmethod
    def any(cls) -> "AllowHeaders":
        return cls(WILDCARD)

    @classmethod
    def list(cls, headers: Sequence[str]) -> "AllowHeaders":
        return cls(_join(headers))

    @classmethod
    def mirror_request(cls) -> "AllowHeaders":
        """Echo the preflight's ``access-control-request-headers``."""
        return cls(MIRROR_REQUEST)

    @classmethod
    def from_value(cls, value: "AllowHeaders | Sequence[str] | _Marker | None") -> "AllowHeaders":
        match value:
            case AllowHeaders():
                return value
            case _Marker.ANY:
                return cls.any()
            case _Marker.MIRROR_REQUEST:
                return cls.mirror_request()
            case None:
                return cls.none()
        return cls.list(value)

    @property
    def is_wildcard(self) -> bool:
        return self.value == WILDCARD

    def to_header(self, request: Request) -> HeaderEntry | None:
        if self.value is MIRROR_REQUEST:
            value = request.headers.get("access-control-request-headers")
        else:
            value = self.value
        return ("access-control-allow-headers", value) if value else None


@dataclass(frozen=True, slots=True)
class AllowMethods:
    """``access-control-allow-methods``, sent on preflight responses only."""

    value: str | _Marker | None = None

    @classmethod
    def none(cls) -> "AllowMethods":
        return cls(None)

    @classmethod
    def any(cls) -> "AllowMethods":
        return cls(WILDCARD)

    @classmethod
    def exact(cls, method: str) -> "AllowMethods":
        return cls(method.upper())

    @classmethod
    def list(cls, methods: Sequence[str]) -> "AllowMethods":
        return cls(_join([method.upper() for method in methods]))

    @classmethod
    def mirror_request(cls) -> "AllowMethods":
        """Echo the preflight's ``access-control-request-method``."""
        return cls(MIRROR_REQUEST)

    @classmethod
    def from_value(cls, value: "AllowMethods | str | Sequence[str] | _Marker | None") -> "AllowMethods":
        match value:
            case AllowMethods():
                return value
            case _Marker.ANY:
                return cls.any()
            case _Marker.MIRROR_REQUEST:
                return cls.mirror_request()
            case None:
                return cls.none()
            case str():
                return cls.exact(value)
        return cls.list(value)

    @property
    def is_wildcard(self) -> bool:
        return self.value == WILDCARD

    def to_header(self, request: Request) -> HeaderEntry | None:
        if self.value is MIRROR_REQUEST:
            value = request.headers.get("access-control-request-method")
        else:
            value = self.value
        return ("access-control-allow-methods", value) if value else None


@dataclass(frozen=True, slots=True)
class ExposeHeaders:
    """``access-control-expose-headers``, sent on non-preflight responses."""

    value: str | None = None

    @classmethod
    def none(cls) -> "ExposeHeaders":
        return cls(None)

    @classmethod
    def any(cls) -> "ExposeHeaders":
        return cls(WILDCARD)

    @classmethod
    def list(cls, headers: Sequence[str]) -> "ExposeHeaders":
        return cls(_join(headers))

    @classmethod
    def from_value(cls, value: "ExposeHeaders | Sequence[str] | _Marker | None") -> "ExposeHeaders":
        match value:
            case ExposeHeaders():
                return value
            case _Marker.ANY:
                return cls.any()
            case _Marker.MIRROR_REQUEST:
                msg = "ExposeHeaders cannot mirror the request"
                raise ConfigurationError(msg)
            case None:
                return cls.none()
        return cls.list(value)

    @property
    def is_wildcard(self) -> bool:
        return self.value == WILDCARD

    def to_header(self) -> HeaderEntry | None:
        return ("access-control-expose-headers", self.value) if self.value else None


# -- Access-Control-Allow-Origin --


@dataclass(frozen=True, slots=True)
class AllowOrigin:
    """``access-control-allow-origin``.

    A fixed value (``*`` or one origin) is always sent. The other shapes
    echo the request's ``origin`` when it is allowed and send nothing
    otherwise, including when the request has no ``origin``.
    """

    value: str | tuple[str, ...] | _Marker | OriginPredicate = ()

    @classmethod
    def any(cls) -> "AllowOrigin":
        return cls(WILDCARD)

    @classmethod
    def exact(cls, origin: str) -> "AllowOrigin":
        return cls(origin)

    @classmethod
    def list(cls, origins: Sequence[str]) -> "AllowOrigin":
        if WILDCARD in origins:
            msg = (
                "Wildcard origin (`*`) cannot be passed to `AllowOrigin.list`. "
                "Use `AllowOrigin.any()` instead"
            )
            raise ConfigurationError(msg)
        return cls(tuple(origins))

    @classmethod
    def predicate(cls, predicate: OriginPredicate) -> "AllowOrigin":
        return cls(predicate)

    @classmethod
    def mirror_request(cls) -> "AllowOrigin":
        """Allow whatever origin the request comes from."""
        return cls(MIRROR_REQUEST)

    @classmethod
    def from_value(cls, value: Any) -> "AllowOrigin":
        match value:
            case AllowOrigin():
                return value
            case _Marker.ANY:
                return cls.any()
            case _Marker.MIRROR_REQUEST:
                return cls.mirror_request()
            case str():
                return cls.exact(value)
            case _ if callable(value):
                return cls.predicate(value)
        return cls.list(value)

    @property
    def is_wildcard(self) -> bool:
        return self.value == WILDCARD

    async def to_header(self, origin: str | None, request: Request) -> HeaderEntry | None:
        name = "access-control-allow-origin"
        match self.value:
            case str() as fixed:
                return (name, fixed)
            case _ if origin is None:
                return None
            case _Marker.MIRROR_REQUEST:
                return (name, origin)
            case tuple() as origins:
                return (name, origin) if origin in origins else None
            case predicate:
                allowed = await invoke(predicate, origin, request)
                return (name, origin) if allowed else None


# -- Access-Control-Allow-Private-Network --


@dataclass(frozen=True, slots=True)
class AllowPrivateNetwork:
    """``access-control-allow-private-network``.

    Sent only when the request carries
    ``access-control-request-private-network: true``.
    """

    allow: bool | OriginPredicate = False

    @classmethod
    def yes(cls) -> "AllowPrivateNetwork":
        return cls(True)

    @classmethod
    def no(cls) -> "AllowPrivateNetwork":
        return cls(False)

    @classmethod
    def predicate(cls, predicate: OriginPredicate) -> "AllowPrivateNetwork":
        return cls(predicate)

    @classmethod
    def from_value(cls, value: "AllowPrivateNetwork | bool | OriginPredicate") -> "AllowPrivateNetwork":
        if isinstance(value, AllowPrivateNetwork):
            return value
        return cls(value)

    async def to_header(self, origin: str | None, request: Request) -> HeaderEntry | None:
        if self.allow is False:
            return None
        if request.headers.get("access-control-request-private-network") != "true":
            return None
        if self.allow is not True:
            if origin is None or not await invoke(self.allow, origin, request):
                return None
        return ("access-control-allow-private-network", "true")


# -- Access-Control-Max-Age --


@dataclass(frozen=True, slots=True)
class MaxAge:
    """``access-control-max-age`` in seconds; not sent by default."""

    value: int | DynamicMaxAge | None = None

    @classmethod
    def none(cls) -> "MaxAge":
        return cls(None)

    @classmethod
    def exact(cls, seconds: int) -> "MaxAge":
        return cls(seconds)

    @classmethod
    def dynamic(cls, func: DynamicMaxAge) -> "MaxAge":
        return cls(func)

    @classmethod
    def from_value(cls, value: "MaxAge | int | DynamicMaxAge | None") -> "MaxAge":
        if isinstance(value, MaxAge):
            return value
        return cls(value)

    async def to_header(self, origin: str | None, request: Request) -> HeaderEntry | None:
        match self.value:
            case None:
                return None
            case int() as seconds:
                return ("access-control-max-age", str(seconds))
            case func:
                if origin is None:
                    return None
                seconds = await invoke(func, origin, request)
                return ("access-control-max-age", str(int(seconds)))


# -- Vary --


@dataclass(frozen=True, slots=True)
class Vary:
    """Request headers the CORS response depends on.

    Defaults to ``PREFLIGHT_REQUEST_HEADERS``. Always merged into any
    ``vary`` the inner service set, never replacing it.
    """

    headers: tuple[str, ...] = PREFLIGHT_REQUEST_HEADERS

    @classmethod
    def list(cls, headers: Sequence[str]) -> "Vary":
        return cls(tuple(headers))

    @classmethod
    def from_value(cls, value: "Vary | Sequence[str]") -> "Vary":
        if isinstance(value, Vary):
            return value
        return cls.list(value)

    def to_header(self) -> HeaderEntry | None:
        if not self.headers:
            return None
        return ("vary", ", ".join(self.headers))
