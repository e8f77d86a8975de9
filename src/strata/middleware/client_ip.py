"""Client IP detection.

Records the client's address under ``CLIENT_IP``. Without
``trust_proxy`` that is the peer address of the connection. With it,
the first valid address in ``X-Forwarded-For`` wins, falling back to the
peer address when the header is missing or holds no valid address.

Only enable ``trust_proxy`` behind a proxy that overwrites the header;
otherwise clients can claim any address.
"""

import ipaddress

from strata.http.extensions import ExtensionKey
from strata.http.request import Request
from strata.http.response import Response
from strata.service import Service

CLIENT_IP: ExtensionKey[str] = ExtensionKey("ClientIp")


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def forwarded_for(request: Request) -> str | None:
    """First valid address listed in ``X-Forwarded-For``."""
    for header in request.headers.get_list("x-forwarded-for"):
        for candidate in header.split(","):
            candidate = candidate.strip()
            if _is_ip(candidate):
                return candidate
    return None


class SetClientIp:
    __slots__ = ("inner", "trust_proxy")

    def __init__(self, inner: Service, trust_proxy: bool) -> None:
        self.inner = inner
        self.trust_proxy = trust_proxy

    async def __call__(self, request: Request) -> Response:
        address = forwarded_for(request) if self.trust_proxy else None
        if address is None and request.client is not None:
            address = request.client[0]
        if address is not None:
            request.extensions.insert(CLIENT_IP, address)
        return await self.inner(request)


class SetClientIpLayer:
    __slots__ = ("trust_proxy",)

    def __init__(self, *, trust_proxy: bool = False) -> None:
        self.trust_proxy = trust_proxy

    def layer(self, inner: Service) -> Service:
        return SetClientIp(inner, self.trust_proxy)
