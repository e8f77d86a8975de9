"""Middleware — layers that wrap a service.

Every middleware here is a layer: configure it once, then apply it with
``router.layer(...)``, ``route.layer(...)`` or ``ServiceBuilder``.

Built-in middleware:
    CompressionLayer -- Response compression negotiated from Accept-Encoding
    DecompressionLayer -- Request body decoding by Content-Encoding
    CorsLayer -- Cross-Origin Resource Sharing with preflight handling
    SetRequestIdLayer / PropagateRequestIdLayer -- Request IDs
    RequestBodyLimitLayer -- Request body size cap (413)
    SetClientIpLayer -- Client address, optionally from X-Forwarded-For
    SetRequestHeaderLayer / SetResponseHeaderLayer -- Static or computed headers
    SetSensitiveHeadersLayer -- Keep header values such as credentials out of logs
    SetStatusLayer -- Force a response status
    TraceLayer -- Request logging with latency
"""

from strata.middleware.client_ip import CLIENT_IP, SetClientIpLayer
from strata.middleware.codecs import CompressionLevel
from strata.middleware.compression import (
    DEFAULT_PREDICATE,
    CompressionLayer,
    NotForContentType,
    SizeAbove,
)
from strata.middleware.cors import ANY, MIRROR_REQUEST, CorsLayer
from strata.middleware.decompression import DecompressionLayer
from strata.middleware.limit import RequestBodyLimitLayer
from strata.middleware.request_id import (
    REQUEST_ID,
    PropagateRequestIdLayer,
    SetRequestIdLayer,
)
from strata.middleware.sensitive_headers import (
    SetSensitiveHeadersLayer,
    SetSensitiveRequestHeadersLayer,
    SetSensitiveResponseHeadersLayer,
)
from strata.middleware.set_header import SetRequestHeaderLayer, SetResponseHeaderLayer
from strata.middleware.set_status import SetStatusLayer
from strata.middleware.trace import TraceLayer

__all__ = [
    "ANY",
    "CLIENT_IP",
    "DEFAULT_PREDICATE",
    "MIRROR_REQUEST",
    "REQUEST_ID",
    "CompressionLayer",
    "CompressionLevel",
    "CorsLayer",
    "DecompressionLayer",
    "NotForContentType",
    "PropagateRequestIdLayer",
    "RequestBodyLimitLayer",
    "SetClientIpLayer",
    "SetRequestHeaderLayer",
    "SetRequestIdLayer",
    "SetResponseHeaderLayer",
    "SetSensitiveHeadersLayer",
    "SetSensitiveRequestHeadersLayer",
    "SetSensitiveResponseHeadersLayer",
    "SetStatusLayer",
    "SizeAbove",
    "TraceLayer",
]
