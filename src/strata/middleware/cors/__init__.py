"""Cross-Origin Resource Sharing.

``CorsLayer`` holds the policy; the value objects in ``policy`` decide
one response header each.
"""

from strata.middleware.cors.layer import Cors, CorsLayer
from strata.middleware.cors.policy import (
    ANY,
    MIRROR_REQUEST,
    PREFLIGHT_REQUEST_HEADERS,
    AllowCredentials,
    AllowHeaders,
    AllowMethods,
    AllowOrigin,
    AllowPrivateNetwork,
    ExposeHeaders,
    MaxAge,
    Vary,
)

__all__ = [
    "ANY",
    "MIRROR_REQUEST",
    "PREFLIGHT_REQUEST_HEADERS",
    "AllowCredentials",
    "AllowHeaders",
    "AllowMethods",
    "AllowOrigin",
    "AllowPrivateNetwork",
    "Cors",
    "CorsLayer",
    "ExposeHeaders",
    "MaxAge",
    "Vary",
]
