"""Routing — path and method dispatch with fallbacks.

Patterns are compiled into a trie on first use; matching prefers literal
segments over captures over wildcards, independent of registration
order. Usage::

    from strata.routing import Router, get, post

    router = (
        Router()
        .route("/users", get(list_users).post(create_user))
        .route("/users/:id", get(show_user))
    )
"""

from strata.routing.error_handler import (
    ERROR_HANDLER,
    CatchError,
    CatchErrorLayer,
    ErrorHandler,
    MapToResponseLayer,
    default_error_handler,
)
from strata.routing.method_filter import MethodFilter
from strata.routing.method_router import (
    MethodRouter,
    any,  # noqa: A004
    connect,
    delete,
    get,
    head,
    on,
    options,
    patch,
    post,
    put,
    trace,
)
from strata.routing.path_router import PATH_PARAMS, PathMatch, PathRouter
from strata.routing.route import Route
from strata.routing.router import ORIGINAL_URI, Router
from strata.routing.strip_prefix import StripPrefix, StripPrefixLayer, strip_prefix

__all__ = [
    "ERROR_HANDLER",
    "ORIGINAL_URI",
    "PATH_PARAMS",
    "CatchError",
    "CatchErrorLayer",
    "ErrorHandler",
    "MapToResponseLayer",
    "MethodFilter",
    "MethodRouter",
    "PathMatch",
    "PathRouter",
    "Route",
    "Router",
    "StripPrefix",
    "StripPrefixLayer",
    "any",
    "connect",
    "default_error_handler",
    "delete",
    "get",
    "head",
    "on",
    "options",
    "patch",
    "post",
    "put",
    "strip_prefix",
    "trace",
]
