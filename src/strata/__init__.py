"""Strata — composable request processing for Python HTTP services.

Services turn requests into responses; layers wrap services; routers
pick the service for each request. Everything in between is a layer.

Basic usage::

    from strata import Router, get, serve
    from strata.middleware import CompressionLayer, CorsLayer

    router = (
        Router()
        .route("/", get(lambda: "Hello, World!"))
        .route("/users/:id", get(show_user))
        .layer(CompressionLayer())
        .layer(CorsLayer.permissive())
    )

    serve(router)
"""

__version__ = "0.1.0"
__all__ = [
    "Body",
    "ConfigurationError",
    "Extensions",
    "ExtensionKey",
    "HTTPError",
    "HeaderMap",
    "Layer",
    "Layers",
    "MethodRouter",
    "Redirect",
    "Request",
    "Response",
    "Route",
    "Router",
    "ServeConfig",
    "Service",
    "ServiceBuilder",
    "StrataError",
    "delete",
    "from_fn",
    "get",
    "layer_fn",
    "patch",
    "post",
    "put",
    "serve",
    "service_fn",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import strata`` fast while providing a clean top-level API.
    """
    if name in ("Request",):
        from strata.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from strata.http import response

        return getattr(response, name)

    if name == "Body":
        from strata.http.body import Body

        return Body

    if name == "HeaderMap":
        from strata.http.headers import HeaderMap

        return HeaderMap

    if name in ("Extensions", "ExtensionKey"):
        from strata.http import extensions

        return getattr(extensions, name)

    if name in ("Service", "service_fn"):
        from strata import service

        return getattr(service, name)

    if name in ("Layer", "Layers", "ServiceBuilder", "from_fn", "layer_fn"):
        from strata import layer

        return getattr(layer, name)

    if name in ("Route", "Router", "MethodRouter", "get", "post", "put", "patch", "delete"):
        from strata import routing

        return getattr(routing, name)

    if name in ("StrataError", "ConfigurationError", "HTTPError"):
        from strata import errors

        return getattr(errors, name)

    if name == "ServeConfig":
        from strata.config import ServeConfig

        return ServeConfig

    if name == "serve":
        from strata.server.serve import serve

        return serve

    msg = f"module 'strata' has no attribute {name!r}"
    raise AttributeError(msg)
