"""Run a strata service on pounce.

Usage::

    from strata.server.serve import serve

    serve(router, ServeConfig(host="0.0.0.0", port=3000))
"""

import logging
from typing import TYPE_CHECKING

from strata.config import ServeConfig
from strata.server.asgi import ASGIApp

if TYPE_CHECKING:
    from strata.service import Handler, Service


def serve(service: "Handler | Service", config: ServeConfig | None = None) -> None:
    """Serve *service* until the process is asked to stop.

    Blocks. Shutdown drains in-flight requests for up to
    ``config.shutdown_timeout`` seconds.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = config or ServeConfig()
    logging.getLogger("strata").setLevel(config.log_level.upper())

    server_config = ServerConfig(
        host=config.host,
        port=config.port,
        workers=config.workers,
        keep_alive_timeout=config.keep_alive_timeout,
        request_timeout=config.request_timeout,
        log_level=config.log_level,
    )
    server = Server(server_config, ASGIApp(service, config))
    server.run()
