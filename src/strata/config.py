"""Server configuration.

ServeConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass

from strata.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class ServeConfig:
    """Startup configuration for ``serve()``. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = ServeConfig(host="0.0.0.0", port=3000, trust_proxy=True)
    """

    # Listener
    host: str = "127.0.0.1"
    port: int = 8000
    workers: int = 1

    # Honor X-Forwarded-For when resolving the client address
    trust_proxy: bool = False

    # Graceful shutdown: seconds to let in-flight requests drain (None = wait forever)
    shutdown_timeout: float | None = 10.0

    # Connection handling (passed through to the server)
    keep_alive_timeout: float = 5.0
    request_timeout: float = 30.0

    # Logging
    log_level: str = "info"

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 65535:
            msg = f"port must be between 0 and 65535, got {self.port}"
            raise ConfigurationError(msg)
        if self.workers < 1:
            msg = f"workers must be at least 1, got {self.workers}"
            raise ConfigurationError(msg)
        for name in ("shutdown_timeout", "keep_alive_timeout", "request_timeout"):
            value = getattr(self, name)
            if value is not None and value < 0:
                msg = f"{name} must not be negative, got {value}"
                raise ConfigurationError(msg)
