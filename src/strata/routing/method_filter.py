"""HTTP method filters for per-method dispatch."""

import enum


class MethodFilter(enum.Flag):
    """A set of HTTP methods, combinable with ``|``::

        MethodFilter.GET | MethodFilter.POST
    """

    CONNECT = enum.auto()
    DELETE = enum.auto()
    GET = enum.auto()
    HEAD = enum.auto()
    OPTIONS = enum.auto()
    PATCH = enum.auto()
    POST = enum.auto()
    PUT = enum.auto()
    TRACE = enum.auto()

    def contains(self, other: "MethodFilter") -> bool:
        """True when every method in *other* is also in this filter."""
        return (self & other) == other

    @classmethod
    def from_method(cls, method: str) -> "MethodFilter | None":
        """Filter for a single method name, or ``None`` for extension methods."""
        try:
            return cls[method.upper()]
        except KeyError:
            return None


# Order in which a MethodRouter tries its endpoints. HEAD falls back to
# the GET endpoint when no explicit HEAD handler exists.
DISPATCH_ORDER: tuple[tuple[MethodFilter, str], ...] = (
    (MethodFilter.HEAD, "HEAD"),
    (MethodFilter.HEAD, "GET"),
    (MethodFilter.GET, "GET"),
    (MethodFilter.POST, "POST"),
    (MethodFilter.OPTIONS, "OPTIONS"),
    (MethodFilter.PATCH, "PATCH"),
    (MethodFilter.PUT, "PUT"),
    (MethodFilter.DELETE, "DELETE"),
    (MethodFilter.TRACE, "TRACE"),
    (MethodFilter.CONNECT, "CONNECT"),
)
