"""Strata exception hierarchy.

Shared across routing, layers, and the server adapter so every module
raises and catches the same types.

Two kinds of failure reach a route's error boundary:

* response-convertible errors (anything with ``to_response()``, such as
  ``HTTPError``) render themselves;
* everything else is opaque and becomes an empty ``500``.
"""

from strata.http.response import Response


class StrataError(Exception):
    """Base for all strata-specific errors."""


class ConfigurationError(StrataError):
    """Raised when a router or layer is assembled with invalid settings.

    Always raised synchronously while building the service tree, never
    while serving a request.
    """


class NoRouteMatched(StrataError):
    """A nested router found no route and has no fallback of its own.

    Internal signal: the enclosing router catches it and answers with
    its own fallback. Route error boundaries let it through untouched.
    """


class HTTPError(StrataError):
    """An error that maps directly to an HTTP status code.

    Raise from handlers or layers; the route boundary converts it via
    ``to_response()`` without logging unless the status is 5xx.

    Instances stay mutable: the interpreter and ``contextlib`` assign
    ``__traceback__`` and ``__context__`` on raised exceptions.
    """

    def __init__(
        self,
        status: int,
        detail: str = "",
        headers: tuple[tuple[str, str], ...] = (),
    ) -> None:
        super().__init__(status, detail)
        self.status = status
        self.detail = detail
        self.headers = headers

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, detail={self.detail!r})"

    def to_response(self) -> Response:
        """Render as a plain-text response carrying ``headers``."""
        response = Response.text(self.detail) if self.detail else Response.empty()
        response = response.with_status(self.status)
        for name, value in self.headers:
            response = response.replace_header(name, value)
        return response


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request path."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — path exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: tuple[str, ...], detail: str = "") -> None:
        super().__init__(
            status=405,
            detail=detail,
            headers=(("allow", ",".join(allowed)),),
        )


class UnsupportedMediaType(HTTPError):  # noqa: N818
    """415 — the request body uses a content-encoding we cannot decode."""

    def __init__(self, accept_encoding: str, detail: str = "") -> None:
        super().__init__(
            status=415,
            detail=detail,
            headers=(("accept-encoding", accept_encoding),),
        )


class ContentTooLarge(HTTPError):  # noqa: N818
    """413 — the request body exceeds the configured limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(
            status=413,
            detail=f"Request body is larger than {limit} bytes",
        )
