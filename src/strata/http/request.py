"""HTTP request passed down the service stack.

Request metadata is frozen. Layers that need a different path, header
set, or body derive a new request with the ``with_*()`` methods; the
derived request shares the original's ``Extensions`` so metadata
recorded by outer layers stays visible to inner ones.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from strata._internal.asgi import Receive
from strata.http.body import Body, SizeHint
from strata.http.extensions import Extensions
from strata.http.headers import HeaderMap

if TYPE_CHECKING:
    from collections.abc import Iterable


def split_uri(uri: str) -> tuple[str, str]:
    """Split ``/path?query`` into ``("/path", "query")``."""
    path, _, query = uri.partition("?")
    return path or "/", query


@dataclass(frozen=True, slots=True)
class Request:
    """An HTTP request.

    ``body`` is a single-use ``Body`` stream; ``extensions`` is the
    per-request metadata store.
    """

    method: str
    path: str = "/"
    query_string: str = ""
    headers: HeaderMap = field(default_factory=HeaderMap)
    body: Body = field(default_factory=Body.empty, repr=False)
    extensions: Extensions = field(default_factory=Extensions, repr=False, compare=False)
    http_version: str = "1.1"
    scheme: str = "http"
    client: tuple[str, int] | None = None

    # -- Computed properties --

    @property
    def uri(self) -> str:
        """Path plus query string, as sent on the request line."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def path_params(self) -> dict[str, str]:
        """Captures recorded by the path router (empty before routing)."""
        from strata.routing.path_router import PATH_PARAMS

        return self.extensions.get(PATH_PARAMS) or {}

    # -- Derivation --

    def with_uri(self, uri: str) -> Request:
        path, query = split_uri(uri)
        return replace(self, path=path, query_string=query)

    def with_path(self, path: str) -> Request:
        return replace(self, path=path)

    def with_method(self, method: str) -> Request:
        return replace(self, method=method.upper())

    def with_headers(self, headers: HeaderMap) -> Request:
        return replace(self, headers=headers)

    def with_body(self, body: Body) -> Request:
        return replace(self, body=body)

    # -- Factories --

    @classmethod
    def build(
        cls,
        method: str = "GET",
        uri: str = "/",
        *,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
        body: Body | str | bytes | None = None,
    ) -> Request:
        """Convenience constructor for tests and in-process calls."""
        path, query = split_uri(uri)
        return cls(
            method=method.upper(),
            path=path,
            query_string=query,
            headers=HeaderMap(headers),
            body=Body.from_value(body),
        )

    @classmethod
    def from_asgi(cls, scope: Mapping[str, Any], receive: Receive) -> Request:
        """Create a Request from an ASGI HTTP scope and receive callable.

        The body is pulled from ``receive`` lazily, one message per
        chunk requested.
        """
        headers = HeaderMap.from_raw(scope.get("headers", ()))
        client = scope.get("client")
        size_hint = SizeHint.unbounded()
        declared = headers.get("content-length")
        if declared is not None and declared.isdigit():
            size_hint = SizeHint.exact(int(declared))
        return cls(
            method=scope["method"].upper(),
            path=scope["path"],
            query_string=scope.get("query_string", b"").decode("latin-1"),
            headers=headers,
            body=Body(_receive_body(receive), size_hint=size_hint),
            http_version=scope.get("http_version", "1.1"),
            scheme=scope.get("scheme", "http"),
            client=tuple(client) if client else None,
        )


async def _receive_body(receive: Receive) -> AsyncIterator[bytes]:
    """Stream the request body in chunks."""
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        body = message.get("body", b"")
        if body:
            yield body
        if not message.get("more_body", False):
            break
