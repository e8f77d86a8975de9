"""Responses, redirects, and handler return-value conversion.

Each transformation returns a new Response with its own header map, so
a response handed to an outer layer is never edited behind its back.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncIterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, runtime_checkable

from strata.http.body import Body
from strata.http.extensions import Extensions
from strata.http.headers import HeaderMap


@runtime_checkable
class ToResponse(Protocol):
    """Anything that can render itself as a ``Response``.

    Errors implementing this are response-convertible: a route's error
    boundary uses the rendered response instead of a bare 500.
    """

    def to_response(self) -> Response: ...


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body (or use ``Response.text`` / ``Response.json``),
    then chain ``.with_*()`` calls to set status and headers. Each call
    returns a new ``Response``.
    """

    status: int = 200
    headers: HeaderMap = field(default_factory=HeaderMap)
    body: Body = field(default_factory=Body.empty, repr=False)
    extensions: Extensions = field(default_factory=Extensions, repr=False, compare=False)

    # -- Constructors --

    @classmethod
    def empty(cls, status: int = 200) -> Response:
        return cls(status=status)

    @classmethod
    def text(cls, text: str, status: int = 200) -> Response:
        return cls(
            status=status,
            headers=HeaderMap({"content-type": "text/plain; charset=utf-8"}),
            body=Body.from_value(text),
        )

    @classmethod
    def html(cls, html: str, status: int = 200) -> Response:
        return cls(
            status=status,
            headers=HeaderMap({"content-type": "text/html; charset=utf-8"}),
            body=Body.from_value(html),
        )

    @classmethod
    def json(cls, value: Any, status: int = 200) -> Response:
        payload = json_module.dumps(value, separators=(",", ":"))
        return cls(
            status=status,
            headers=HeaderMap({"content-type": "application/json"}),
            body=Body.from_value(payload),
        )

    @classmethod
    def stream(
        cls,
        chunks: AsyncIterable[bytes | str],
        *,
        status: int = 200,
        content_type: str = "application/octet-stream",
    ) -> Response:
        """A response whose body is produced chunk by chunk."""
        return cls(
            status=status,
            headers=HeaderMap({"content-type": content_type}),
            body=Body.stream(chunks),
        )

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header value."""
        headers = self.headers.copy()
        headers.append(name, value)
        return replace(self, headers=headers)

    def replace_header(self, name: str, value: str) -> Response:
        """Return a new Response where *name* has exactly one value."""
        headers = self.headers.copy()
        headers.insert(name, value)
        return replace(self, headers=headers)

    def with_headers(self, headers: Mapping[str, str] | HeaderMap) -> Response:
        """Return a new Response with additional headers appended."""
        merged = self.headers.copy()
        merged.extend(headers.items())
        return replace(self, headers=merged)

    def without_header(self, name: str) -> Response:
        """Return a new Response with every value of *name* removed."""
        headers = self.headers.copy()
        headers.remove(name)
        return replace(self, headers=headers)

    def with_body(self, body: Body) -> Response:
        """Return a new Response with a different body stream."""
        return replace(self, body=body)

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")


@dataclass(frozen=True, slots=True)
class Redirect:
    """Response that redirects the client to another location.

    Usage::

        router.route("/old", get(lambda: Redirect.permanent("/new")))
    """

    url: str
    status: int = 303

    @classmethod
    def to(cls, url: str) -> Redirect:
        """``303 See Other``: the client follows up with a GET."""
        return cls(url, 303)

    @classmethod
    def temporary(cls, url: str) -> Redirect:
        """``307 Temporary Redirect``: method and body are preserved."""
        return cls(url, 307)

    @classmethod
    def permanent(cls, url: str) -> Redirect:
        """``308 Permanent Redirect``: method and body are preserved."""
        return cls(url, 308)

    def to_response(self) -> Response:
        return Response.empty(self.status).replace_header("location", self.url)


def into_response(value: Any) -> Response:
    """Convert a handler's return value to a Response.

    Dispatch order:

    1. ``Response``              -> pass through
    2. ``ToResponse``            -> ``value.to_response()``
    3. ``Body``                  -> 200 with the body's content-type hint
    4. ``str``                   -> 200, text/plain
    5. ``bytes``                 -> 200, application/octet-stream
    6. ``dict`` / ``list``       -> 200, application/json
    7. ``int``                   -> empty response with that status
    8. ``None``                  -> empty 200
    9. ``(value, int)``          -> convert value, override status
    10. ``(value, int, headers)`` -> convert value, override status + headers
    """
    match value:
        case Response():
            return value
        case ToResponse():
            return value.to_response()
        case Body():
            response = Response(body=value)
            if value.content_type:
                response = response.replace_header("content-type", value.content_type)
            return response
        case bool():
            msg = "Cannot convert bool to a Response"
            raise TypeError(msg)
        case str():
            return Response.text(value)
        case bytes() | bytearray():
            return Response(
                headers=HeaderMap({"content-type": "application/octet-stream"}),
                body=Body.from_value(value),
            )
        case dict() | list():
            return Response.json(value)
        case int():
            return Response.empty(value)
        case None:
            return Response.empty()
        case (inner, int() as status):
            return into_response(inner).with_status(status)
        case (inner, int() as status, headers):
            return into_response(inner).with_status(status).with_headers(headers)
    msg = (
        f"Cannot convert {type(value).__name__} to a Response. "
        "Return a str, bytes, dict, list, int, None, Response, or (value, status)."
    )
    raise TypeError(msg)
