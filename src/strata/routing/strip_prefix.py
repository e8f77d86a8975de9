"""Prefix stripping for services mounted under a path.

``strip_prefix("/api/users", "/api")`` returns ``"/users"``. Prefix
segments written as captures (``:id``, ``*``) match any path segment,
so a service mounted at ``/tenants/:tenant`` sees ``/tenants/acme/x``
as ``/x``.
"""

from itertools import zip_longest

from strata.http.request import Request
from strata.http.response import Response
from strata.service import Service


def _segments(path: str) -> list[str]:
    if not path.startswith("/"):
        msg = f"path {path!r} does not start with '/'"
        raise ValueError(msg)
    return path.split("/")[1:]


def _is_capture(segment: str) -> bool:
    return segment == "*" or segment.startswith(":")


def strip_prefix(path: str, prefix: str) -> str | None:
    """Remove *prefix* from *path*, or return ``None`` if it does not match.

    Segments are compared pairwise. A literal prefix segment must equal
    the path segment; a capture segment matches anything. Running out of
    prefix first ends the match; running out of path first, or a literal
    mismatch, means no match.
    """
    matched = 0
    for path_segment, prefix_segment in zip_longest(_segments(path), _segments(prefix)):
        matched += 1  # the "/" before the segment
        if path_segment is None:
            return None
        if prefix_segment is None:
            break
        if _is_capture(prefix_segment) or path_segment == prefix_segment:
            matched += len(path_segment)
        elif prefix_segment == "":
            # Prefix ended with "/"
            break
        else:
            return None

    rest = path[matched:]
    return rest if rest.startswith("/") else f"/{rest}"


class StripPrefix:
    """Service forwarding requests to ``inner`` with ``prefix`` removed.

    Requests whose path does not start with the prefix are forwarded
    unchanged. The query string is kept.
    """

    __slots__ = ("inner", "prefix")

    def __init__(self, inner: Service, prefix: str) -> None:
        self.inner = inner
        self.prefix = prefix

    async def __call__(self, request: Request) -> Response:
        stripped = strip_prefix(request.path, self.prefix)
        if stripped is not None:
            request = request.with_path(stripped)
        return await self.inner(request)


class StripPrefixLayer:
    __slots__ = ("prefix",)

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def layer(self, inner: Service) -> Service:
        return StripPrefix(inner, self.prefix)
