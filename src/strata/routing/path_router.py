"""Path dispatch with trie-based pattern matching.

Patterns are ``/``-separated segments:

* ``users``: literal, matches the same text only;
* ``:id``: capture, matches any one segment and records it as ``id``;
* ``*``: wildcard, last segment only, matches the rest of the path and
  records it as ``*``.

Matching prefers literal over capture over wildcard at every level
(backtracking when a more specific branch dead-ends), so registration
order never changes which pattern wins. Empty segments are ignored:
``/users/`` and ``/users`` are the same pattern.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from strata.errors import ConfigurationError
from strata.http.extensions import ExtensionKey
from strata.http.request import Request
from strata.http.response import Response
from strata.layer import Layer
from strata.routing.method_router import MethodMiss, MethodRouter
from strata.routing.route import Route
from strata.routing.strip_prefix import StripPrefix
from strata.service import Handler, Service, service_fn

type PathParams = dict[str, str]

PATH_PARAMS: ExtensionKey[PathParams] = ExtensionKey("PathParams")

# A path resolves to per-method dispatch or to an opaque mounted service.
type Endpoint = MethodRouter | Route


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route pattern."""

    value: str
    is_capture: bool = False
    is_wildcard: bool = False

    @property
    def name(self) -> str:
        if self.is_wildcard:
            return "*"
        return self.value[1:] if self.is_capture else self.value

    @property
    def shape(self) -> str:
        """Segment identity for conflict checks (capture names ignored)."""
        if self.is_wildcard:
            return "*"
        return ":" if self.is_capture else self.value


def parse_pattern(path: str) -> tuple[PathSegment, ...]:
    """Parse a route pattern into segments.

    Examples::

        "/users"        -> (PathSegment("users"),)
        "/users/:id"    -> (PathSegment("users"), PathSegment(":id", is_capture=True))
        "/files/*"      -> (PathSegment("files"), PathSegment("*", is_wildcard=True))
    """
    if not path.startswith("/"):
        msg = f"Invalid route {path!r}: paths must start with '/'"
        raise ConfigurationError(msg)

    parts = [part for part in path.split("/") if part]
    segments: list[PathSegment] = []
    for i, part in enumerate(parts):
        if part == "*":
            if i != len(parts) - 1:
                msg = f"Invalid route {path!r}: wildcard (*) must be the last segment"
                raise ConfigurationError(msg)
            segments.append(PathSegment(part, is_wildcard=True))
        elif part.startswith(":"):
            if len(part) == 1:
                msg = f"Invalid route {path!r}: captures need a name (e.g. ':id')"
                raise ConfigurationError(msg)
            segments.append(PathSegment(part, is_capture=True))
        else:
            segments.append(PathSegment(part))
    return tuple(segments)


def validate_nest_path(path: str) -> str:
    if not path.startswith("/"):
        msg = f"Invalid nest prefix {path!r}: must start with '/'"
        raise ConfigurationError(msg)
    if len(path) <= 1:
        msg = "Invalid nest prefix '/': nesting at the root is the same as merge()"
        raise ConfigurationError(msg)
    if any(segment == "*" for segment in path.split("/")):
        msg = "Invalid route: nested routes cannot contain wildcards (*)"
        raise ConfigurationError(msg)
    return path


def path_for_nested_route(prefix: str, path: str) -> str:
    """Join a mount *prefix* and a nested route *path*.

    ``("/api", "/")`` -> ``"/api"``, ``("/api", "/x")`` -> ``"/api/x"``,
    ``("/api/", "/x")`` -> ``"/api/x"``.
    """
    if prefix.endswith("/"):
        return prefix + path.lstrip("/")
    if path == "/":
        return prefix
    return prefix + path


class _TrieNode:
    """A node in the pattern trie."""

    __slots__ = ("capture", "children", "pattern", "wildcard")

    def __init__(self) -> None:
        # Literal children: "users" -> node
        self.children: dict[str, _TrieNode] = {}
        # Single capture child shared by every capture name at this level
        self.capture: _TrieNode | None = None
        # Pattern ending here, and pattern ending in a wildcard here
        self.pattern: str | None = None
        self.wildcard: str | None = None


@dataclass(frozen=True, slots=True)
class PathMatch:
    """Result of a successful path match."""

    pattern: str
    params: PathParams


class PathRouter:
    """Maps path patterns to endpoints.

    Usage::

        paths = PathRouter()
        paths.route("/users/:id", get(show_user))
        match = paths.at("/users/42")  # PathMatch("/users/:id", {"id": "42"})
    """

    __slots__ = ("_root", "_routes", "_segments", "_shapes")

    def __init__(self) -> None:
        self._routes: dict[str, Endpoint] = {}
        self._segments: dict[str, tuple[PathSegment, ...]] = {}
        self._shapes: dict[tuple[str, ...], str] = {}
        self._root: _TrieNode | None = None

    # -- Registration --

    def _parse(self, path: str) -> tuple[str, tuple[PathSegment, ...]]:
        """Validate *path* against the registered shapes; returns the canonical pattern."""
        segments = parse_pattern(path)
        pattern = "/" + "/".join(segment.value for segment in segments)
        existing = self._shapes.get(tuple(segment.shape for segment in segments))
        if existing is not None and existing != pattern:
            msg = f"Invalid route {path!r}: conflicts with existing route {existing!r}"
            raise ConfigurationError(msg)
        return pattern, segments

    def _store(self, pattern: str, segments: tuple[PathSegment, ...], endpoint: Endpoint) -> None:
        self._shapes[tuple(segment.shape for segment in segments)] = pattern
        self._segments[pattern] = segments
        self._routes[pattern] = endpoint
        self._root = None

    def route(self, path: str, method_router: MethodRouter) -> None:
        """Register per-method dispatch; merges with an existing router on *path*."""
        pattern, segments = self._parse(path)
        match self._routes.get(pattern):
            case None:
                endpoint = method_router
            case MethodRouter() as existing:
                endpoint = existing.merge_for_path(pattern, method_router)
            case Route():
                msg = f"Invalid route {path!r}: a service is already mounted there"
                raise ConfigurationError(msg)
        self._store(pattern, segments, endpoint)

    def route_service(self, path: str, service: Handler | Service) -> None:
        """Register an opaque service answering every method on *path*."""
        self._route_endpoint(path, Route(service_fn(service)))

    def _route_endpoint(self, path: str, route: Route) -> None:
        pattern, segments = self._parse(path)
        if pattern in self._routes:
            msg = f"Invalid route {path!r}: a route is already registered there"
            raise ConfigurationError(msg)
        self._store(pattern, segments, route)

    def nest(self, path: str, other: "PathRouter") -> None:
        """Copy every route of *other* under the prefix *path*."""
        prefix = validate_nest_path(path)
        for pattern, endpoint in other._routes.items():
            nested_path = path_for_nested_route(prefix, pattern)
            match endpoint:
                case MethodRouter():
                    self.route(nested_path, endpoint)
                case Route():
                    self._route_endpoint(nested_path, Route(StripPrefix(endpoint, prefix)))

    def nest_service(self, path: str, service: Handler | Service) -> None:
        """Mount *service* at *path* and everything below it.

        The service sees request paths with the prefix stripped.
        """
        prefix = validate_nest_path(path).rstrip("/")
        route = Route(StripPrefix(service_fn(service), prefix))
        self._route_endpoint(prefix, route)
        self._route_endpoint(f"{prefix}/*", route)

    def merge(self, other: "PathRouter") -> None:
        for pattern, endpoint in other._routes.items():
            match endpoint:
                case MethodRouter():
                    self.route(pattern, endpoint)
                case Route():
                    self._route_endpoint(pattern, endpoint)

    def layer(self, layer: Layer) -> None:
        """Wrap every endpoint with *layer*."""
        self._routes = {pattern: endpoint.layer(layer) for pattern, endpoint in self._routes.items()}

    def method_not_allowed_fallback(self, handler: Handler) -> None:
        """Install *handler* on every method router still using the default."""
        for pattern, endpoint in self._routes.items():
            if isinstance(endpoint, MethodRouter):
                self._routes[pattern] = endpoint.with_default_fallback(handler)

    # -- Introspection --

    def __iter__(self) -> Iterator[tuple[str, Endpoint]]:
        return iter(self._routes.items())

    def __len__(self) -> int:
        return len(self._routes)

    # -- Matching --

    def _compile(self) -> _TrieNode:
        root = _TrieNode()
        for pattern, segments in self._segments.items():
            node = root
            for segment in segments:
                if segment.is_wildcard:
                    node.wildcard = pattern
                    break
                if segment.is_capture:
                    if node.capture is None:
                        node.capture = _TrieNode()
                    node = node.capture
                else:
                    node = node.children.setdefault(segment.value, _TrieNode())
            else:
                node.pattern = pattern
        self._root = root
        return root

    def at(self, path: str) -> PathMatch | None:
        """Match *path* against the registered patterns."""
        root = self._root or self._compile()
        parts = [part for part in path.split("/") if part]
        found = _match_node(root, parts, 0, [])
        if found is None:
            return None

        pattern, values, rest = found
        names = [segment.name for segment in self._segments[pattern] if segment.is_capture]
        params = dict(zip(names, values, strict=True))
        if rest is not None:
            params["*"] = rest
        return PathMatch(pattern, params)

    async def __call__(self, request: Request) -> Response | MethodMiss | None:
        """Dispatch *request*; ``None`` when no pattern matches the path."""
        found = self.at(request.path)
        if found is None:
            return None

        # The mount's own "*" capture is the path this router is matching.
        outer = request.extensions.get(PATH_PARAMS)
        if outer:
            params = {name: value for name, value in outer.items() if name != "*"}
            params.update(found.params)
        else:
            params = found.params
        request.extensions.insert(PATH_PARAMS, params)

        match self._routes[found.pattern]:
            case MethodRouter() as method_router:
                response = await method_router.dispatch(request)
                return MethodMiss(method_router) if response is None else response
            case Route() as route:
                return await route(request)


def _match_node(
    node: _TrieNode,
    parts: list[str],
    index: int,
    values: list[str],
) -> tuple[str, list[str], str | None] | None:
    """Recursively match path parts: literal, then capture, then wildcard."""
    if index == len(parts):
        if node.pattern is not None:
            return node.pattern, values, None
        if node.wildcard is not None:
            return node.wildcard, values, ""
        return None

    part = parts[index]

    # 1. Literal child (exact match)
    child = node.children.get(part)
    if child is not None:
        result = _match_node(child, parts, index + 1, values)
        if result is not None:
            return result

    # 2. Capture child
    if node.capture is not None:
        result = _match_node(node.capture, parts, index + 1, [*values, part])
        if result is not None:
            return result

    # 3. Wildcard consumes the rest
    if node.wildcard is not None:
        return node.wildcard, values, "/".join(parts[index:])

    return None
