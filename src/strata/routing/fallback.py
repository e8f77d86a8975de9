"""Fallback — the route answering when nothing else matched."""

from dataclasses import dataclass

from strata.layer import Layer
from strata.routing.route import Route


@dataclass(frozen=True, slots=True)
class Fallback:
    """A fallback route and whether the library supplied it.

    Layering keeps ``is_default`` so a router can still tell a layered
    library default apart from a handler the user registered.
    """

    route: Route
    is_default: bool = False

    @classmethod
    def default(cls, route: Route) -> "Fallback":
        return cls(route, is_default=True)

    def layer(self, layer: Layer) -> "Fallback":
        return Fallback(self.route.layer(layer), self.is_default)
