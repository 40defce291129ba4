from __future__ import annotations

from typing import Optional, Protocol

from quickroute.domain.models import Coordinate, RoutePath, TransportMode


class GeocodingAdapter(Protocol):
    """Resolves a free-text address to a coordinate.

    Returns ``None`` when the provider has no match and raises
    :class:`~quickroute.domain.exceptions.ExternalServiceError` on transport or
    provider failure.
    """

    async def geocode(self, address: str) -> Optional[Coordinate]:
        ...


class DirectionsAdapter(Protocol):
    """Travel-time and full-path lookups between two coordinates."""

    async def estimate_travel_time(
        self, origin: Coordinate, destination: Coordinate, mode: TransportMode
    ) -> float:
        ...

    async def compute_route(
        self, origin: Coordinate, destination: Coordinate, mode: TransportMode
    ) -> Optional[RoutePath]:
        ...


__all__ = ["DirectionsAdapter", "GeocodingAdapter"]
