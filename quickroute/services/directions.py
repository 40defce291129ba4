import logging
from typing import Optional

import httpx

from quickroute.domain.exceptions import ExternalServiceError
from quickroute.domain.geometry import haversine_km
from quickroute.domain.models import Coordinate, RoutePath, TransportMode
from quickroute.services.twogis_client import TwoGISClient, twogis_client

logger = logging.getLogger(__name__)

PROVIDER_ERRORS = (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError)


class DirectionsService:
    """Travel-time estimates and full routes from the 2GIS routing APIs."""

    def __init__(self, client: Optional[TwoGISClient] = None) -> None:
        self.client = client or twogis_client

    async def estimate_travel_time(
        self, origin: Coordinate, destination: Coordinate, mode: TransportMode
    ) -> float:
        try:
            return await self.client.get_travel_time(
                origin.as_tuple(), destination.as_tuple(), mode.twogis_transport
            )
        except ExternalServiceError as exc:
            raise ExternalServiceError(
                f"Travel-time lookup {origin.as_tuple()} -> {destination.as_tuple()} failed: {exc.message}",
                status_code=exc.status_code,
            ) from exc
        except PROVIDER_ERRORS as exc:
            logger.error("ETA lookup failed %s -> %s: %r", origin, destination, exc)
            raise ExternalServiceError(
                f"Travel-time lookup {origin.as_tuple()} -> {destination.as_tuple()} failed: {exc!r}"
            ) from exc

    async def compute_route(
        self, origin: Coordinate, destination: Coordinate, mode: TransportMode
    ) -> Optional[RoutePath]:
        try:
            route = await self.client.get_route(
                origin.as_tuple(), destination.as_tuple(), mode.twogis_transport
            )
            if not route or route.get("total_duration") is None:
                return None

            points = self.client.parse_geometry(route)
            distance_m = route.get("total_distance")
            duration_s = float(route["total_duration"])
            if distance_m:
                distance_m = float(distance_m)
        except ExternalServiceError as exc:
            raise ExternalServiceError(
                f"Route request {origin.as_tuple()} -> {destination.as_tuple()} failed: {exc.message}",
                status_code=exc.status_code,
            ) from exc
        except PROVIDER_ERRORS as exc:
            logger.error("Route request failed %s -> %s: %r", origin, destination, exc)
            raise ExternalServiceError(
                f"Route request {origin.as_tuple()} -> {destination.as_tuple()} failed: {exc!r}"
            ) from exc

        if len(points) < 2:
            points = [origin.as_tuple(), destination.as_tuple()]
        if not distance_m:
            distance_m = haversine_km(origin.lat, origin.lon, destination.lat, destination.lon) * 1000

        return RoutePath(
            geometry=tuple(Coordinate(lat=lat, lon=lon) for lat, lon in points),
            distance_m=distance_m,
            duration_s=duration_s,
        )


directions_service = DirectionsService()


__all__ = ["DirectionsService", "directions_service"]
