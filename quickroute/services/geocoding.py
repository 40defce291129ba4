import logging
from typing import Optional

import httpx

from quickroute.domain.exceptions import ExternalServiceError
from quickroute.domain.models import Coordinate
from quickroute.services.twogis_client import TwoGISClient, twogis_client

logger = logging.getLogger(__name__)


class GeocodingService:
    """Address lookup backed by the 2GIS geocoder."""

    def __init__(self, client: Optional[TwoGISClient] = None) -> None:
        self.client = client or twogis_client

    async def geocode(self, address: str) -> Optional[Coordinate]:
        if not address or not address.strip():
            logger.warning("Empty address provided")
            return None

        try:
            coords = await self.client.geocode(address.strip())
        except ExternalServiceError as exc:
            raise ExternalServiceError(
                f"Geocoding service failed for '{address}': {exc.message}",
                status_code=exc.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.error("Geocoding failed for %r: %r", address, exc)
            raise ExternalServiceError(f"Geocoding service failed for '{address}': {exc!r}") from exc

        if coords is None:
            return None
        if not self.validate_coordinates(*coords):
            logger.warning("Geocoded coordinates %s for %r are out of range", coords, address)
            return None
        return Coordinate(lat=coords[0], lon=coords[1])

    def validate_coordinates(self, lat: float, lon: float) -> bool:
        return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


geocoding_service = GeocodingService()


__all__ = ["GeocodingService", "geocoding_service"]
