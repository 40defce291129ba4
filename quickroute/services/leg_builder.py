from __future__ import annotations

import logging
from typing import List, Sequence

from quickroute.domain.exceptions import NoRouteFoundError, StopValidationError
from quickroute.domain.models import RouteLeg, Stop, TransportMode
from quickroute.services.base import DirectionsAdapter

logger = logging.getLogger(__name__)


async def build_route_legs(
    stops: Sequence[Stop],
    tour: Sequence[int],
    directions: DirectionsAdapter,
    mode: TransportMode,
) -> List[RouteLeg]:
    """Resolve every consecutive pair of ``tour`` into a full-path leg.

    Requests are issued one after another in tour order. The first pair with no
    route raises :class:`NoRouteFoundError`; provider failures propagate as-is.
    No partial list is ever returned.
    """

    legs: List[RouteLeg] = []
    for position, (src_idx, dst_idx) in enumerate(zip(tour, tour[1:])):
        source = stops[src_idx]
        destination = stops[dst_idx]
        if source.coordinate is None or destination.coordinate is None:
            unresolved = source if source.coordinate is None else destination
            raise StopValidationError(f"Stop '{unresolved.address}' has no coordinate.")

        path = await directions.compute_route(source.coordinate, destination.coordinate, mode)
        if path is None:
            logger.warning(
                "No %s route for leg %s: %s -> %s",
                mode.value,
                position,
                source.address,
                destination.address,
            )
            raise NoRouteFoundError(source.address, destination.address)

        legs.append(
            RouteLeg(
                source=source,
                destination=destination,
                geometry=path.geometry,
                distance_m=path.distance_m,
                duration_s=path.duration_s,
            )
        )
        logger.debug(
            "Leg %s: %s -> %s (%.0f m, %.0f s)",
            position,
            source.address,
            destination.address,
            path.distance_m,
            path.duration_s,
        )

    return legs


__all__ = ["build_route_legs"]
