from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Sequence, Tuple

from quickroute.core.config import settings
from quickroute.core.tracing import new_run_id, reset_run_id, set_run_id
from quickroute.domain.exceptions import (
    AddressNotFoundError,
    RoutePlanningError,
    StopValidationError,
)
from quickroute.domain.geometry import format_distance, format_duration
from quickroute.domain.models import (
    Coordinate,
    PlanningStage,
    PlanResult,
    RouteLeg,
    Stop,
    TransportMode,
)
from quickroute.domain.optimization import optimal_order, tour_cost
from quickroute.services.base import DirectionsAdapter, GeocodingAdapter
from quickroute.services.directions import directions_service
from quickroute.services.eta_cache import ETACache
from quickroute.services.geocoding import geocoding_service
from quickroute.services.leg_builder import build_route_legs
from quickroute.services.time_matrix import build_time_matrix

logger = logging.getLogger(__name__)


class RoutePlanner:
    """Runs geocoding, matrix building, optimization and leg building.

    The planner holds the user's inputs (origin, intermediate destinations,
    final stop, transport mode) and publishes the outcome of the most recent
    run: ``route_legs``, ``total_distance``, ``total_travel_time`` and
    ``last_error``. Either a complete set of legs is published or none is.
    """

    def __init__(
        self,
        geocoder: Optional[GeocodingAdapter] = None,
        directions: Optional[DirectionsAdapter] = None,
        transport_mode: Optional[TransportMode] = None,
        use_metric_units: Optional[bool] = None,
    ) -> None:
        self.geocoder = geocoder or geocoding_service
        self.directions = directions or directions_service
        self.eta_cache = ETACache(self.directions)

        self.origin: str = ""
        self.intermediate_destinations: List[str] = []
        self.final_stop: str = ""
        self.transport_mode = transport_mode or TransportMode(settings.DEFAULT_TRANSPORT_MODE)
        self.use_metric_units = (
            settings.USE_METRIC_UNITS if use_metric_units is None else use_metric_units
        )

        self.stage = PlanningStage.IDLE
        self.is_planning = False
        self.route_legs: Optional[List[RouteLeg]] = None
        self.total_distance = 0.0
        self.total_travel_time = 0.0
        self.last_error: Optional[str] = None
        self.last_result: Optional[PlanResult] = None

        self._run_generation = 0

    @property
    def total_distance_text(self) -> str:
        return format_distance(self.total_distance, metric=self.use_metric_units)

    @property
    def total_travel_time_text(self) -> str:
        return format_duration(self.total_travel_time)

    def collect_stops(self) -> List[str]:
        """Trimmed, non-blank addresses in entry order: origin, intermediates, final."""

        raw = [self.origin, *self.intermediate_destinations, self.final_stop]
        return [address.strip() for address in raw if address and address.strip()]

    def make_leg_address_pairs(self) -> Optional[List[Tuple[str, str]]]:
        stops = self.collect_stops()
        if len(stops) < 2:
            return None
        return list(zip(stops, stops[1:]))

    async def set_transport_mode(self, mode: TransportMode) -> None:
        if mode == self.transport_mode:
            return
        logger.info("Transport mode changed %s → %s", self.transport_mode.value, mode.value)
        self.transport_mode = mode
        await self.eta_cache.clear()

    def _reset_results(self) -> None:
        self.route_legs = None
        self.total_distance = 0.0
        self.total_travel_time = 0.0
        self.last_result = None

    def _validate(self, addresses: Sequence[str]) -> None:
        if len(addresses) < 2:
            raise StopValidationError("At least an origin and a final stop are required.")

        intermediates = len(addresses) - 2
        if intermediates > settings.MAX_INTERMEDIATE_STOPS:
            raise StopValidationError(
                f"Too many intermediate stops ({intermediates}); "
                f"at most {settings.MAX_INTERMEDIATE_STOPS} are supported."
            )

    async def _geocode_unique(self, addresses: Sequence[str]) -> Dict[str, Coordinate]:
        resolved: Dict[str, Coordinate] = {}
        for address in dict.fromkeys(addresses):
            coordinate = await self.geocoder.geocode(address)
            if coordinate is None:
                raise AddressNotFoundError(address)
            resolved[address] = coordinate
        return resolved

    async def plan_route(self, run_id: Optional[str] = None) -> PlanResult:
        """Plan the fastest route through the current stops.

        Raises:
            StopValidationError: Fewer than two usable stops, or too many
                intermediates. No adapter is called.
            AddressNotFoundError: Any address has no geocoding match.
            ExternalServiceError: A provider call failed, or the matrix is
                incomplete.
            NoRouteFoundError: The provider found no path for one of the legs.
        """

        self._run_generation += 1
        generation = self._run_generation
        token = set_run_id(new_run_id(run_id))

        self.is_planning = True
        self.last_error = None
        self._reset_results()
        self.stage = PlanningStage.IDLE
        mode = self.transport_mode
        started = time.perf_counter()

        try:
            addresses = self.collect_stops()
            self._validate(addresses)
            logger.info(
                "Planning %s route through %s stops (%s intermediate)",
                mode.value,
                len(addresses),
                len(addresses) - 2,
            )

            self._enter(PlanningStage.GEOCODING, generation)
            coordinates = await self._geocode_unique(addresses)
            stops = tuple(Stop(address).resolved(coordinates[address]) for address in addresses)

            self._enter(PlanningStage.MATRIX_BUILDING, generation)
            await self.eta_cache.clear()
            matrix = await build_time_matrix(
                [stop.coordinate for stop in stops], self.eta_cache, mode
            )
            logger.debug(
                "ETA cache: %s hits, %s misses", self.eta_cache.hits, self.eta_cache.misses
            )

            self._enter(PlanningStage.OPTIMIZING, generation)
            tour = optimal_order(matrix)
            predicted = tour_cost(matrix, tour)
            logger.info("Optimal order %s (predicted %.0f s)", tour, predicted)

            self._enter(PlanningStage.LEG_BUILDING, generation)
            legs = await build_route_legs(stops, tour, self.directions, mode)

            result = PlanResult(
                stops=stops,
                order=tuple(tour),
                legs=tuple(legs),
                transport_mode=mode,
                predicted_duration_s=predicted,
            )

            if generation != self._run_generation:
                logger.info("Discarding result of superseded planning run")
                return result

            self.route_legs = list(result.legs)
            self.total_distance = result.total_distance_m
            self.total_travel_time = result.total_duration_s
            self.last_result = result
            self.stage = PlanningStage.SUCCESS
            logger.info(
                "Planned %s legs: %s, %s in %.2fs",
                len(result.legs),
                self.total_distance_text,
                self.total_travel_time_text,
                time.perf_counter() - started,
            )
            return result
        except RoutePlanningError as exc:
            if generation == self._run_generation:
                self._reset_results()
                self.stage = PlanningStage.FAILED
                self.last_error = exc.message
            logger.warning("Route planning failed: %s", exc.message)
            raise
        except Exception as exc:
            if generation == self._run_generation:
                self._reset_results()
                self.stage = PlanningStage.FAILED
                self.last_error = str(exc) or exc.__class__.__name__
            logger.exception("Route planning failed unexpectedly")
            raise
        finally:
            if generation == self._run_generation:
                self.is_planning = False
            reset_run_id(token)

    def _enter(self, stage: PlanningStage, generation: int) -> None:
        if generation == self._run_generation:
            self.stage = stage
        logger.debug("Stage → %s", stage.value)


__all__ = ["RoutePlanner"]
