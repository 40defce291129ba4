import asyncio
import os
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

os.environ.setdefault("TWOGIS_API_KEY", "test-twogis-key")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from quickroute.domain.exceptions import ExternalServiceError
from quickroute.domain.models import Coordinate, RoutePath, TransportMode

INF = float("inf")

# optimal tour is 0 -> 3 -> 1 -> 2 -> 4 with cost 60 + 120 + 180 + 240
FIVE_STOP_MATRIX = [
    [INF, 900.0, 950.0, 60.0, 990.0],
    [900.0, INF, 180.0, 700.0, 800.0],
    [950.0, 850.0, INF, 750.0, 240.0],
    [700.0, 120.0, 800.0, INF, 880.0],
    [990.0, 800.0, 760.0, 870.0, INF],
]


def coordinate_for(index: int) -> Coordinate:
    return Coordinate(lat=56.30 + index * 0.01, lon=44.00 + index * 0.01)


class FakeGeocoder:
    """Maps ``P<i>`` style addresses to fixed coordinates."""

    def __init__(
        self,
        addresses: Optional[Dict[str, Coordinate]] = None,
        failing: Sequence[str] = (),
        gate: Optional[Dict[str, asyncio.Event]] = None,
    ) -> None:
        self.addresses = addresses if addresses is not None else {
            f"P{i}": coordinate_for(i) for i in range(6)
        }
        self.failing = set(failing)
        self.gate = gate or {}
        self.calls: List[str] = []

    async def geocode(self, address: str) -> Optional[Coordinate]:
        self.calls.append(address)
        if address in self.gate:
            await self.gate[address].wait()
        if address in self.failing:
            raise ExternalServiceError(f"Geocoding service failed for '{address}'")
        return self.addresses.get(address)


class FakeDirections:
    """Answers lookups from a fixed matrix indexed by coordinate position."""

    def __init__(
        self,
        matrix: Sequence[Sequence[float]] = FIVE_STOP_MATRIX,
        coordinates: Optional[Sequence[Coordinate]] = None,
        no_route: Sequence[Tuple[int, int]] = (),
        failing_eta: Sequence[Tuple[int, int]] = (),
    ) -> None:
        self.matrix = matrix
        points = coordinates or [coordinate_for(i) for i in range(len(matrix))]
        self.index = {point: idx for idx, point in enumerate(points)}
        self.no_route = set(no_route)
        self.failing_eta = set(failing_eta)
        self.eta_calls: List[Tuple[int, int, TransportMode]] = []
        self.route_calls: List[Tuple[int, int, TransportMode]] = []

    async def estimate_travel_time(
        self, origin: Coordinate, destination: Coordinate, mode: TransportMode
    ) -> float:
        i, j = self.index[origin], self.index[destination]
        self.eta_calls.append((i, j, mode))
        await asyncio.sleep(0)
        if (i, j) in self.failing_eta:
            raise ExternalServiceError("Directions service failed to estimate travel time")
        return self.matrix[i][j]

    async def compute_route(
        self, origin: Coordinate, destination: Coordinate, mode: TransportMode
    ) -> Optional[RoutePath]:
        i, j = self.index[origin], self.index[destination]
        self.route_calls.append((i, j, mode))
        if (i, j) in self.no_route:
            return None
        return RoutePath(
            geometry=(origin, destination),
            distance_m=self.matrix[i][j] * 10,
            duration_s=self.matrix[i][j],
        )


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder()


@pytest.fixture
def directions() -> FakeDirections:
    return FakeDirections()
