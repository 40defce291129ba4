from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class TransportMode(str, Enum):
    AUTOMOBILE = "automobile"
    WALKING = "walking"

    @property
    def twogis_transport(self) -> str:
        """Provider transport constant used by the 2GIS routing APIs."""

        if self is TransportMode.WALKING:
            return "walking"
        return "driving"


class PlanningStage(str, Enum):
    IDLE = "idle"
    GEOCODING = "geocoding"
    MATRIX_BUILDING = "matrix_building"
    OPTIMIZING = "optimizing"
    LEG_BUILDING = "leg_building"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lon)


@dataclass(frozen=True)
class Stop:
    """A trimmed address and, once geocoded, its coordinate."""

    address: str
    coordinate: Optional[Coordinate] = None

    def resolved(self, coordinate: Coordinate) -> "Stop":
        return Stop(address=self.address, coordinate=coordinate)


@dataclass(frozen=True)
class RoutePath:
    """Full-path answer from the directions provider."""

    geometry: Tuple[Coordinate, ...]
    distance_m: float
    duration_s: float


@dataclass(frozen=True)
class RouteLeg:
    source: Stop
    destination: Stop
    geometry: Tuple[Coordinate, ...]
    distance_m: float
    duration_s: float

    @property
    def address_pair(self) -> Tuple[str, str]:
        return (self.source.address, self.destination.address)


@dataclass(frozen=True)
class PlanResult:
    stops: Tuple[Stop, ...]
    order: Tuple[int, ...]
    legs: Tuple[RouteLeg, ...]
    transport_mode: TransportMode
    predicted_duration_s: float
    total_distance_m: float = field(init=False)
    total_duration_s: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "total_distance_m", sum(leg.distance_m for leg in self.legs))
        object.__setattr__(self, "total_duration_s", sum(leg.duration_s for leg in self.legs))

    @property
    def ordered_addresses(self) -> Tuple[str, ...]:
        return tuple(self.stops[idx].address for idx in self.order)
