from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, field_validator

from quickroute.domain.geometry import format_distance, format_duration
from quickroute.domain.models import PlanResult, TransportMode


class PlanRouteRequest(BaseModel):
    origin: str = Field(..., max_length=255)
    intermediate_destinations: List[str] = Field(default_factory=list)
    final_stop: str = Field("", max_length=255)
    transport_mode: TransportMode = TransportMode.AUTOMOBILE

    @field_validator("intermediate_destinations", mode="before")
    @classmethod
    def _drop_empty(cls, value):
        if not value:
            return []
        return [item for item in value if item and str(item).strip()]


class CoordinatePoint(BaseModel):
    lat: float
    lon: float


class RouteLegResponse(BaseModel):
    order: int
    source_address: str
    destination_address: str
    source: CoordinatePoint
    destination: CoordinatePoint
    distance_m: float
    duration_s: float
    geometry: List[List[float]]


class PlanRouteResponse(BaseModel):
    order: List[int]
    legs: List[RouteLegResponse]
    total_distance_m: float
    total_duration_s: float
    total_distance_text: str
    total_duration_text: str
    predicted_duration_s: float
    transport_mode: TransportMode

    @classmethod
    def from_result(cls, result: PlanResult, *, metric: bool = True) -> "PlanRouteResponse":
        legs = [
            RouteLegResponse(
                order=idx,
                source_address=leg.source.address,
                destination_address=leg.destination.address,
                source=CoordinatePoint(lat=leg.source.coordinate.lat, lon=leg.source.coordinate.lon),
                destination=CoordinatePoint(
                    lat=leg.destination.coordinate.lat, lon=leg.destination.coordinate.lon
                ),
                distance_m=leg.distance_m,
                duration_s=leg.duration_s,
                geometry=[[point.lat, point.lon] for point in leg.geometry],
            )
            for idx, leg in enumerate(result.legs)
        ]
        return cls(
            order=list(result.order),
            legs=legs,
            total_distance_m=result.total_distance_m,
            total_duration_s=result.total_duration_s,
            total_distance_text=format_distance(result.total_distance_m, metric=metric),
            total_duration_text=format_duration(result.total_duration_s),
            predicted_duration_s=result.predicted_duration_s,
            transport_mode=result.transport_mode,
        )
