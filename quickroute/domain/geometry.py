from __future__ import annotations

import math

METERS_PER_MILE = 1609.344
FEET_PER_METER = 3.28084


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    radius = 6371.0
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return radius * c


def format_distance(distance_m: float, *, metric: bool = True) -> str:
    """Human-readable distance in the preferred unit system."""

    if metric:
        if distance_m < 1000:
            return f"{int(round(distance_m))} m"
        return f"{distance_m / 1000:.1f} km"

    miles = distance_m / METERS_PER_MILE
    if miles < 0.1:
        return f"{int(round(distance_m * FEET_PER_METER))} ft"
    return f"{miles:.1f} mi"


def format_duration(duration_s: float) -> str:
    total_minutes = int(round(duration_s / 60))
    hours, minutes = divmod(total_minutes, 60)
    if hours:
        return f"{hours} h {minutes:02d} min"
    return f"{minutes} min"
