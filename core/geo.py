#!/usr/bin/env python3
"""
Great-circle distance helpers for lead eligibility and distance scoring.
"""

import math

EARTH_RADIUS_KM = 6371.0

# Jobs up to 1.5x a tradie's declared service radius are still considered.
ELIGIBILITY_RADIUS_FACTOR = 1.5


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in kilometres between two coordinates.

    Pure and symmetric in its two coordinate pairs. Inputs are not
    validated; NaN or out-of-range coordinates give undefined results.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def is_within_eligibility(
    distance: float,
    service_radius_km: float,
    factor: float = ELIGIBILITY_RADIUS_FACTOR
) -> bool:
    """True when a job at `distance` km is inside the eligibility window (inclusive)."""
    return distance <= service_radius_km * factor
