"""
Distance, ETA and radius checks using the Haversine formula.

Points are ``[longitude, latitude]`` pairs in degrees, the same order the
API and the stored location documents use.

Assumption
----------
We use great-circle (Haversine) distance instead of a real routing engine
so pricing and ETAs stay deterministic and need no external API key.

Complexity: O(1) per call.
"""

from __future__ import annotations

import math
from typing import Sequence

from .errors import InvalidInput

EARTH_RADIUS_KM = 6_371.0
DEFAULT_SPEED_KMH = 30.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, a)))


def compute_distance(
    point_a: Sequence[float], point_b: Sequence[float]
) -> float:
    """Great-circle distance in km between two ``[lng, lat]`` pairs."""
    lng1, lat1 = point_a
    lng2, lat2 = point_b
    return haversine_km(lat1, lng1, lat2, lng2)


def compute_eta(distance_km: float, speed_kmh: float = DEFAULT_SPEED_KMH) -> int:
    """Minutes needed to cover *distance_km* at *speed_kmh*, rounded up."""
    if speed_kmh <= 0:
        raise InvalidInput("Speed must be positive")
    if distance_km < 0 or not math.isfinite(distance_km):
        raise InvalidInput("Distance must be a non-negative number")
    return math.ceil(distance_km / speed_kmh * 60)


def is_within_radius(
    point_a: Sequence[float], point_b: Sequence[float], radius_km: float
) -> bool:
    return compute_distance(point_a, point_b) <= radius_km
