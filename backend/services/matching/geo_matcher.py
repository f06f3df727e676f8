"""
Nearest-driver selection.

Pure functions: no database access, never raise. Absence of a match is a
normal outcome reported as None.
"""

import math
from typing import Iterable, Optional, TypeVar

from django.conf import settings

from common.utils.geo import calculate_distance, has_valid_coordinates

T = TypeVar("T")


def find_nearest(pickup_lat, pickup_lng, candidates: Iterable[T]) -> Optional[T]:
    """
    Pick the candidate closest to the pickup point.

    Candidates must expose ``current_latitude``, ``current_longitude`` and
    ``pk``. Candidates without valid coordinates are skipped. Equal
    distances are broken by the smallest ``pk`` so results are reproducible.

    Args:
        pickup_lat: Pickup latitude
        pickup_lng: Pickup longitude
        candidates: Driver-like objects

    Returns:
        The nearest candidate, or None if no candidate has a usable location
    """
    if not has_valid_coordinates(pickup_lat, pickup_lng):
        return None

    best = None
    best_key = None
    for candidate in candidates:
        lat = getattr(candidate, "current_latitude", None)
        lng = getattr(candidate, "current_longitude", None)
        if not has_valid_coordinates(lat, lng):
            continue

        key = (calculate_distance(pickup_lat, pickup_lng, lat, lng), candidate.pk)
        if best_key is None or key < best_key:
            best, best_key = candidate, key

    return best


def estimate_eta_minutes(distance_meters: float, speed_kmh: float = None) -> int:
    """
    Minutes to cover a distance at the assumed urban speed, never less than 1.

    Args:
        distance_meters: Straight-line distance
        speed_kmh: Override for DRIVER_ASSUMED_SPEED_KMH

    Returns:
        Whole minutes, rounded half up
    """
    speed_kmh = speed_kmh or settings.DRIVER_ASSUMED_SPEED_KMH
    minutes = distance_meters / 1000 / speed_kmh * 60
    return max(1, int(math.floor(minutes + 0.5)))
