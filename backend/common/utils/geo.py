"""
Geographic utility functions.

This module provides the core geospatial calculations used by dispatch:
great-circle distance and coordinate validation.
"""

import math
from decimal import Decimal
from math import radians, cos, sin, asin, sqrt

EARTH_RADIUS_METERS = 6371000


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points in meters using Haversine formula.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in meters
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Clamp rounding noise so asin never sees a value above 1
    c = 2 * asin(sqrt(min(1.0, a)))
    return c * EARTH_RADIUS_METERS


def _is_number(value) -> bool:
    # bool is an int subclass; a True latitude is never a real coordinate
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    return False


def has_valid_coordinates(lat, lng) -> bool:
    """
    Check that a latitude/longitude pair is a usable point.

    Args:
        lat: Latitude candidate (int, float or Decimal)
        lng: Longitude candidate (int, float or Decimal)

    Returns:
        True if both values are finite numbers inside the WGS84 ranges
    """
    if not (_is_number(lat) and _is_number(lng)):
        return False
    return -90 <= float(lat) <= 90 and -180 <= float(lng) <= 180
