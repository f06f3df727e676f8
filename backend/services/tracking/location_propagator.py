"""
Driver location propagation.

Pushes a driver's new position into every live booking they're attached to
and refreshes the pickup ETA while they're still on the way. Each booking
is updated on its own; one failure never blocks the others.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from django.utils import timezone

from bookings.models import Booking, BookingStatus
from common.utils.geo import calculate_distance, has_valid_coordinates
from services.matching.geo_matcher import estimate_eta_minutes

logger = logging.getLogger(__name__)

# Stored coordinates carry 6 decimal places
COORDINATE_PRECISION = 6


@dataclass
class PropagationResult:
    driver_id: int
    updated: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
    skipped: bool = False


def _normalize(point) -> Optional[Tuple[float, float]]:
    if point is None:
        return None
    lat, lng = point
    if lat is None or lng is None:
        return None
    return round(float(lat), COORDINATE_PRECISION), round(float(lng), COORDINATE_PRECISION)


def location_changed(previous, current) -> bool:
    """Compare two (lat, lng) pairs at stored precision."""
    return _normalize(previous) != _normalize(current)


def _update_booking(booking: Booking, latitude: float, longitude: float, now) -> bool:
    values = {
        "driver_current_latitude": round(latitude, COORDINATE_PRECISION),
        "driver_current_longitude": round(longitude, COORDINATE_PRECISION),
        "driver_location_updated_at": now,
        "updated_at": now,
    }
    if (
        booking.status == BookingStatus.DRIVER_ASSIGNED
        and has_valid_coordinates(booking.pickup_latitude, booking.pickup_longitude)
    ):
        distance = calculate_distance(latitude, longitude, booking.pickup_latitude, booking.pickup_longitude)
        values["driver_eta_minutes"] = estimate_eta_minutes(distance)

    # Only while the booking is still live and still this driver's
    return bool(
        Booking.objects.filter(
            pk=booking.pk,
            driver_id=booking.driver_id,
            status__in=BookingStatus.ACTIVE,
        ).update(**values)
    )


def propagate_driver_location(
    driver_id: int,
    latitude: float,
    longitude: float,
    previous_latitude: float = None,
    previous_longitude: float = None,
) -> PropagationResult:
    """
    Write a driver's location (and pickup ETA) into their active bookings.

    Args:
        driver_id: Driver who moved
        latitude: New latitude
        longitude: New longitude
        previous_latitude: Last known latitude, if known
        previous_longitude: Last known longitude, if known

    Returns:
        PropagationResult listing updated and failed booking IDs
    """
    result = PropagationResult(driver_id=driver_id)

    if not has_valid_coordinates(latitude, longitude):
        logger.debug("Ignoring invalid location for driver %s", driver_id)
        result.skipped = True
        return result

    if not location_changed((previous_latitude, previous_longitude), (latitude, longitude)):
        result.skipped = True
        return result

    latitude, longitude = float(latitude), float(longitude)
    now = timezone.now()
    bookings = Booking.objects.filter(
        driver_id=driver_id, status__in=BookingStatus.ACTIVE
    ).only("pk", "driver_id", "status", "pickup_latitude", "pickup_longitude")

    for booking in bookings:
        try:
            if _update_booking(booking, latitude, longitude, now):
                result.updated.append(booking.pk)
        except Exception:
            logger.exception("Failed to push location of driver %s to booking %s", driver_id, booking.pk)
            result.failed.append(booking.pk)

    if result.updated or result.failed:
        logger.debug(
            "Driver %s location pushed to %d booking(s), %d failed",
            driver_id, len(result.updated), len(result.failed),
        )
    return result
