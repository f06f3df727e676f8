"""
Driver assignment for new bookings.

Handles:
1. Gate on operator dispatch policy
2. Pick the nearest eligible driver
3. Atomically assign the booking and create a time-bound RideOffer
4. After commit: schedule offer expiry and notify driver + passenger
5. Periodic re-dispatch of bookings still waiting

The booking row is the coordination point. The commit re-reads it under
lock and only proceeds while it is still pending_assignment, so duplicate
deliveries of the same booking event can never produce two offers.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from functools import partial
from typing import Optional, Dict, Any, Tuple

from django.conf import settings
from django.db import transaction
from django.db.models import Exists, OuterRef
from django.utils import timezone

from bookings.models import Booking, BookingStatus, RideOffer
from common.utils.geo import calculate_distance, has_valid_coordinates
from drivers.models import Driver
from services.ride_management.exceptions import (
    DriverNotAvailableError,
    RideNotAvailableError,
    RideNotFoundError,
)
from .dispatch_policy import may_auto_assign
from .geo_matcher import find_nearest, estimate_eta_minutes

logger = logging.getLogger(__name__)


@dataclass
class AssignmentResult:
    """Outcome of one assignment attempt. Not assigning is not an error."""
    assigned: bool
    booking_id: int
    driver_id: Optional[int] = None
    offer_id: Optional[int] = None
    reason: str = ""


def _float_or_none(value):
    return float(value) if value is not None else None


def build_offer_details(booking: Booking) -> Dict[str, Any]:
    """Denormalized trip summary shown in the driver's offer dialog."""
    has_dropoff = booking.dropoff_latitude is not None and booking.dropoff_longitude is not None
    return {
        "bookingCode": booking.display_code,
        "pickupLocation": booking.pickup_address,
        "pickupCoords": {
            "lat": _float_or_none(booking.pickup_latitude),
            "lng": _float_or_none(booking.pickup_longitude),
        },
        "dropoffLocation": booking.dropoff_address or None,
        "dropoffCoords": {
            "lat": float(booking.dropoff_latitude),
            "lng": float(booking.dropoff_longitude),
        } if has_dropoff else None,
        "stops": booking.stops or [],
        "fareEstimate": _float_or_none(booking.fare_estimate),
        "passengerCount": booking.passenger_count,
        "passengerId": booking.passenger_id,
        "passengerName": booking.passenger_name,
        "passengerPhone": booking.passenger_phone,
        "notes": booking.driver_notes,
        "paymentMethod": booking.payment_method,
        "isPriorityPickup": booking.is_priority_pickup,
        "priorityFeeAmount": _float_or_none(booking.priority_fee_amount),
        "distanceMiles": _float_or_none(booking.distance_miles),
        "requiredOperatorId": booking.originating_operator_code or None,
        "accountJobPin": booking.account_job_pin or None,
    }


def _busy_driver_subquery(exclude_booking_id=None):
    busy = Booking.objects.filter(driver=OuterRef("pk"), status__in=BookingStatus.ACTIVE)
    if exclude_booking_id is not None:
        busy = busy.exclude(pk=exclude_booking_id)
    return Exists(busy)


def eligible_drivers(operator_code: str, booking: Booking):
    """
    Drivers that may receive an automatic offer for this booking.

    Active, online, not paused, with a location, not already on a trip, and
    not previously offered this same booking.
    """
    previously_offered = RideOffer.objects.filter(booking=booking).values("driver_id")
    return (
        Driver.objects.filter(
            status="Active",
            operator_code=operator_code,
            availability="online",
            is_paused=False,
            current_latitude__isnull=False,
            current_longitude__isnull=False,
        )
        .exclude(_busy_driver_subquery(exclude_booking_id=booking.pk))
        .exclude(pk__in=previously_offered)
        .order_by("pk")
    )


def _commit_assignment(booking_id: int, driver_id: int, dispatch_method: str) -> Optional[RideOffer]:
    """
    Assign the booking and create its offer in one transaction.

    Returns:
        The new RideOffer, or None when the booking or driver is no longer
        in the expected state (nothing is written in that case)
    """
    with transaction.atomic():
        booking = (
            Booking.objects.select_for_update()
            .filter(pk=booking_id, status=BookingStatus.PENDING_ASSIGNMENT)
            .first()
        )
        if booking is None:
            return None
        if booking.offers.filter(status=RideOffer.STATUS_PENDING).exists():
            return None

        driver = Driver.objects.select_for_update().filter(pk=driver_id, status="Active").first()
        if driver is None:
            return None
        if Driver.objects.filter(pk=driver.pk).filter(_busy_driver_subquery(booking.pk)).exists():
            return None

        now = timezone.now()
        eta = None
        if driver.has_location and has_valid_coordinates(booking.pickup_latitude, booking.pickup_longitude):
            eta = estimate_eta_minutes(calculate_distance(
                driver.current_latitude, driver.current_longitude,
                booking.pickup_latitude, booking.pickup_longitude,
            ))

        updated = Booking.objects.filter(
            pk=booking.pk, status=BookingStatus.PENDING_ASSIGNMENT
        ).update(
            driver=driver,
            driver_name=driver.name,
            driver_vehicle_details=driver.vehicle_details,
            status=BookingStatus.DRIVER_ASSIGNED,
            dispatch_method=dispatch_method,
            driver_current_latitude=driver.current_latitude,
            driver_current_longitude=driver.current_longitude,
            driver_location_updated_at=now if driver.has_location else None,
            driver_eta_minutes=eta,
            last_match_failed_at=None,
            updated_at=now,
        )
        if not updated:
            return None

        offer = RideOffer.objects.create(
            booking=booking,
            driver=driver,
            offer_details=build_offer_details(booking),
            status=RideOffer.STATUS_PENDING,
            created_at=now,
            expires_at=now + timedelta(seconds=settings.RIDE_OFFER_EXPIRY_SECONDS),
        )

        transaction.on_commit(partial(_after_offer_created, offer.pk))

    return offer


def _after_offer_created(offer_id: int):
    """Schedule expiry and tell both sides. Failures here never undo the assignment."""
    from bookings.tasks import expire_ride_offer_task
    from realtime.notifications import notify_driver_event, notify_passenger_event
    from services.offers import offer_countdown

    offer = RideOffer.objects.select_related("booking").filter(pk=offer_id).first()
    if offer is None:
        return

    try:
        expire_ride_offer_task.apply_async((offer.pk,), countdown=settings.RIDE_OFFER_EXPIRY_SECONDS)
    except Exception:
        # The periodic stale-offer pass still expires it
        logger.exception("Could not schedule expiry for offer %s", offer.pk)

    countdown = offer_countdown(offer)
    notify_driver_event(
        "ride_offer",
        offer.booking,
        offer.driver_id,
        extra={
            "offer_id": offer.pk,
            "offer_details": offer.offer_details,
            "expires_at": offer.expires_at.isoformat(),
            "seconds_remaining": countdown.seconds_remaining,
        },
    )
    notify_passenger_event(
        "driver_assigned",
        offer.booking,
        "A driver has been assigned to your booking.",
    )


def _record_failed_match(booking_id: int):
    # Feeds the operator wait estimate; only while still pending
    Booking.objects.filter(
        pk=booking_id, status=BookingStatus.PENDING_ASSIGNMENT
    ).update(last_match_failed_at=timezone.now())


def auto_assign_booking(booking_id: int) -> AssignmentResult:
    """
    Handle a booking waiting for a driver: find the nearest eligible driver
    and offer them the booking.

    Safe to call any number of times for the same booking; every guard that
    fails leaves the booking untouched in pending_assignment.

    Args:
        booking_id: Booking to assign

    Returns:
        AssignmentResult describing what happened
    """
    stage = "load_booking"
    try:
        booking = Booking.objects.filter(pk=booking_id).first()
        if booking is None:
            return AssignmentResult(False, booking_id, reason="not_found")
        if booking.status != BookingStatus.PENDING_ASSIGNMENT:
            logger.debug("Booking %s is %s, skipping assignment", booking_id, booking.status)
            return AssignmentResult(False, booking_id, reason="not_pending")

        operator_code = booking.operator_code
        if not operator_code:
            logger.debug("Booking %s has no operator, leaving for manual dispatch", booking_id)
            return AssignmentResult(False, booking_id, reason="no_operator")

        stage = "policy"
        if not may_auto_assign(operator_code, exclude_booking_id=booking.pk):
            return AssignmentResult(False, booking_id, reason="policy")

        if not has_valid_coordinates(booking.pickup_latitude, booking.pickup_longitude):
            logger.info("Booking %s has invalid pickup coordinates", booking_id)
            return AssignmentResult(False, booking_id, reason="invalid_pickup")

        stage = "match"
        nearest = find_nearest(
            booking.pickup_latitude,
            booking.pickup_longitude,
            eligible_drivers(operator_code, booking),
        )
        if nearest is None:
            logger.info("No eligible driver for booking %s (operator %s)", booking_id, operator_code)
            _record_failed_match(booking.pk)
            return AssignmentResult(False, booking_id, reason="no_driver")

        stage = "commit"
        offer = _commit_assignment(booking.pk, nearest.pk, "auto_system")
        if offer is None:
            logger.info("Booking %s changed before assignment to driver %s, aborting", booking_id, nearest.pk)
            _record_failed_match(booking.pk)
            return AssignmentResult(False, booking_id, driver_id=nearest.pk, reason="conflict")

    except Exception:
        logger.exception("Auto assignment failed for booking %s at stage %s", booking_id, stage)
        return AssignmentResult(False, booking_id, reason="error")

    logger.info(
        "Booking %s assigned to driver %s, offer %s expires %s",
        booking_id, nearest.pk, offer.pk, offer.expires_at.isoformat(),
    )
    return AssignmentResult(True, booking_id, driver_id=nearest.pk, offer_id=offer.pk)


def redispatch_pending_bookings(now=None) -> Tuple[int, int]:
    """
    Periodic pass re-running auto assignment for bookings still waiting.

    Picks up bookings held back by the dispatch policy or left without a
    driver, oldest first, so they get matched once the gate reopens or a
    driver comes online. Bookings already past their timeout are left to
    the timeout sweep.

    Returns:
        (attempted, assigned)
    """
    now = now or timezone.now()
    booking_ids = list(
        Booking.objects.filter(status=BookingStatus.PENDING_ASSIGNMENT, timeout_at__gt=now)
        .order_by("created_at", "pk")
        .values_list("pk", flat=True)
    )

    assigned = 0
    for booking_id in booking_ids:
        if auto_assign_booking(booking_id).assigned:
            assigned += 1

    if booking_ids:
        logger.info("Re-dispatch pass: %d pending booking(s), %d assigned", len(booking_ids), assigned)
    return len(booking_ids), assigned


def manual_assign_booking(booking_id: int, driver_id: int, operator_code: str = None) -> AssignmentResult:
    """
    Operator hands a pending booking to a chosen driver.

    Args:
        booking_id: Booking to assign
        driver_id: Driver chosen by the operator
        operator_code: Acting operator; must own both booking and driver when given

    Returns:
        AssignmentResult for the created offer

    Raises:
        RideNotFoundError: Booking doesn't exist (or belongs to another operator)
        RideNotAvailableError: Booking is no longer waiting for a driver
        DriverNotAvailableError: Driver can't take the booking
    """
    booking = Booking.objects.filter(pk=booking_id).first()
    if booking is None or (operator_code and booking.operator_code != operator_code):
        raise RideNotFoundError("Booking not found")
    if booking.status != BookingStatus.PENDING_ASSIGNMENT:
        raise RideNotAvailableError(f"Booking is already {booking.status}")

    driver = Driver.objects.filter(pk=driver_id).first()
    if driver is None or driver.operator_code != booking.operator_code:
        raise DriverNotAvailableError("Driver not found for this operator")
    if driver.status != "Active" or driver.availability != "online":
        raise DriverNotAvailableError("Driver is not active and online")

    offer = _commit_assignment(booking.pk, driver.pk, "manual_operator")
    if offer is None:
        raise RideNotAvailableError("Booking or driver changed, please retry")

    logger.info("Booking %s manually assigned to driver %s", booking_id, driver_id)
    return AssignmentResult(True, booking.pk, driver_id=driver.pk, offer_id=offer.pk)
