"""
Core booking lifecycle operations.

This module contains the business logic for booking creation and the
driver/passenger actions that move a booking through its trip states.
Every transition is a conditional update on the expected pre-state, so
concurrent handlers (a cancellation racing a timeout sweep, a duplicate
tap) can never overwrite each other.
"""

import logging
from typing import Optional
from dataclasses import dataclass
from datetime import timedelta
from functools import partial

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from bookings.models import Booking, BookingStatus, RideOffer
from common.counters import next_booking_code
from operators.models import OperatorDispatchSettings
from .exceptions import (
    RideNotFoundError,
    RideNotAvailableError,
    ActiveRideExistsError,
    OperatorNotFoundError,
)

logger = logging.getLogger(__name__)


@dataclass
class RideResult:
    """Result object for booking operations."""
    success: bool
    booking: Optional[Booking] = None
    message: str = ""


# ===================== Passenger Operations =====================

def check_active_booking(passenger) -> Optional[Booking]:
    """Check if passenger has a booking that is still live."""
    return Booking.objects.filter(
        passenger=passenger,
        status__in=(BookingStatus.PENDING_ASSIGNMENT, *BookingStatus.ACTIVE),
    ).first()


@transaction.atomic
def create_booking(
    passenger,
    operator_code: str,
    pickup_latitude,
    pickup_longitude,
    pickup_address: str = "",
    **details,
) -> RideResult:
    """
    Create a new booking waiting for a driver.

    Assignment is not done here: saving the booking fires the
    booking-created handler once this transaction commits.

    Args:
        passenger: User model instance (passenger)
        operator_code: Operator the booking is placed with
        pickup_latitude: Pickup location latitude
        pickup_longitude: Pickup location longitude
        pickup_address: Human-readable pickup address
        **details: Remaining Booking fields (dropoff, stops, fare_estimate, ...)

    Returns:
        RideResult with the created booking

    Raises:
        ActiveRideExistsError: If passenger already has a live booking
        OperatorNotFoundError: If the operator is unknown
    """
    if check_active_booking(passenger):
        raise ActiveRideExistsError("You already have an active booking")

    if not OperatorDispatchSettings.objects.filter(operator_code=operator_code).exists():
        raise OperatorNotFoundError(f"Unknown operator {operator_code}")

    details.setdefault("passenger_name", passenger.get_full_name() or passenger.username)
    details.setdefault("passenger_phone", getattr(passenger, "phone_number", ""))

    now = timezone.now()
    booking = Booking.objects.create(
        booking_code=next_booking_code(operator_code),
        passenger=passenger,
        originating_operator_code=operator_code,
        pickup_latitude=pickup_latitude,
        pickup_longitude=pickup_longitude,
        pickup_address=pickup_address,
        status=BookingStatus.PENDING_ASSIGNMENT,
        created_at=now,
        timeout_at=now + timedelta(minutes=settings.BOOKING_TIMEOUT_MINUTES),
        **details,
    )
    logger.info("Booking %s created for passenger %s", booking.booking_code, passenger.pk)

    return RideResult(
        success=True,
        booking=booking,
        message="Looking for a driver...",
    )


@transaction.atomic
def cancel_booking_by_passenger(passenger, booking_id: int, reason: str = "passenger_cancelled") -> RideResult:
    """
    Cancel a booking by passenger.

    Pending offers for the booking are expired so the driver's dialog closes.
    """
    booking = Booking.objects.filter(pk=booking_id, passenger=passenger).first()
    if booking is None:
        raise RideNotFoundError("Booking not found")
    if booking.status in BookingStatus.TERMINAL:
        raise RideNotAvailableError(f"Cannot cancel - booking is already {booking.status}")

    now = timezone.now()
    cancelled = Booking.objects.filter(pk=booking.pk, status=booking.status).update(
        status=BookingStatus.CANCELLED_BY_PASSENGER,
        cancelled_at=now,
        cancellation_reason=reason,
        updated_at=now,
    )
    if not cancelled:
        raise RideNotAvailableError("Booking changed, please refresh")

    RideOffer.objects.filter(booking=booking, status=RideOffer.STATUS_PENDING).update(
        status=RideOffer.STATUS_EXPIRED,
        responded_at=now,
    )

    booking.refresh_from_db()
    if booking.driver_id:
        from realtime.notifications import notify_driver_event
        transaction.on_commit(partial(
            notify_driver_event, "ride_cancelled", booking, booking.driver_id, "Passenger cancelled this ride.",
        ))

    logger.info("Booking %s cancelled by passenger", booking.display_code)
    return RideResult(success=True, booking=booking, message="Booking cancelled successfully")


# ===================== Driver Operations =====================

def _transition(driver, booking_id: int, from_statuses, to_status: str, extra_filters=None, **values) -> Booking:
    """Conditionally move a driver's booking from one of from_statuses to to_status."""
    now = timezone.now()
    filters = {"pk": booking_id, "driver": driver, "status__in": from_statuses}
    filters.update(extra_filters or {})

    moved = Booking.objects.filter(**filters).update(status=to_status, updated_at=now, **values)
    if not moved:
        if not Booking.objects.filter(pk=booking_id, driver=driver).exists():
            raise RideNotFoundError("Booking not found or not assigned to you")
        raise RideNotAvailableError("This booking is not in the right state for that action")

    return Booking.objects.get(pk=booking_id)


def mark_arrived(driver, booking_id: int) -> RideResult:
    """Driver reached the pickup point; only after accepting the offer."""
    booking = _transition(
        driver, booking_id,
        (BookingStatus.DRIVER_ASSIGNED,),
        BookingStatus.ARRIVED_AT_PICKUP,
        extra_filters={"accepted_at__isnull": False},
        arrived_at=timezone.now(),
    )

    from realtime.notifications import notify_passenger_event
    notify_passenger_event("driver_arrived", booking, "Your driver has arrived at the pickup point.")
    return RideResult(success=True, booking=booking, message="Passenger notified of arrival")


def start_ride(driver, booking_id: int) -> RideResult:
    """Passenger on board. Wait-and-return bookings get their own in-progress state."""
    booking = Booking.objects.filter(pk=booking_id, driver=driver).first()
    if booking is None:
        raise RideNotFoundError("Booking not found or not assigned to you")

    to_status = (
        BookingStatus.IN_PROGRESS_WAIT_AND_RETURN
        if booking.wait_and_return
        else BookingStatus.IN_PROGRESS
    )
    booking = _transition(
        driver, booking_id,
        (BookingStatus.ARRIVED_AT_PICKUP,),
        to_status,
        started_at=timezone.now(),
        driver_eta_minutes=None,
    )
    return RideResult(success=True, booking=booking, message="Ride started")


@transaction.atomic
def complete_ride(driver, booking_id: int) -> RideResult:
    """
    Complete a ride - called by driver when passenger reaches destination.
    """
    booking = _transition(
        driver, booking_id,
        (BookingStatus.IN_PROGRESS, BookingStatus.IN_PROGRESS_WAIT_AND_RETURN),
        BookingStatus.COMPLETED,
        completed_at=timezone.now(),
    )

    # Update ride counts
    if booking.passenger_id:
        type(booking.passenger).objects.filter(pk=booking.passenger_id).update(
            completed_rides=F("completed_rides") + 1
        )
    type(driver.user).objects.filter(pk=driver.user_id).update(
        completed_rides=F("completed_rides") + 1
    )

    from realtime.notifications import notify_passenger_event
    transaction.on_commit(partial(
        notify_passenger_event,
        "ride_completed",
        booking,
        "Your ride has been completed. Thank you for riding with us!",
    ))

    return RideResult(success=True, booking=booking, message="Ride completed successfully")


def get_current_driver_booking(driver) -> Optional[Booking]:
    """Get driver's current live booking."""
    return Booking.objects.filter(
        driver=driver,
        status__in=BookingStatus.ACTIVE,
    ).select_related("passenger").first()
