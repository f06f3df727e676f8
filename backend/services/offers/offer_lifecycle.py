"""
Ride offer lifecycle.

Each offer moves pending -> accepted | declined | expired exactly once.
The expiry instant is fixed at creation (RIDE_OFFER_EXPIRY_SECONDS) and is
the only timer: the driver app's countdown is derived from it.

Releasing an offer hands the booking back to pending_assignment and queues
a fresh assignment pass, which skips drivers who already had the booking.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import Optional, Tuple

from django.db import transaction
from django.utils import timezone

from bookings.models import Booking, BookingStatus, RideOffer
from services.ride_management.exceptions import (
    OfferExpiredError,
    OfferNotFoundError,
    RideNotAvailableError,
)

logger = logging.getLogger(__name__)


@dataclass
class OfferCountdown:
    """What the driver's offer dialog displays."""
    offer_id: int
    status: str
    expires_at: datetime
    seconds_remaining: int


def offer_countdown(offer: RideOffer, now=None) -> OfferCountdown:
    """
    Seconds left before an offer lapses, rounded up and never negative.

    Non-pending offers always report 0.
    """
    now = now or timezone.now()
    remaining = 0
    if offer.status == RideOffer.STATUS_PENDING:
        remaining = max(0, math.ceil((offer.expires_at - now).total_seconds()))
    return OfferCountdown(
        offer_id=offer.pk,
        status=offer.status,
        expires_at=offer.expires_at,
        seconds_remaining=remaining,
    )


# ===================== Release Helpers =====================

def _release_booking(offer: RideOffer, now) -> bool:
    """
    Return the offer's booking to pending_assignment if it is still waiting
    on this very offer. Accepted or already-moved bookings are left alone.
    """
    released = Booking.objects.filter(
        pk=offer.booking_id,
        status=BookingStatus.DRIVER_ASSIGNED,
        driver_id=offer.driver_id,
        accepted_at__isnull=True,
    ).update(
        status=BookingStatus.PENDING_ASSIGNMENT,
        driver=None,
        driver_name="",
        driver_vehicle_details="",
        dispatch_method="",
        driver_current_latitude=None,
        driver_current_longitude=None,
        driver_location_updated_at=None,
        driver_eta_minutes=None,
        updated_at=now,
    )
    if released:
        transaction.on_commit(partial(_queue_reassignment, offer.booking_id))
    return bool(released)


def _queue_reassignment(booking_id: int):
    from bookings.tasks import auto_assign_booking_task

    try:
        auto_assign_booking_task.delay(booking_id)
    except Exception:
        # Booking stays pending for the operator or the timeout sweep
        logger.exception("Could not queue reassignment for booking %s", booking_id)


def _close_offer(offer_id: int, new_status: str, now, require_expired: bool = False) -> Tuple[Optional[RideOffer], bool]:
    """
    Move a pending offer to a terminal status and release its booking.

    Returns:
        (offer, released) - offer is None when it was no longer pending
    """
    filters = {"pk": offer_id, "status": RideOffer.STATUS_PENDING}
    if require_expired:
        filters["expires_at__lte"] = now

    with transaction.atomic():
        closed = RideOffer.objects.filter(**filters).update(status=new_status, responded_at=now)
        if not closed:
            return None, False
        offer = RideOffer.objects.get(pk=offer_id)
        released = _release_booking(offer, now)

    return offer, released


# ===================== Driver Actions =====================

def _get_driver_offer(driver, offer_id: int) -> RideOffer:
    offer = RideOffer.objects.select_related("booking").filter(pk=offer_id, driver=driver).first()
    if offer is None:
        raise OfferNotFoundError("This ride offer is no longer active for you")
    return offer


def accept_offer(driver, offer_id: int, now=None) -> RideOffer:
    """
    Accept a ride offer.

    Args:
        driver: Driver instance answering the offer
        offer_id: Offer being accepted
        now: Reference time (defaults to timezone.now())

    Returns:
        The accepted RideOffer

    Raises:
        OfferNotFoundError: Offer doesn't belong to this driver
        OfferExpiredError: Offer lapsed or was already answered
        RideNotAvailableError: Booking moved on (cancelled, reassigned)
    """
    now = now or timezone.now()
    offer = _get_driver_offer(driver, offer_id)

    # Duplicate accept from a retrying client
    if offer.status == RideOffer.STATUS_ACCEPTED:
        return offer

    if offer.status != RideOffer.STATUS_PENDING:
        raise OfferExpiredError("This ride offer has timed out")

    if offer.is_expired(now):
        expire_offer(offer.pk, now=now)
        raise OfferExpiredError("This ride offer has timed out")

    with transaction.atomic():
        moved = RideOffer.objects.filter(
            pk=offer.pk, status=RideOffer.STATUS_PENDING, expires_at__gt=now
        ).update(status=RideOffer.STATUS_ACCEPTED, responded_at=now)
        if not moved:
            raise OfferExpiredError("This ride offer has timed out")

        confirmed = Booking.objects.filter(
            pk=offer.booking_id,
            status=BookingStatus.DRIVER_ASSIGNED,
            driver_id=driver.pk,
            accepted_at__isnull=True,
        ).update(accepted_at=now, updated_at=now)
        if not confirmed:
            # Rolls back the offer transition too
            raise RideNotAvailableError("This booking was already handled or cancelled")

    offer.refresh_from_db()
    logger.info("Driver %s accepted offer %s for booking %s", driver.pk, offer.pk, offer.booking_id)

    from realtime.notifications import notify_passenger_event
    booking = Booking.objects.get(pk=offer.booking_id)
    transaction.on_commit(partial(
        notify_passenger_event,
        "ride_accepted",
        booking,
        "Your ride has been accepted! The driver is on the way.",
    ))
    return offer


def decline_offer(driver, offer_id: int, now=None) -> RideOffer:
    """
    Decline a pending ride offer; the booking goes back to the queue.

    Raises:
        OfferNotFoundError: Offer doesn't belong to this driver or was already answered
    """
    now = now or timezone.now()
    offer = _get_driver_offer(driver, offer_id)

    closed, released = _close_offer(offer.pk, RideOffer.STATUS_DECLINED, now)
    if closed is None:
        raise OfferNotFoundError("No active offer found for this booking")

    logger.info(
        "Driver %s declined offer %s for booking %s (released=%s)",
        driver.pk, offer.pk, offer.booking_id, released,
    )
    return closed


# ===================== Expiry =====================

def expire_offer(offer_id: int, now=None) -> bool:
    """
    Expire one offer if it is still pending and past its expiry time.

    Returns:
        True if the offer was expired by this call
    """
    now = now or timezone.now()
    offer, released = _close_offer(offer_id, RideOffer.STATUS_EXPIRED, now, require_expired=True)
    if offer is None:
        return False

    logger.info("Offer %s for booking %s expired (released=%s)", offer.pk, offer.booking_id, released)

    from realtime.notifications import notify_driver_event
    transaction.on_commit(partial(
        notify_driver_event,
        "ride_expired",
        offer.booking,
        offer.driver_id,
        "Your ride offer has timed out.",
    ))
    return True


def expire_stale_offers(now=None) -> Tuple[int, int]:
    """
    Periodic pass expiring every pending offer past its expiry time.

    Returns:
        (expired_count, released_count)
    """
    now = now or timezone.now()
    stale_ids = list(
        RideOffer.objects.filter(status=RideOffer.STATUS_PENDING, expires_at__lte=now)
        .order_by("expires_at")
        .values_list("pk", flat=True)
    )

    expired = 0
    released = 0
    for offer_id in stale_ids:
        try:
            offer, was_released = _close_offer(offer_id, RideOffer.STATUS_EXPIRED, now, require_expired=True)
        except Exception:
            logger.exception("Failed to expire offer %s", offer_id)
            continue
        if offer is not None:
            expired += 1
            released += int(was_released)

    if expired:
        logger.info("Expired %d stale offer(s), released %d booking(s)", expired, released)
    return expired, released


def release_pending_offers_for_driver(driver_id: int, reason: str = RideOffer.STATUS_DECLINED, now=None) -> int:
    """Close every pending offer held by a driver (e.g. they went offline)."""
    now = now or timezone.now()
    count = 0
    offer_ids = RideOffer.objects.filter(
        driver_id=driver_id, status=RideOffer.STATUS_PENDING
    ).values_list("pk", flat=True)
    for offer_id in list(offer_ids):
        offer, _ = _close_offer(offer_id, reason, now)
        if offer is not None:
            count += 1
    return count
