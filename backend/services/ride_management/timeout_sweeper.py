"""
Timeout sweep for bookings nobody picked up.

Runs on a fixed schedule. Every booking still in pending_assignment past
its own timeout_at is cancelled and its passenger notified, all in one
transaction. Re-running after a failure is safe: a booking is only ever
selected while it is still pending.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from bookings.models import Booking, BookingStatus
from realtime.models import Notification
from realtime.notifications import push_notifications_on_commit

logger = logging.getLogger(__name__)

TIMEOUT_CANCELLATION_REASON = "timeout_no_driver_available"


@dataclass
class SweepResult:
    processed: int = 0
    notifications: int = 0


def _timeout_notification(booking: Booking) -> Notification:
    return Notification(
        user_id=booking.passenger_id,
        type=Notification.TYPE_BOOKING_TIMEOUT,
        title="Booking cancelled",
        body=(
            f"Your booking {booking.display_code} was cancelled because no driver "
            f"was available. Please try booking again."
        ),
        related_booking_id=booking.pk,
    )


def sweep_timed_out_bookings(now=None) -> SweepResult:
    """
    Cancel bookings stuck waiting for a driver past their timeout.

    Args:
        now: Reference time (defaults to timezone.now())

    Returns:
        SweepResult with processed booking and notification counts

    Raises:
        Any database error, after logging, so the scheduler can retry
    """
    now = now or timezone.now()
    # Informational only: each booking's own timeout_at is the cutoff
    threshold = now - timedelta(minutes=settings.BOOKING_TIMEOUT_MINUTES)
    result = SweepResult()

    try:
        with transaction.atomic():
            candidates = list(
                Booking.objects.select_for_update(skip_locked=True)
                .filter(status=BookingStatus.PENDING_ASSIGNMENT, timeout_at__lt=now)
                .only("pk", "booking_code", "passenger_id")
            )
            logger.info(
                "Found %d timed-out booking(s) (created before ~%s)",
                len(candidates), threshold.isoformat(),
            )
            if not candidates:
                return result

            ids = [booking.pk for booking in candidates]
            result.processed = Booking.objects.filter(
                pk__in=ids, status=BookingStatus.PENDING_ASSIGNMENT
            ).update(
                status=BookingStatus.CANCELLED_NO_DRIVER,
                cancelled_at=now,
                cancellation_reason=TIMEOUT_CANCELLATION_REASON,
                updated_at=now,
            )

            notifications = Notification.objects.bulk_create([
                _timeout_notification(booking)
                for booking in candidates
                if booking.passenger_id
            ])
            result.notifications = len(notifications)
            push_notifications_on_commit(notifications)

    except Exception:
        logger.exception("Booking timeout sweep failed")
        raise

    logger.info(
        "Timeout sweep cancelled %d booking(s), created %d notification(s)",
        result.processed, result.notifications,
    )
    return result
