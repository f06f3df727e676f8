"""
Operator dispatch policy.

Decides whether the system may assign a driver automatically for an
operator. Read-only: nothing here writes to the database.
"""

import logging
from typing import Optional

from django.db.models import Min, Q
from django.utils import timezone

from bookings.models import Booking, BookingStatus
from operators.models import OperatorDispatchSettings

logger = logging.getLogger(__name__)


def estimate_operator_wait_minutes(operator_code: str, now=None, exclude_booking_id=None) -> float:
    """
    Current platform wait for an operator: how long the oldest booking still
    waiting for a driver has been waiting.

    Only bookings an assignment pass tried and found no driver for count.
    Bookings held back by this policy never attempted a match, so they say
    nothing about driver supply and must not keep the gate shut.

    Args:
        operator_code: Operator to measure
        now: Reference time (defaults to timezone.now())
        exclude_booking_id: Booking being evaluated, left out of the measure

    Returns:
        Minutes waited by the oldest unmatched booking, 0 if none are waiting
    """
    now = now or timezone.now()
    pending = Booking.objects.filter(
        status=BookingStatus.PENDING_ASSIGNMENT,
        last_match_failed_at__isnull=False,
    ).filter(
        Q(originating_operator_code=operator_code)
        | Q(originating_operator_code="", preferred_operator_code=operator_code)
    )
    if exclude_booking_id is not None:
        pending = pending.exclude(pk=exclude_booking_id)

    oldest = pending.aggregate(oldest=Min("created_at"))["oldest"]
    if oldest is None:
        return 0.0
    return max(0.0, (now - oldest).total_seconds() / 60)


def may_auto_assign(operator_code: Optional[str], now=None, exclude_booking_id=None) -> bool:
    """
    Check whether automatic assignment may run for an operator.

    Rules, first failure wins:
        1. Operator settings exist
        2. Auto dispatch is enabled
        3. Dispatch mode is "auto"
        4. The operator's current wait time is within
           max_auto_accept_wait_time_minutes (0 = no limit)

    Returns:
        True if the booking may be auto-assigned
    """
    if not operator_code:
        return False

    settings_obj = OperatorDispatchSettings.objects.filter(operator_code=operator_code).first()
    if settings_obj is None:
        logger.debug("No dispatch settings for operator %s", operator_code)
        return False

    if not settings_obj.auto_dispatch_enabled:
        logger.debug("Auto dispatch disabled for operator %s", operator_code)
        return False

    if settings_obj.dispatch_mode != "auto":
        logger.debug("Operator %s is in %s dispatch mode", operator_code, settings_obj.dispatch_mode)
        return False

    limit = settings_obj.max_auto_accept_wait_time_minutes
    if limit:
        wait = estimate_operator_wait_minutes(operator_code, now=now, exclude_booking_id=exclude_booking_id)
        if wait > limit:
            logger.info(
                "Automated offers paused for operator %s: wait %.1f min exceeds %s min",
                operator_code, wait, limit,
            )
            return False

    return True
