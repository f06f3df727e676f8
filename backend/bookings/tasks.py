"""Celery tasks for booking dispatch background processing."""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def auto_assign_booking_task(booking_id: int):
    """
    Find a driver for a booking waiting in pending_assignment.

    Queued when a booking is created and again whenever an offer for it is
    declined or expires. Never raises: a booking that can't be assigned now
    stays pending for the next pass, the operator, or the timeout sweep.
    """
    from services.matching import auto_assign_booking

    result = auto_assign_booking(booking_id)
    return {
        "assigned": result.assigned,
        "booking_id": result.booking_id,
        "driver_id": result.driver_id,
        "offer_id": result.offer_id,
        "reason": result.reason,
    }


@shared_task
def redispatch_pending_bookings_task():
    """Periodic retry for bookings still waiting on a driver."""
    from services.matching import redispatch_pending_bookings

    attempted, assigned = redispatch_pending_bookings()
    return {"attempted": attempted, "assigned": assigned}


@shared_task
def expire_ride_offer_task(offer_id: int):
    """
    Celery task to expire a ride offer after timeout.

    This task is scheduled when an offer is sent to a driver. If the driver
    hasn't responded by then, the offer is expired and the booking goes
    back to the queue for the next driver.
    """
    from services.offers import expire_offer

    try:
        expired = expire_offer(offer_id)
    except Exception:
        # The periodic stale-offer pass picks it up
        logger.exception("Error expiring offer %s", offer_id)
        return False

    if not expired:
        logger.debug("Offer %s already answered or not yet due", offer_id)
    return expired


@shared_task
def expire_stale_offers_task():
    """Periodic pass for offers whose per-offer expiry task never ran."""
    from services.offers import expire_stale_offers

    expired, released = expire_stale_offers()
    return {"expired": expired, "released": released}


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def sweep_timed_out_bookings_task(self):
    """Cancel bookings nobody picked up before their timeout."""
    from services.ride_management import sweep_timed_out_bookings

    result = sweep_timed_out_bookings()
    return {"processed": result.processed, "notifications": result.notifications}


@shared_task
def propagate_driver_location_task(driver_id: int, latitude: float, longitude: float,
                                   previous_latitude: float = None, previous_longitude: float = None):
    """Push a driver's new position into their live bookings."""
    from services.tracking import propagate_driver_location

    result = propagate_driver_location(
        driver_id, latitude, longitude,
        previous_latitude=previous_latitude,
        previous_longitude=previous_longitude,
    )
    return {"updated": result.updated, "failed": result.failed, "skipped": result.skipped}


@shared_task
def send_notification_reminders_task():
    """Re-notify users about notifications left unread too long."""
    from realtime.reminders import send_notification_reminders

    return send_notification_reminders()
