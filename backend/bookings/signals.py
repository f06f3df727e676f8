"""Booking document-change handlers."""

import logging
from functools import partial

from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from bookings.models import Booking, BookingStatus

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Booking, dispatch_uid="bookings.booking_created")
def on_booking_created(sender, instance: Booking, created: bool, raw: bool = False, **kwargs):
    """Queue an assignment pass for every new booking waiting for a driver."""
    if raw or not created:
        return
    if instance.status != BookingStatus.PENDING_ASSIGNMENT:
        return

    from bookings.tasks import auto_assign_booking_task

    logger.debug("Booking %s created, queueing assignment", instance.pk)
    transaction.on_commit(partial(auto_assign_booking_task.delay, instance.pk))
