"""Driver document-change handlers."""

import logging
from functools import partial

from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from drivers.models import Driver
from services.tracking import location_changed

logger = logging.getLogger(__name__)


def _as_float(value):
    return float(value) if value is not None else None


@receiver(post_save, sender=Driver, dispatch_uid="drivers.location_changed")
def on_driver_saved(sender, instance: Driver, created: bool, raw: bool = False, **kwargs):
    """
    Enqueue location propagation when a saved driver has actually moved.

    The position read from the database is kept on the instance, so repeated
    saves of an unchanged location produce no propagation work.
    """
    if raw:
        return

    previous = getattr(instance, "_loaded_location", (None, None))
    current = (instance.current_latitude, instance.current_longitude)
    instance._loaded_location = current

    # New drivers have no bookings yet; a cleared location is the offline path
    if created or not instance.has_location:
        return
    if not location_changed(previous, current):
        return

    from bookings.tasks import propagate_driver_location_task

    logger.debug("Driver %s moved, queueing propagation", instance.pk)
    transaction.on_commit(
        partial(
            propagate_driver_location_task.delay,
            instance.pk,
            _as_float(current[0]),
            _as_float(current[1]),
            _as_float(previous[0]),
            _as_float(previous[1]),
        )
    )
