"""
Notification helpers.

This module provides functions to:
- Persist user notifications and push them to the user's channel group
- Send booking/offer events to drivers and passengers

Pushes are fire-and-forget: a missing or failing channel layer is logged
and never propagates into the dispatch pipeline.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Dict, Any, Iterable, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from .models import Notification

logger = logging.getLogger(__name__)


def push_to_group(group: str, payload: Dict[str, Any]) -> bool:
    """
    Send one message to a channel-layer group.

    Returns:
        True if handed to the channel layer, False otherwise
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning("No channel layer available, dropping %s for %s", payload.get("type"), group)
        return False

    try:
        logger.debug("WS -> %s: %s", group, payload.get("type"))
        async_to_sync(channel_layer.group_send)(group, payload)
    except Exception:
        logger.exception("Failed to push %s to %s", payload.get("type"), group)
        return False
    return True


# ---------------------- Notification Sink ----------------------

def _notification_payload(notification: Notification) -> Dict[str, Any]:
    return {
        "type": "notification",
        "notification_id": notification.id,
        "notification_type": notification.type,
        "title": notification.title,
        "body": notification.body,
        "booking_id": notification.related_booking_id,
    }


def push_notification(notification: Notification) -> bool:
    return push_to_group(f"user_{notification.user_id}", _notification_payload(notification))


def push_notifications_on_commit(notifications: Iterable[Notification]):
    """Push already-persisted notifications once the surrounding transaction commits."""
    for notification in notifications:
        transaction.on_commit(partial(push_notification, notification))


def notify(
    user_id: int,
    type: str,
    title: str,
    body: str = "",
    related_booking_id: Optional[int] = None,
) -> Notification:
    """
    Record a notification for a user and push it to their personal group.

    Args:
        user_id: Recipient user ID
        type: Notification type, e.g. "booking_timeout"
        title: Short title
        body: Message body
        related_booking_id: Booking the notification is about, if any

    Returns:
        The persisted Notification
    """
    notification = Notification.objects.create(
        user_id=user_id,
        type=type,
        title=title,
        body=body,
        related_booking_id=related_booking_id,
    )
    push_notifications_on_commit([notification])
    return notification


# ---------------------- Booking Event Notifications ----------------------

def notify_driver_event(
    event_type: str,
    booking,
    driver_id: int | None,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send an event to a specific driver using their personal group: driver_<driver_id>

    Args:
        event_type: Handler name on the client (ride_offer, ride_expired, ride_cancelled)
        booking: Booking model instance
        driver_id: Target driver's ID
        message: Optional message to include
        extra: Additional payload data

    Returns:
        True if sent successfully, False otherwise
    """
    if not driver_id:
        return False

    from bookings.serializers import BookingSerializer

    payload = {
        "type": event_type,
        "booking_id": booking.id,
        "driver_id": driver_id,
        "booking_data": BookingSerializer(booking).data,
        **(extra or {}),
    }

    if message:
        payload["message"] = message

    return push_to_group(f"driver_{driver_id}", payload)


def notify_passenger_event(
    event_type: str,
    booking,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send booking-related event to the passenger through: user_<passenger_id>

    Args:
        event_type: Handler name on the client (driver_assigned, ride_accepted, ride_cancelled)
        booking: Booking model instance
        message: Optional message to include
        extra: Additional payload data

    Returns:
        True if sent successfully, False otherwise
    """
    passenger_id = booking.passenger_id
    if not passenger_id:
        return False

    from bookings.serializers import BookingSerializer

    payload = {
        "type": event_type,
        "booking_id": booking.id,
        "status": booking.status,
        "booking_data": BookingSerializer(booking).data,
        **(extra or {}),
    }

    if message:
        payload["message"] = message

    return push_to_group(f"user_{passenger_id}", payload)
