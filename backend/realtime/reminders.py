"""Re-notify users about notifications they haven't read."""

import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from .models import Notification
from .notifications import push_notifications_on_commit

logger = logging.getLogger(__name__)

EMERGENCY_REMINDER_AFTER = timedelta(minutes=5)
DEFAULT_REMINDER_AFTER = timedelta(hours=24)


def _due(queryset, threshold):
    return queryset.filter(created_at__lt=threshold).filter(
        Q(last_reminded_at__isnull=True) | Q(last_reminded_at__lt=threshold)
    )


@transaction.atomic
def send_notification_reminders(now=None) -> int:
    """
    Create a reminder copy of every unread notification left unacknowledged
    too long: 5 minutes for emergencies, 24 hours for everything else.

    Returns:
        Number of reminders created
    """
    now = now or timezone.now()
    unread = Notification.objects.filter(read=False, is_reminder=False)

    due = list(
        _due(unread.filter(type=Notification.TYPE_EMERGENCY), now - EMERGENCY_REMINDER_AFTER)
    ) + list(
        _due(unread.exclude(type=Notification.TYPE_EMERGENCY), now - DEFAULT_REMINDER_AFTER)
    )

    reminders = []
    for original in due:
        suffix = (
            "(Unacknowledged for over 5 minutes)"
            if original.type == Notification.TYPE_EMERGENCY
            else "(Unacknowledged for over 24 hours)"
        )
        reminders.append(
            Notification.objects.create(
                user_id=original.user_id,
                type=original.type,
                title=f"REMINDER: {original.title}",
                body=f"{original.body} {suffix}".strip(),
                related_booking_id=original.related_booking_id,
                is_reminder=True,
                original_notification=original,
                last_reminded_at=now,
            )
        )

    if due:
        Notification.objects.filter(pk__in=[n.pk for n in due]).update(
            last_reminded_at=now,
            reminder_count=F("reminder_count") + 1,
        )
        push_notifications_on_commit(reminders)
        logger.info("Sent %d notification reminder(s)", len(reminders))

    return len(reminders)
