from django.conf import settings
from django.db import models


class Notification(models.Model):
    """A user-facing notification, delivered at least once"""

    TYPE_BOOKING_TIMEOUT = 'booking_timeout'
    TYPE_EMERGENCY = 'emergency'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField(max_length=50, db_index=True)
    title = models.CharField(max_length=255)
    body = models.TextField(blank=True)
    related_booking = models.ForeignKey(
        'bookings.Booking',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications'
    )

    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    # Reminder bookkeeping
    is_reminder = models.BooleanField(default=False)
    original_notification = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reminders'
    )
    reminder_count = models.PositiveIntegerField(default=0)
    last_reminded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.type} -> {self.user_id}: {self.title}"
