from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

from django.test import TestCase
from django.utils import timezone

from bookings.tests.factories import make_passenger
from realtime.models import Notification
from realtime.notifications import notify, push_to_group
from realtime.reminders import send_notification_reminders


class PushTests(TestCase):
    def test_group_send(self):
        layer = MagicMock()
        layer.group_send = AsyncMock()

        with patch("realtime.notifications.get_channel_layer", return_value=layer):
            self.assertTrue(push_to_group("user_1", {"type": "notification"}))

        layer.group_send.assert_awaited_once_with("user_1", {"type": "notification"})

    def test_missing_channel_layer_is_not_an_error(self):
        with patch("realtime.notifications.get_channel_layer", return_value=None):
            self.assertFalse(push_to_group("user_1", {"type": "notification"}))

    def test_push_failure_is_swallowed(self):
        layer = MagicMock()
        layer.group_send = AsyncMock(side_effect=ConnectionError("redis down"))

        with patch("realtime.notifications.get_channel_layer", return_value=layer):
            self.assertFalse(push_to_group("user_1", {"type": "notification"}))


class NotifyTests(TestCase):
    def setUp(self):
        self.user = make_passenger()

    @patch("realtime.notifications.push_to_group", return_value=True)
    def test_notification_persisted_then_pushed_on_commit(self, mock_push):
        with self.captureOnCommitCallbacks(execute=True):
            notification = notify(self.user.pk, "booking_timeout", "Booking cancelled", "No driver available")

            self.assertEqual(Notification.objects.get().pk, notification.pk)
            mock_push.assert_not_called()

        group, payload = mock_push.call_args.args
        self.assertEqual(group, f"user_{self.user.pk}")
        self.assertEqual(payload["title"], "Booking cancelled")


class ReminderTests(TestCase):
    def setUp(self):
        self.user = make_passenger()
        self.now = timezone.now()

    def _notification(self, type, age, **overrides):
        notification = Notification.objects.create(user=self.user, type=type, title="Heads up", **overrides)
        Notification.objects.filter(pk=notification.pk).update(created_at=self.now - age)
        return notification

    def test_unread_emergency_reminded_after_five_minutes(self):
        original = self._notification(Notification.TYPE_EMERGENCY, timedelta(minutes=6))

        self.assertEqual(send_notification_reminders(now=self.now), 1)

        reminder = Notification.objects.get(is_reminder=True)
        self.assertEqual(reminder.title, "REMINDER: Heads up")
        self.assertEqual(reminder.original_notification, original)
        original.refresh_from_db()
        self.assertEqual(original.reminder_count, 1)
        self.assertEqual(original.last_reminded_at, self.now)

    def test_other_types_wait_a_day(self):
        self._notification(Notification.TYPE_BOOKING_TIMEOUT, timedelta(hours=2))
        self.assertEqual(send_notification_reminders(now=self.now), 0)

        self._notification(Notification.TYPE_BOOKING_TIMEOUT, timedelta(hours=25))
        self.assertEqual(send_notification_reminders(now=self.now), 1)

    def test_read_notifications_are_left_alone(self):
        self._notification(Notification.TYPE_EMERGENCY, timedelta(minutes=30), read=True)

        self.assertEqual(send_notification_reminders(now=self.now), 0)

    def test_not_reminded_again_within_threshold(self):
        self._notification(Notification.TYPE_EMERGENCY, timedelta(minutes=6))
        send_notification_reminders(now=self.now)

        self.assertEqual(send_notification_reminders(now=self.now + timedelta(minutes=2)), 0)
        self.assertEqual(send_notification_reminders(now=self.now + timedelta(minutes=6)), 1)
