from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from bookings.models import Booking, BookingStatus
from operators.models import OperatorDispatchSettings
from operators.services import onboard_operator
from operators.views import OperatorDispatchSettingsView
from services.matching import estimate_operator_wait_minutes, may_auto_assign


class OnboardOperatorTests(TestCase):
    def test_defaults(self):
        settings_obj = onboard_operator("Kirklees Cars")

        self.assertEqual(settings_obj.operator_code, "OP001")
        self.assertEqual(settings_obj.dispatch_mode, "auto")
        self.assertFalse(settings_obj.auto_dispatch_enabled)
        self.assertEqual(settings_obj.max_auto_accept_wait_time_minutes, 30)
        self.assertEqual(onboard_operator("Second Cars").operator_code, "OP002")


class DispatchPolicyTests(TestCase):
    def setUp(self):
        self.now = timezone.now()
        self.settings = OperatorDispatchSettings.objects.create(
            operator_code="OP001",
            dispatch_mode="auto",
            auto_dispatch_enabled=True,
            max_auto_accept_wait_time_minutes=10,
        )

    def _pending(self, minutes_ago, **overrides):
        # A booking an assignment pass already tried and found no driver for
        values = {
            "originating_operator_code": "OP001",
            "status": BookingStatus.PENDING_ASSIGNMENT,
            "created_at": self.now - timedelta(minutes=minutes_ago),
            "last_match_failed_at": self.now - timedelta(minutes=minutes_ago),
        }
        values.update(overrides)
        return Booking.objects.create(**values)

    def test_enabled_auto_operator_may_assign(self):
        self.assertTrue(may_auto_assign("OP001", now=self.now))

    def test_missing_operator(self):
        self.assertFalse(may_auto_assign("OP404", now=self.now))
        self.assertFalse(may_auto_assign("", now=self.now))

    def test_disabled(self):
        self.settings.auto_dispatch_enabled = False
        self.settings.save()

        self.assertFalse(may_auto_assign("OP001", now=self.now))

    def test_manual_mode(self):
        self.settings.dispatch_mode = "manual"
        self.settings.save()

        self.assertFalse(may_auto_assign("OP001", now=self.now))

    def test_wait_is_age_of_oldest_unmatched_booking(self):
        self._pending(4)
        self._pending(12)
        self._pending(50, status=BookingStatus.COMPLETED)
        self._pending(60, originating_operator_code="OP002")

        self.assertAlmostEqual(estimate_operator_wait_minutes("OP001", now=self.now), 12)

    def test_bookings_never_matched_are_not_counted(self):
        self._pending(30, last_match_failed_at=None)
        self._pending(4)

        self.assertAlmostEqual(estimate_operator_wait_minutes("OP001", now=self.now), 4)
        self.assertTrue(may_auto_assign("OP001", now=self.now))

    def test_wait_over_limit_blocks(self):
        self._pending(12)

        self.assertFalse(may_auto_assign("OP001", now=self.now))

    def test_booking_under_evaluation_is_not_counted(self):
        booking = self._pending(12)

        self.assertTrue(may_auto_assign("OP001", now=self.now, exclude_booking_id=booking.pk))

    def test_zero_limit_means_no_limit(self):
        self.settings.max_auto_accept_wait_time_minutes = 0
        self.settings.save()
        self._pending(120)

        self.assertTrue(may_auto_assign("OP001", now=self.now))


class DispatchSettingsViewTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        self.settings = onboard_operator("Kirklees Cars")
        self.user = User.objects.create_user(
            username="op_staff", password="op1234", role="operator", operator_code=self.settings.operator_code,
        )

    def test_get(self):
        request = self.factory.get('/settings/dispatch/')
        force_authenticate(request, user=self.user)
        response = OperatorDispatchSettingsView.as_view()(request)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['operator_code'], "OP001")
        self.assertFalse(response.data['auto_dispatch_enabled'])

    def test_put_enables_auto_dispatch(self):
        request = self.factory.put('/settings/dispatch/', {
            'auto_dispatch_enabled': True,
            'max_auto_accept_wait_time_minutes': 15,
        }, format='json')
        force_authenticate(request, user=self.user)
        response = OperatorDispatchSettingsView.as_view()(request)

        self.assertEqual(response.status_code, 200)
        self.settings.refresh_from_db()
        self.assertTrue(self.settings.auto_dispatch_enabled)
        self.assertEqual(self.settings.max_auto_accept_wait_time_minutes, 15)

    def test_invalid_mode_rejected(self):
        request = self.factory.put('/settings/dispatch/', {'dispatch_mode': 'turbo'}, format='json')
        force_authenticate(request, user=self.user)
        response = OperatorDispatchSettingsView.as_view()(request)

        self.assertEqual(response.status_code, 400)

    def test_non_operators_forbidden(self):
        passenger = User.objects.create_user(username="rider", password="pass1234", role="passenger")
        request = self.factory.get('/settings/dispatch/')
        force_authenticate(request, user=passenger)
        response = OperatorDispatchSettingsView.as_view()(request)

        self.assertEqual(response.status_code, 403)
