from datetime import timedelta
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone

from bookings.models import BookingStatus, RideOffer
from bookings.tasks import redispatch_pending_bookings_task
from services.matching import auto_assign_booking, manual_assign_booking, redispatch_pending_bookings
from services.matching.assignment import _commit_assignment
from services.ride_management.exceptions import DriverNotAvailableError, RideNotAvailableError
from .factories import FAR, NEAR, make_assigned_booking, make_booking, make_driver, make_operator, make_passenger


class AutoAssignmentTests(TestCase):
    def setUp(self):
        self.operator = make_operator("OP001")
        self.passenger = make_passenger()

    def test_nearest_driver_gets_booking_and_thirty_second_offer(self):
        driver = make_driver("near_driver", location=NEAR)
        booking = make_booking(self.passenger)

        result = auto_assign_booking(booking.pk)

        self.assertTrue(result.assigned)
        self.assertEqual(result.driver_id, driver.pk)

        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.DRIVER_ASSIGNED)
        self.assertEqual(booking.driver, driver)
        self.assertEqual(booking.driver_name, driver.name)
        self.assertEqual(booking.dispatch_method, "auto_system")
        self.assertEqual(booking.driver_eta_minutes, 1)
        self.assertIsNone(booking.accepted_at)

        offer = RideOffer.objects.get(pk=result.offer_id)
        self.assertEqual(offer.status, RideOffer.STATUS_PENDING)
        self.assertEqual(offer.expires_at - offer.created_at, timedelta(seconds=30))
        self.assertEqual(offer.offer_details["pickupLocation"], "Huddersfield Station")
        self.assertEqual(offer.offer_details["requiredOperatorId"], "OP001")

    def test_closer_driver_wins(self):
        make_driver("far_driver", location=FAR)
        near = make_driver("near_driver", location=NEAR)
        booking = make_booking(self.passenger)

        result = auto_assign_booking(booking.pk)

        self.assertEqual(result.driver_id, near.pk)

    def test_equal_distance_goes_to_lowest_id(self):
        first = make_driver("driver_a", location=NEAR)
        make_driver("driver_b", location=NEAR)
        booking = make_booking(self.passenger)

        result = auto_assign_booking(booking.pk)

        self.assertEqual(result.driver_id, first.pk)

    def test_reinvoking_is_a_no_op(self):
        make_driver("near_driver")
        booking = make_booking(self.passenger)

        auto_assign_booking(booking.pk)
        second = auto_assign_booking(booking.pk)

        self.assertFalse(second.assigned)
        self.assertEqual(second.reason, "not_pending")
        self.assertEqual(booking.offers.count(), 1)

    def test_manual_dispatch_mode_leaves_booking_pending(self):
        self.operator.dispatch_mode = "manual"
        self.operator.save()
        make_driver("near_driver")
        booking = make_booking(self.passenger)

        result = auto_assign_booking(booking.pk)

        self.assertEqual(result.reason, "policy")
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PENDING_ASSIGNMENT)
        self.assertFalse(booking.offers.exists())

    def test_auto_dispatch_disabled_leaves_booking_pending(self):
        self.operator.auto_dispatch_enabled = False
        self.operator.save()
        make_driver("near_driver")
        booking = make_booking(self.passenger)

        self.assertEqual(auto_assign_booking(booking.pk).reason, "policy")

    def test_unknown_operator_leaves_booking_pending(self):
        make_driver("near_driver", operator_code="OP404")
        booking = make_booking(self.passenger, operator_code="OP404")

        self.assertEqual(auto_assign_booking(booking.pk).reason, "policy")

    def test_booking_without_operator_is_skipped(self):
        booking = make_booking(self.passenger, operator_code="")

        self.assertEqual(auto_assign_booking(booking.pk).reason, "no_operator")

    def test_preferred_operator_used_when_no_originating_operator(self):
        driver = make_driver("near_driver")
        booking = make_booking(self.passenger, operator_code="", preferred_operator_code="OP001")

        result = auto_assign_booking(booking.pk)

        self.assertEqual(result.driver_id, driver.pk)

    def test_invalid_pickup_is_skipped(self):
        make_driver("near_driver")
        booking = make_booking(self.passenger, pickup=None)

        self.assertEqual(auto_assign_booking(booking.pk).reason, "invalid_pickup")

    def test_no_eligible_driver_leaves_booking_pending(self):
        make_driver("offline_driver", availability="offline")
        make_driver("paused_driver", is_paused=True)
        make_driver("inactive_driver", status="Inactive")
        make_driver("no_location_driver", location=None)
        make_driver("other_operator_driver", operator_code="OP002")
        booking = make_booking(self.passenger)

        result = auto_assign_booking(booking.pk)

        self.assertEqual(result.reason, "no_driver")
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PENDING_ASSIGNMENT)
        self.assertIsNone(booking.driver)

    def test_driver_on_a_live_trip_is_not_offered(self):
        busy = make_driver("busy_driver", location=NEAR)
        make_assigned_booking(busy, accepted=True, status=BookingStatus.IN_PROGRESS)
        free = make_driver("free_driver", location=FAR)
        booking = make_booking(self.passenger)

        result = auto_assign_booking(booking.pk)

        self.assertEqual(result.driver_id, free.pk)

    def test_driver_who_already_had_the_booking_is_skipped(self):
        declined_by = make_driver("near_driver", location=NEAR)
        other = make_driver("far_driver", location=FAR)
        booking = make_booking(self.passenger)
        now = timezone.now()
        RideOffer.objects.create(
            booking=booking,
            driver=declined_by,
            status=RideOffer.STATUS_DECLINED,
            expires_at=now,
            responded_at=now,
        )

        result = auto_assign_booking(booking.pk)

        self.assertEqual(result.driver_id, other.pk)

    def test_long_platform_wait_pauses_automated_offers(self):
        make_driver("near_driver")
        now = timezone.now()
        make_booking(
            self.passenger,
            created_at=now - timedelta(minutes=45),
            last_match_failed_at=now - timedelta(minutes=44),
        )
        booking = make_booking(make_passenger("second_passenger"))

        result = auto_assign_booking(booking.pk)

        self.assertEqual(result.reason, "policy")

    def test_unexpected_error_is_swallowed_and_booking_untouched(self):
        make_driver("near_driver")
        booking = make_booking(self.passenger)

        with patch("services.matching.assignment.find_nearest", side_effect=RuntimeError("boom")):
            result = auto_assign_booking(booking.pk)

        self.assertFalse(result.assigned)
        self.assertEqual(result.reason, "error")
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PENDING_ASSIGNMENT)

    def test_missing_booking(self):
        self.assertEqual(auto_assign_booking(999999).reason, "not_found")

    @patch("realtime.notifications.push_to_group", return_value=True)
    @patch("bookings.tasks.expire_ride_offer_task.apply_async")
    def test_offer_expiry_scheduled_and_driver_notified_after_commit(self, mock_expiry, mock_push):
        driver = make_driver("near_driver")
        booking = make_booking(self.passenger)

        with self.captureOnCommitCallbacks(execute=True):
            result = auto_assign_booking(booking.pk)

        mock_expiry.assert_called_once_with((result.offer_id,), countdown=30)

        groups = [c.args[0] for c in mock_push.call_args_list]
        self.assertIn(f"driver_{driver.pk}", groups)
        self.assertIn(f"user_{self.passenger.pk}", groups)

        driver_payload = next(c.args[1] for c in mock_push.call_args_list if c.args[0] == f"driver_{driver.pk}")
        self.assertEqual(driver_payload["type"], "ride_offer")
        self.assertEqual(driver_payload["offer_id"], result.offer_id)
        self.assertEqual(driver_payload["seconds_remaining"], 30)


class ManualAssignmentTests(TestCase):
    def setUp(self):
        make_operator("OP001", dispatch_mode="manual")
        self.passenger = make_passenger()

    def test_operator_assigns_chosen_driver(self):
        make_driver("near_driver", location=NEAR)
        chosen = make_driver("far_driver", location=FAR)
        booking = make_booking(self.passenger)

        result = manual_assign_booking(booking.pk, chosen.pk, operator_code="OP001")

        self.assertTrue(result.assigned)
        booking.refresh_from_db()
        self.assertEqual(booking.driver, chosen)
        self.assertEqual(booking.dispatch_method, "manual_operator")
        self.assertEqual(booking.offers.get().status, RideOffer.STATUS_PENDING)

    def test_driver_from_another_operator_is_rejected(self):
        stranger = make_driver("stranger", operator_code="OP002")
        booking = make_booking(self.passenger)

        with self.assertRaises(DriverNotAvailableError):
            manual_assign_booking(booking.pk, stranger.pk)

    def test_offline_driver_is_rejected(self):
        driver = make_driver("offline_driver", availability="offline")
        booking = make_booking(self.passenger)

        with self.assertRaises(DriverNotAvailableError):
            manual_assign_booking(booking.pk, driver.pk)

    def test_already_assigned_booking_is_rejected(self):
        driver = make_driver("near_driver")
        booking, _ = make_assigned_booking(driver, passenger=self.passenger)
        other = make_driver("other_driver")

        with self.assertRaises(RideNotAvailableError):
            manual_assign_booking(booking.pk, other.pk)


class WaitGateTests(TestCase):
    def setUp(self):
        self.operator = make_operator("OP001", max_auto_accept_wait_time_minutes=5)
        self.now = timezone.now()

    def test_bookings_held_back_by_policy_do_not_keep_gate_shut(self):
        driver = make_driver("near_driver")
        # Never went through a match attempt, e.g. created while the gate was shut
        make_booking(created_at=self.now - timedelta(minutes=10))
        booking = make_booking(make_passenger())

        result = auto_assign_booking(booking.pk)

        self.assertTrue(result.assigned)
        self.assertEqual(result.driver_id, driver.pk)

    def test_unmatched_booking_within_limit_keeps_gate_open(self):
        make_driver("near_driver")
        make_booking(
            created_at=self.now - timedelta(minutes=3),
            last_match_failed_at=self.now - timedelta(minutes=2),
        )
        booking = make_booking(make_passenger())

        self.assertTrue(auto_assign_booking(booking.pk).assigned)

    def test_failed_match_is_recorded_then_cleared_on_assignment(self):
        booking = make_booking(make_passenger())

        self.assertEqual(auto_assign_booking(booking.pk).reason, "no_driver")
        booking.refresh_from_db()
        self.assertIsNotNone(booking.last_match_failed_at)

        make_driver("late_driver")
        self.assertTrue(auto_assign_booking(booking.pk).assigned)
        booking.refresh_from_db()
        self.assertIsNone(booking.last_match_failed_at)

    def test_policy_block_is_not_recorded_as_failed_match(self):
        make_booking(
            created_at=self.now - timedelta(minutes=10),
            last_match_failed_at=self.now - timedelta(minutes=9),
        )
        booking = make_booking(make_passenger())

        self.assertEqual(auto_assign_booking(booking.pk).reason, "policy")
        booking.refresh_from_db()
        self.assertIsNone(booking.last_match_failed_at)


class RedispatchTests(TestCase):
    def setUp(self):
        make_operator("OP001", max_auto_accept_wait_time_minutes=5)
        self.now = timezone.now()

    def test_held_back_booking_is_assigned_once_gate_reopens(self):
        unmatched = make_booking(
            created_at=self.now - timedelta(minutes=10),
            last_match_failed_at=self.now - timedelta(minutes=9),
        )
        driver = make_driver("near_driver")
        held = make_booking(make_passenger())
        self.assertEqual(auto_assign_booking(held.pk).reason, "policy")

        unmatched.status = BookingStatus.CANCELLED_NO_DRIVER
        unmatched.save()

        attempted, assigned = redispatch_pending_bookings()

        self.assertEqual((attempted, assigned), (1, 1))
        held.refresh_from_db()
        self.assertEqual(held.status, BookingStatus.DRIVER_ASSIGNED)
        self.assertEqual(held.driver, driver)

    def test_oldest_waiting_booking_is_served_first(self):
        newer = make_booking(make_passenger("newer"), created_at=self.now - timedelta(minutes=1))
        older = make_booking(make_passenger("older"), created_at=self.now - timedelta(minutes=2))
        driver = make_driver("only_driver")

        self.assertEqual(redispatch_pending_bookings(), (2, 1))

        older.refresh_from_db()
        newer.refresh_from_db()
        self.assertEqual(older.driver, driver)
        self.assertEqual(newer.status, BookingStatus.PENDING_ASSIGNMENT)

    def test_bookings_past_timeout_are_left_to_the_sweep(self):
        make_driver("near_driver")
        booking = make_booking(make_passenger(), timeout_at=self.now - timedelta(seconds=1))

        self.assertEqual(redispatch_pending_bookings(), (0, 0))
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PENDING_ASSIGNMENT)

    def test_task_reports_counts(self):
        make_driver("near_driver")
        make_booking(make_passenger())

        self.assertEqual(redispatch_pending_bookings_task(), {"attempted": 1, "assigned": 1})


class CommitAssignmentTests(TestCase):
    def setUp(self):
        make_operator("OP001")
        self.passenger = make_passenger()

    def test_booking_already_assigned_is_not_reassigned(self):
        first = make_driver("first_driver")
        booking, offer = make_assigned_booking(first, passenger=self.passenger)
        second = make_driver("second_driver")

        self.assertIsNone(_commit_assignment(booking.pk, second.pk, "auto_system"))

        booking.refresh_from_db()
        self.assertEqual(booking.driver, first)
        self.assertEqual(list(booking.offers.all()), [offer])

    def test_booking_holding_a_pending_offer_gets_no_second_offer(self):
        first = make_driver("first_driver")
        second = make_driver("second_driver")
        booking = make_booking(self.passenger)
        now = timezone.now()
        RideOffer.objects.create(
            booking=booking,
            driver=first,
            status=RideOffer.STATUS_PENDING,
            expires_at=now + timedelta(seconds=30),
        )

        self.assertIsNone(_commit_assignment(booking.pk, second.pk, "auto_system"))

        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PENDING_ASSIGNMENT)
        self.assertIsNone(booking.driver)
        self.assertEqual(booking.offers.count(), 1)

    def test_busy_driver_is_not_assigned(self):
        driver = make_driver("busy_driver")
        make_assigned_booking(driver, accepted=True, status=BookingStatus.IN_PROGRESS)
        booking = make_booking(self.passenger)

        self.assertIsNone(_commit_assignment(booking.pk, driver.pk, "manual_operator"))
        self.assertFalse(booking.offers.exists())

    def test_driver_taken_between_match_and_commit_is_a_conflict(self):
        driver = make_driver("near_driver")
        booking = make_booking(self.passenger)

        def driver_gets_taken(*args):
            make_assigned_booking(driver, accepted=True, status=BookingStatus.IN_PROGRESS)
            return driver

        with patch("services.matching.assignment.find_nearest", side_effect=driver_gets_taken):
            result = auto_assign_booking(booking.pk)

        self.assertFalse(result.assigned)
        self.assertEqual(result.reason, "conflict")
        self.assertEqual(result.driver_id, driver.pk)
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PENDING_ASSIGNMENT)
        self.assertIsNone(booking.driver)
        self.assertFalse(booking.offers.exists())
