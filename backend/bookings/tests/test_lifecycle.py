from dataclasses import fields
from datetime import timedelta
from unittest.mock import patch

from django.test import TestCase

from bookings.models import BookingStatus, RideOffer
from services.offers import accept_offer
from services.ride_management import (
    cancel_booking_by_passenger,
    complete_ride,
    create_booking,
    mark_arrived,
    start_ride,
)
from services.ride_management.exceptions import (
    ActiveRideExistsError,
    OperatorNotFoundError,
    RideNotAvailableError,
    RideNotFoundError,
)
from .factories import NEAR, PICKUP, make_assigned_booking, make_driver, make_operator, make_passenger


class CreateBookingTests(TestCase):
    def setUp(self):
        make_operator("OP001")
        self.passenger = make_passenger()

    def test_booking_gets_operator_code_and_timeout(self):
        booking = create_booking(self.passenger, "OP001", *PICKUP, pickup_address="Station").booking

        self.assertEqual(booking.booking_code, "OP001/00000001")
        self.assertEqual(booking.status, BookingStatus.PENDING_ASSIGNMENT)
        self.assertEqual(booking.timeout_at - booking.created_at, timedelta(minutes=30))
        self.assertEqual(booking.passenger_name, "passenger")

    def test_result_carries_booking_and_message(self):
        result = create_booking(self.passenger, "OP001", *PICKUP)

        self.assertEqual([f.name for f in fields(result)], ["success", "booking", "message"])
        self.assertTrue(result.success)
        self.assertEqual(result.booking.passenger, self.passenger)
        self.assertEqual(result.message, "Looking for a driver...")

    def test_codes_increase_per_operator(self):
        make_operator("OP002")
        create_booking(self.passenger, "OP001", *PICKUP)
        cancel_booking_by_passenger(self.passenger, self.passenger.bookings.get().pk)

        booking = create_booking(self.passenger, "OP001", *PICKUP).booking
        other = create_booking(make_passenger("second_passenger"), "OP002", *PICKUP).booking

        self.assertEqual(booking.booking_code, "OP001/00000002")
        self.assertEqual(other.booking_code, "OP002/00000001")

    def test_one_live_booking_per_passenger(self):
        create_booking(self.passenger, "OP001", *PICKUP)

        with self.assertRaises(ActiveRideExistsError):
            create_booking(self.passenger, "OP001", *PICKUP)

    def test_unknown_operator(self):
        with self.assertRaises(OperatorNotFoundError):
            create_booking(self.passenger, "OP999", *PICKUP)

    @patch("realtime.notifications.push_to_group", return_value=True)
    def test_new_booking_is_assigned_after_commit(self, mock_push):
        driver = make_driver("near_driver", location=NEAR)

        with self.captureOnCommitCallbacks(execute=True):
            booking = create_booking(self.passenger, "OP001", *PICKUP).booking

        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.DRIVER_ASSIGNED)
        self.assertEqual(booking.driver, driver)
        self.assertEqual(booking.offers.get().status, RideOffer.STATUS_PENDING)


class RideProgressTests(TestCase):
    def setUp(self):
        make_operator("OP001")
        self.passenger = make_passenger()
        self.driver = make_driver("near_driver")
        self.booking, self.offer = make_assigned_booking(self.driver, passenger=self.passenger)

    @patch("realtime.notifications.push_to_group", return_value=True)
    def test_full_trip(self, mock_push):
        accept_offer(self.driver, self.offer.pk)

        booking = mark_arrived(self.driver, self.booking.pk).booking
        self.assertEqual(booking.status, BookingStatus.ARRIVED_AT_PICKUP)
        self.assertIsNotNone(booking.arrived_at)

        booking = start_ride(self.driver, self.booking.pk).booking
        self.assertEqual(booking.status, BookingStatus.IN_PROGRESS)

        booking = complete_ride(self.driver, self.booking.pk).booking
        self.assertEqual(booking.status, BookingStatus.COMPLETED)
        self.assertIsNotNone(booking.completed_at)

        self.passenger.refresh_from_db()
        self.driver.user.refresh_from_db()
        self.assertEqual(self.passenger.completed_rides, 1)
        self.assertEqual(self.driver.user.completed_rides, 1)

    @patch("realtime.notifications.push_to_group", return_value=True)
    def test_wait_and_return_trip_has_own_in_progress_state(self, mock_push):
        booking, offer = make_assigned_booking(
            make_driver("other_driver"), passenger=make_passenger("second_passenger"),
            accepted=True, wait_and_return=True,
        )
        mark_arrived(booking.driver, booking.pk)

        booking = start_ride(booking.driver, booking.pk).booking

        self.assertEqual(booking.status, BookingStatus.IN_PROGRESS_WAIT_AND_RETURN)

    def test_cannot_arrive_before_accepting(self):
        with self.assertRaises(RideNotAvailableError):
            mark_arrived(self.driver, self.booking.pk)

    def test_cannot_complete_from_assigned(self):
        accept_offer(self.driver, self.offer.pk)

        with self.assertRaises(RideNotAvailableError):
            complete_ride(self.driver, self.booking.pk)

    def test_other_driver_cannot_touch_booking(self):
        other = make_driver("other_driver")

        with self.assertRaises(RideNotFoundError):
            mark_arrived(other, self.booking.pk)


class PassengerCancelTests(TestCase):
    def setUp(self):
        make_operator("OP001")
        self.passenger = make_passenger()
        self.driver = make_driver("near_driver")
        self.booking, self.offer = make_assigned_booking(self.driver, passenger=self.passenger)

    def test_cancel_expires_pending_offer(self):
        result = cancel_booking_by_passenger(self.passenger, self.booking.pk, reason="changed plans")

        self.assertEqual(result.booking.status, BookingStatus.CANCELLED_BY_PASSENGER)
        self.assertEqual(result.booking.cancellation_reason, "changed plans")
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.status, RideOffer.STATUS_EXPIRED)

    @patch("realtime.notifications.push_to_group", return_value=True)
    def test_assigned_driver_is_told(self, mock_push):
        with self.captureOnCommitCallbacks(execute=True):
            cancel_booking_by_passenger(self.passenger, self.booking.pk)

        mock_push.assert_called_once()
        group, payload = mock_push.call_args.args
        self.assertEqual(group, f"driver_{self.driver.pk}")
        self.assertEqual(payload["type"], "ride_cancelled")

    def test_cannot_cancel_twice(self):
        cancel_booking_by_passenger(self.passenger, self.booking.pk)

        with self.assertRaises(RideNotAvailableError):
            cancel_booking_by_passenger(self.passenger, self.booking.pk)

    def test_cannot_cancel_someone_elses_booking(self):
        with self.assertRaises(RideNotFoundError):
            cancel_booking_by_passenger(make_passenger("stranger"), self.booking.pk)
