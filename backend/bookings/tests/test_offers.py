from datetime import timedelta
from unittest.mock import patch

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from bookings.models import BookingStatus, RideOffer
from drivers import services as driver_services
from services.offers import (
    accept_offer,
    decline_offer,
    expire_offer,
    expire_stale_offers,
    offer_countdown,
)
from services.ride_management.exceptions import OfferExpiredError, OfferNotFoundError
from .factories import FAR, NEAR, make_assigned_booking, make_booking, make_driver, make_operator, make_passenger


class OfferResponseTests(TestCase):
    def setUp(self):
        make_operator("OP001")
        self.passenger = make_passenger()
        self.driver = make_driver("near_driver", location=NEAR)
        self.booking, self.offer = make_assigned_booking(self.driver, passenger=self.passenger)

    def assertReleased(self, booking):
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PENDING_ASSIGNMENT)
        self.assertIsNone(booking.driver)
        self.assertEqual(booking.driver_name, "")
        self.assertEqual(booking.dispatch_method, "")
        self.assertIsNone(booking.driver_eta_minutes)

    def test_accept_within_window(self):
        offer = accept_offer(self.driver, self.offer.pk)

        self.assertEqual(offer.status, RideOffer.STATUS_ACCEPTED)
        self.assertIsNotNone(offer.responded_at)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.DRIVER_ASSIGNED)
        self.assertEqual(self.booking.driver, self.driver)
        self.assertIsNotNone(self.booking.accepted_at)

    def test_duplicate_accept_is_idempotent(self):
        accept_offer(self.driver, self.offer.pk)
        offer = accept_offer(self.driver, self.offer.pk)

        self.assertEqual(offer.status, RideOffer.STATUS_ACCEPTED)

    def test_accept_after_expiry_fails_and_releases_booking(self):
        late = self.offer.expires_at + timedelta(seconds=1)

        with self.assertRaises(OfferExpiredError):
            accept_offer(self.driver, self.offer.pk, now=late)

        self.offer.refresh_from_db()
        self.assertEqual(self.offer.status, RideOffer.STATUS_EXPIRED)
        self.assertReleased(self.booking)

    def test_accept_by_another_driver_is_not_found(self):
        other = make_driver("other_driver")

        with self.assertRaises(OfferNotFoundError):
            accept_offer(other, self.offer.pk)

    def test_accept_after_decline_is_expired(self):
        decline_offer(self.driver, self.offer.pk)

        with self.assertRaises(OfferExpiredError):
            accept_offer(self.driver, self.offer.pk)

    def test_decline_releases_booking(self):
        offer = decline_offer(self.driver, self.offer.pk)

        self.assertEqual(offer.status, RideOffer.STATUS_DECLINED)
        self.assertReleased(self.booking)

    def test_decline_twice_is_not_found(self):
        decline_offer(self.driver, self.offer.pk)

        with self.assertRaises(OfferNotFoundError):
            decline_offer(self.driver, self.offer.pk)

    @patch("realtime.notifications.push_to_group", return_value=True)
    def test_decline_reoffers_to_next_driver(self, mock_push):
        next_driver = make_driver("far_driver", location=FAR)

        with self.captureOnCommitCallbacks(execute=True):
            decline_offer(self.driver, self.offer.pk)

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.DRIVER_ASSIGNED)
        self.assertEqual(self.booking.driver, next_driver)
        self.assertEqual(self.booking.offers.filter(status=RideOffer.STATUS_PENDING).get().driver, next_driver)

    @patch("realtime.notifications.push_to_group", return_value=True)
    def test_decline_with_nobody_else_leaves_booking_pending(self, mock_push):
        with self.captureOnCommitCallbacks(execute=True):
            decline_offer(self.driver, self.offer.pk)

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.PENDING_ASSIGNMENT)
        self.assertFalse(self.booking.offers.filter(status=RideOffer.STATUS_PENDING).exists())


class OfferExpiryTests(TestCase):
    def setUp(self):
        make_operator("OP001")
        self.passenger = make_passenger()
        self.driver = make_driver("near_driver")

    def test_expire_before_deadline_is_a_no_op(self):
        booking, offer = make_assigned_booking(self.driver, passenger=self.passenger)

        self.assertFalse(expire_offer(offer.pk))

        offer.refresh_from_db()
        self.assertEqual(offer.status, RideOffer.STATUS_PENDING)

    @patch("realtime.notifications.push_to_group", return_value=True)
    def test_expire_after_deadline_releases_and_notifies_driver(self, mock_push):
        booking, offer = make_assigned_booking(self.driver, passenger=self.passenger, offer_age_seconds=31)

        with self.captureOnCommitCallbacks(execute=True):
            self.assertTrue(expire_offer(offer.pk))

        offer.refresh_from_db()
        booking.refresh_from_db()
        self.assertEqual(offer.status, RideOffer.STATUS_EXPIRED)
        self.assertEqual(booking.status, BookingStatus.PENDING_ASSIGNMENT)

        driver_events = [c.args[1]["type"] for c in mock_push.call_args_list if c.args[0] == f"driver_{self.driver.pk}"]
        self.assertIn("ride_expired", driver_events)

    def test_expiry_after_accept_changes_nothing(self):
        booking, offer = make_assigned_booking(self.driver, passenger=self.passenger, accepted=True)

        self.assertFalse(expire_offer(offer.pk, now=offer.expires_at + timedelta(minutes=5)))

        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.DRIVER_ASSIGNED)
        self.assertEqual(booking.driver, self.driver)

    def test_expire_stale_offers(self):
        make_assigned_booking(self.driver, passenger=self.passenger, offer_age_seconds=45)
        fresh_driver = make_driver("fresh_driver")
        make_assigned_booking(fresh_driver, passenger=make_passenger("second_passenger"))

        expired, released = expire_stale_offers()

        self.assertEqual((expired, released), (1, 1))
        self.assertEqual(RideOffer.objects.filter(status=RideOffer.STATUS_PENDING).count(), 1)

    def test_expire_ride_offers_command(self):
        booking, offer = make_assigned_booking(self.driver, passenger=self.passenger, offer_age_seconds=45)

        call_command("expire_ride_offers")

        offer.refresh_from_db()
        self.assertEqual(offer.status, RideOffer.STATUS_EXPIRED)

    def test_going_offline_hands_back_pending_offer(self):
        booking, offer = make_assigned_booking(self.driver, passenger=self.passenger)

        driver_services.go_offline(self.driver)

        offer.refresh_from_db()
        booking.refresh_from_db()
        self.assertEqual(offer.status, RideOffer.STATUS_DECLINED)
        self.assertEqual(booking.status, BookingStatus.PENDING_ASSIGNMENT)


class OfferCountdownTests(TestCase):
    def setUp(self):
        make_operator("OP001")
        self.driver = make_driver("near_driver")
        _, self.offer = make_assigned_booking(self.driver)

    def test_counts_down_from_offer_window(self):
        start = self.offer.created_at

        self.assertEqual(offer_countdown(self.offer, now=start).seconds_remaining, 30)
        self.assertEqual(offer_countdown(self.offer, now=start + timedelta(seconds=10.2)).seconds_remaining, 20)

    def test_never_negative(self):
        late = self.offer.expires_at + timedelta(seconds=12)

        self.assertEqual(offer_countdown(self.offer, now=late).seconds_remaining, 0)

    def test_answered_offer_reports_zero(self):
        accept_offer(self.driver, self.offer.pk)
        self.offer.refresh_from_db()

        self.assertEqual(offer_countdown(self.offer).seconds_remaining, 0)


class SinglePendingOfferTests(TestCase):
    def test_second_pending_offer_for_a_booking_is_rejected(self):
        from django.db import IntegrityError, transaction

        make_operator("OP001")
        driver = make_driver("near_driver")
        other = make_driver("other_driver")
        booking = make_booking()
        now = timezone.now()
        RideOffer.objects.create(booking=booking, driver=driver, expires_at=now)

        with self.assertRaises(IntegrityError), transaction.atomic():
            RideOffer.objects.create(booking=booking, driver=other, expires_at=now)
