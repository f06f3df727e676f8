from datetime import timedelta
from unittest.mock import patch

from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from bookings import views
from bookings.models import BookingStatus, RideOffer
from .factories import make_assigned_booking, make_booking, make_driver, make_operator, make_passenger


@patch("realtime.notifications.push_to_group", return_value=True)
class PassengerBookingViewTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        make_operator("OP001")
        self.passenger = make_passenger()

    def test_create_booking(self, mock_push):
        request = self.factory.post('/passenger/request/', {
            'operator_code': 'OP001',
            'pickup_latitude': '53.645000',
            'pickup_longitude': '-1.783000',
            'pickup_address': 'Huddersfield Station',
            'passenger_count': 2,
        }, format='json')
        force_authenticate(request, user=self.passenger)
        response = views.create_booking(request)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['booking_code'], 'OP001/00000001')
        self.assertEqual(response.data['status'], BookingStatus.PENDING_ASSIGNMENT)
        self.assertEqual(response.data['passenger_count'], 2)

    def test_create_booking_rejects_bad_latitude(self, mock_push):
        request = self.factory.post('/passenger/request/', {
            'operator_code': 'OP001',
            'pickup_latitude': '95.000000',
            'pickup_longitude': '-1.783000',
        }, format='json')
        force_authenticate(request, user=self.passenger)
        response = views.create_booking(request)

        self.assertEqual(response.status_code, 400)

    def test_second_live_booking_rejected(self, mock_push):
        make_booking(self.passenger)
        request = self.factory.post('/passenger/request/', {
            'operator_code': 'OP001',
            'pickup_latitude': '53.645000',
            'pickup_longitude': '-1.783000',
        }, format='json')
        force_authenticate(request, user=self.passenger)
        response = views.create_booking(request)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error'], 'active_booking_exists')

    def test_drivers_cannot_book(self, mock_push):
        driver = make_driver("near_driver")
        request = self.factory.post('/passenger/request/', {}, format='json')
        force_authenticate(request, user=driver.user)
        response = views.create_booking(request)

        self.assertEqual(response.status_code, 403)

    def test_current_booking(self, mock_push):
        make_booking(self.passenger)
        request = self.factory.get('/passenger/current/')
        force_authenticate(request, user=self.passenger)
        response = views.get_current_booking(request)

        self.assertTrue(response.data['has_active_booking'])
        self.assertFalse(response.data['driver_assigned'])

    def test_cancel_booking(self, mock_push):
        booking = make_booking(self.passenger)
        request = self.factory.post('/passenger/%d/cancel/' % booking.id, {'reason': 'changed plans'}, format='json')
        force_authenticate(request, user=self.passenger)
        response = views.cancel_booking(request, booking_id=booking.id)

        self.assertEqual(response.status_code, 200)
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.CANCELLED_BY_PASSENGER)


@patch("realtime.notifications.push_to_group", return_value=True)
class DriverOfferViewTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        make_operator("OP001")
        self.driver = make_driver("near_driver")
        self.booking, self.offer = make_assigned_booking(self.driver, passenger=make_passenger())

    def test_current_offer_includes_countdown(self, mock_push):
        request = self.factory.get('/offers/current/')
        force_authenticate(request, user=self.driver.user)
        response = views.get_current_offer(request)

        self.assertTrue(response.data['has_offer'])
        self.assertEqual(response.data['offer']['id'], self.offer.id)
        self.assertIn(response.data['offer']['seconds_remaining'], (29, 30))

    def test_lapsed_offer_is_not_shown_and_gets_expired(self, mock_push):
        RideOffer.objects.filter(pk=self.offer.pk).update(
            created_at=self.offer.created_at - timedelta(minutes=1),
            expires_at=self.offer.expires_at - timedelta(minutes=1),
        )

        request = self.factory.get('/offers/current/')
        force_authenticate(request, user=self.driver.user)
        response = views.get_current_offer(request)

        self.assertFalse(response.data['has_offer'])
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.status, RideOffer.STATUS_EXPIRED)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.PENDING_ASSIGNMENT)
        self.assertIsNone(self.booking.driver)

    def test_countdown(self, mock_push):
        request = self.factory.get('/offers/%d/countdown/' % self.offer.id)
        force_authenticate(request, user=self.driver.user)
        response = views.get_offer_countdown(request, offer_id=self.offer.id)

        self.assertEqual(response.status_code, 200)
        self.assertLessEqual(response.data['seconds_remaining'], 30)
        self.assertGreater(response.data['seconds_remaining'], 0)

    def test_accept(self, mock_push):
        request = self.factory.post('/offers/%d/accept/' % self.offer.id)
        force_authenticate(request, user=self.driver.user)
        response = views.accept_offer(request, offer_id=self.offer.id)

        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(response.data['booking']['accepted_at'])

    def test_accept_expired_offer_is_gone(self, mock_push):
        RideOffer.objects.filter(pk=self.offer.pk).update(
            created_at=self.offer.created_at - timedelta(minutes=1),
            expires_at=self.offer.expires_at - timedelta(minutes=1),
        )
        request = self.factory.post('/offers/%d/accept/' % self.offer.id)
        force_authenticate(request, user=self.driver.user)
        response = views.accept_offer(request, offer_id=self.offer.id)

        self.assertEqual(response.status_code, 410)
        self.assertEqual(response.data['error'], 'offer_expired')

    def test_decline(self, mock_push):
        request = self.factory.post('/offers/%d/decline/' % self.offer.id)
        force_authenticate(request, user=self.driver.user)
        response = views.decline_offer(request, offer_id=self.offer.id)

        self.assertEqual(response.status_code, 200)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.PENDING_ASSIGNMENT)

    def test_arrived_before_accept_conflicts(self, mock_push):
        request = self.factory.post('/handle/%d/arrived/' % self.booking.id)
        force_authenticate(request, user=self.driver.user)
        response = views.mark_arrived(request, booking_id=self.booking.id)

        self.assertEqual(response.status_code, 409)

    def test_passengers_cannot_accept(self, mock_push):
        request = self.factory.post('/offers/%d/accept/' % self.offer.id)
        force_authenticate(request, user=self.booking.passenger)
        response = views.accept_offer(request, offer_id=self.offer.id)

        self.assertEqual(response.status_code, 403)


@patch("realtime.notifications.push_to_group", return_value=True)
class OperatorManualAssignViewTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        make_operator("OP001", dispatch_mode="manual")
        self.operator_user = User.objects.create_user(
            username='op_staff', password='op1234', role='operator', operator_code='OP001',
        )
        self.booking = make_booking(make_passenger())

    def test_manual_assign(self, mock_push):
        driver = make_driver("chosen_driver")
        request = self.factory.post('/operator/%d/assign/' % self.booking.id, {'driver_id': driver.id}, format='json')
        force_authenticate(request, user=self.operator_user)
        response = views.manual_assign(request, booking_id=self.booking.id)

        self.assertEqual(response.status_code, 200)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.driver, driver)
        self.assertEqual(self.booking.dispatch_method, 'manual_operator')

    def test_other_operators_booking_is_not_found(self, mock_push):
        stranger = User.objects.create_user(
            username='other_staff', password='op1234', role='operator', operator_code='OP002',
        )
        driver = make_driver("chosen_driver")
        request = self.factory.post('/operator/%d/assign/' % self.booking.id, {'driver_id': driver.id}, format='json')
        force_authenticate(request, user=stranger)
        response = views.manual_assign(request, booking_id=self.booking.id)

        self.assertEqual(response.status_code, 404)
