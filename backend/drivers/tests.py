from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from bookings.tests.factories import make_assigned_booking, make_driver, make_operator, make_passenger
from drivers import services
from drivers.views import DriverAvailabilityView, DriverCurrentRideView, DriverLocationUpdateView, DriverPauseView
from services.ride_management.exceptions import DriverNotAvailableError


class DriverSessionTests(TestCase):
    def setUp(self):
        make_operator("OP001")
        self.driver = make_driver("session_driver", location=None, availability="offline")

    def test_register_driver_gets_operator_scoped_code(self):
        user = User.objects.create_user(username="new_driver", password="driver1234", role="driver")

        first = services.register_driver(user, "OP001", "New Driver", "Saloon", "YK21 NEW")

        self.assertEqual(first.driver_code, "OP001/DR0001")
        self.assertEqual(first.vehicle_details, "Saloon - YK21 NEW")
        self.assertEqual(first.availability, "offline")

    def test_go_online_needs_valid_location(self):
        with self.assertRaises(DriverNotAvailableError):
            services.go_online(self.driver, None, None)
        with self.assertRaises(DriverNotAvailableError):
            services.go_online(self.driver, 123.0, 0)

    def test_inactive_driver_cannot_go_online(self):
        self.driver.status = "Inactive"
        self.driver.save()

        with self.assertRaises(DriverNotAvailableError):
            services.go_online(self.driver, 53.648, -1.78)

    def test_go_online_then_offline_clears_location_and_pause(self):
        services.go_online(self.driver, 53.648, -1.78)
        services.set_driver_paused(self.driver, True)

        services.go_offline(self.driver)

        self.driver.refresh_from_db()
        self.assertEqual(self.driver.availability, "offline")
        self.assertFalse(self.driver.is_paused)
        self.assertIsNone(self.driver.current_latitude)
        self.assertIsNone(self.driver.current_longitude)

    def test_pause_is_per_driver(self):
        other = make_driver("other_driver")

        services.set_driver_paused(self.driver, True)

        other.refresh_from_db()
        self.assertFalse(other.is_paused)
        self.driver.refresh_from_db()
        self.assertTrue(self.driver.is_paused)

    def test_location_update_requires_online(self):
        with self.assertRaises(DriverNotAvailableError):
            services.update_driver_location(self.driver, 53.648, -1.78)


class DriverViewTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        make_operator("OP001")
        self.driver = make_driver("view_driver", location=None, availability="offline")

    def test_go_online(self):
        request = self.factory.put('/availability/', {
            'availability': 'online', 'latitude': '53.648000', 'longitude': '-1.780000',
        }, format='json')
        force_authenticate(request, user=self.driver.user)
        response = DriverAvailabilityView.as_view()(request)

        self.assertEqual(response.status_code, 200)
        self.driver.refresh_from_db()
        self.assertEqual(self.driver.availability, "online")

    def test_go_online_without_location_rejected(self):
        request = self.factory.put('/availability/', {'availability': 'online'}, format='json')
        force_authenticate(request, user=self.driver.user)
        response = DriverAvailabilityView.as_view()(request)

        self.assertEqual(response.status_code, 400)

    def test_location_while_offline_rejected(self):
        request = self.factory.post('/location/', {'latitude': '53.648000', 'longitude': '-1.780000'}, format='json')
        force_authenticate(request, user=self.driver.user)
        response = DriverLocationUpdateView.as_view()(request)

        self.assertEqual(response.status_code, 400)

    def test_pause(self):
        request = self.factory.put('/pause/', {'paused': True}, format='json')
        force_authenticate(request, user=self.driver.user)
        response = DriverPauseView.as_view()(request)

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['is_paused'])

    def test_current_ride(self):
        booking, _ = make_assigned_booking(self.driver, passenger=make_passenger(), accepted=True)
        request = self.factory.get('/current-ride/')
        force_authenticate(request, user=self.driver.user)
        response = DriverCurrentRideView.as_view()(request)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['id'], booking.id)

    def test_passengers_are_turned_away(self):
        request = self.factory.get('/current-ride/')
        force_authenticate(request, user=make_passenger())
        response = DriverCurrentRideView.as_view()(request)

        self.assertEqual(response.status_code, 403)
