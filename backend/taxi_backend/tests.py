from unittest.mock import patch

from django.test import TestCase, override_settings
from rest_framework.test import APIRequestFactory

from bookings.models import Booking, BookingStatus
from taxi_backend.views import health_check


@patch("taxi_backend.views.redis.Redis.from_url")
class HealthCheckTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()

    def _get(self):
        return health_check(self.factory.get('/health/'))

    def test_healthy(self, mock_from_url):
        Booking.objects.create(status=BookingStatus.PENDING_ASSIGNMENT)

        response = self._get()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['services']['database'], 'healthy')
        self.assertEqual(response.data['details']['database']['pending_bookings'], 1)
        self.assertEqual(response.data['details']['celery'], {'mode': 'eager'})
        mock_from_url.return_value.ping.assert_called_once()

    def test_redis_down(self, mock_from_url):
        mock_from_url.return_value.ping.side_effect = ConnectionError("refused")

        response = self._get()

        self.assertEqual(response.status_code, 503)
        self.assertTrue(response.data['services']['redis'].startswith('unhealthy'))

    @override_settings(CELERY_TASK_ALWAYS_EAGER=False)
    @patch("taxi_backend.views.celery_app.control.ping", return_value=[])
    def test_no_celery_workers(self, mock_ping, mock_from_url):
        response = self._get()

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data['services']['celery'], 'unhealthy: no workers responded')
        mock_ping.assert_called_once_with(timeout=1)

    @override_settings(CELERY_TASK_ALWAYS_EAGER=False)
    @patch(
        "taxi_backend.views.celery_app.control.ping",
        return_value=[{"celery@worker1": {"ok": "pong"}}, {"celery@worker2": {"ok": "pong"}}],
    )
    def test_celery_workers_respond(self, mock_ping, mock_from_url):
        response = self._get()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['details']['celery'], {'workers': 2})

    @patch("taxi_backend.views.get_channel_layer", return_value=None)
    def test_missing_channel_layer(self, mock_layer, mock_from_url):
        response = self._get()

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data['services']['channels'], 'unhealthy: no channel layer')
