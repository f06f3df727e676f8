import logging

import redis
from channels.layers import get_channel_layer
from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from bookings.models import Booking, BookingStatus, RideOffer
from taxi_backend.celery import app as celery_app

logger = logging.getLogger(__name__)


class ServiceUnhealthy(Exception):
    pass


def _check_database():
    return {
        "pending_bookings": Booking.objects.filter(status=BookingStatus.PENDING_ASSIGNMENT).count(),
        "pending_offers": RideOffer.objects.filter(status=RideOffer.STATUS_PENDING).count(),
    }


def _check_redis():
    client = redis.Redis.from_url(settings.REDIS_URL, socket_timeout=3)
    client.ping()


def _check_channel_layer():
    channel_layer = get_channel_layer()
    if channel_layer is None:
        raise ServiceUnhealthy("no channel layer")
    return {"backend": type(channel_layer).__name__}


def _check_celery():
    # Eager mode runs tasks inline; there are no workers to ask
    if settings.CELERY_TASK_ALWAYS_EAGER:
        return {"mode": "eager"}

    replies = celery_app.control.ping(timeout=1)
    if not replies:
        raise ServiceUnhealthy("no workers responded")
    return {"workers": len(replies)}


CHECKS = (
    ("database", _check_database),
    ("redis", _check_redis),
    ("channels", _check_channel_layer),
    ("celery", _check_celery),
)


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """Health check endpoint for monitoring system status"""

    health_status = {
        "status": "healthy",
        "timestamp": timezone.now().isoformat(),
        "services": {},
    }

    for name, check in CHECKS:
        try:
            details = check()
        except Exception as e:
            logger.warning("Health check %s failed: %s", name, e)
            health_status["services"][name] = f"unhealthy: {e}"
            health_status["status"] = "unhealthy"
            continue

        health_status["services"][name] = "healthy"
        if details:
            health_status.setdefault("details", {})[name] = details

    status_code = (
        status.HTTP_200_OK
        if health_status["status"] == "healthy"
        else status.HTTP_503_SERVICE_UNAVAILABLE
    )
    return Response(health_status, status=status_code)
