"""Drivers app configuration."""

from django.apps import AppConfig


class DriversConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'drivers'

    def ready(self):
        # Location-change topic: driver saves fan out to their active bookings
        from . import signals  # noqa: F401
