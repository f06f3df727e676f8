"""Bookings app configuration."""

from django.apps import AppConfig


class BookingsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'bookings'

    def ready(self):
        # Booking-created topic: new bookings are handed to auto assignment
        from . import signals  # noqa: F401
