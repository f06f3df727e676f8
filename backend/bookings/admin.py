"""Tells what to show in the Django admin interface for bookings app"""

from django.contrib import admin
from .models import Booking, RideOffer


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Booking admin"""
    list_display = ['booking_code', 'passenger_name', 'originating_operator_code', 'driver',
                    'status', 'dispatch_method', 'created_at', 'timeout_at']
    list_filter = ['status', 'dispatch_method', 'originating_operator_code']
    search_fields = ['booking_code', 'passenger_name', 'passenger_phone', 'pickup_address']
    readonly_fields = ['created_at', 'updated_at', 'accepted_at', 'arrived_at',
                       'started_at', 'completed_at', 'cancelled_at']
    date_hierarchy = 'created_at'


@admin.register(RideOffer)
class RideOfferAdmin(admin.ModelAdmin):
    list_display = ("booking", "driver", "status", "created_at", "expires_at", "responded_at")
    list_filter = ("status",)
    search_fields = ("booking__booking_code", "driver__driver_code")
