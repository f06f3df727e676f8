from rest_framework import serializers

from drivers.serializers import DriverBasicSerializer
from services.offers import offer_countdown
from .models import Booking, RideOffer


class BookingSerializer(serializers.ModelSerializer):
    """Serializer for Bookings"""
    booking_code = serializers.CharField(source="display_code", read_only=True)
    driver = DriverBasicSerializer(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'booking_code', 'passenger_id', 'passenger_name', 'passenger_count',
            'originating_operator_code', 'preferred_operator_code',
            'pickup_latitude', 'pickup_longitude', 'pickup_address',
            'dropoff_latitude', 'dropoff_longitude', 'dropoff_address', 'stops',
            'fare_estimate', 'distance_miles', 'payment_method',
            'is_priority_pickup', 'wait_and_return', 'status',
            'driver', 'driver_name', 'driver_vehicle_details', 'dispatch_method',
            'driver_current_latitude', 'driver_current_longitude',
            'driver_location_updated_at', 'driver_eta_minutes',
            'created_at', 'timeout_at', 'accepted_at', 'arrived_at',
            'started_at', 'completed_at', 'cancelled_at', 'cancellation_reason',
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.ModelSerializer):
    """Serializer for creating bookings"""
    operator_code = serializers.CharField(max_length=16)
    pickup_latitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    pickup_longitude = serializers.DecimalField(max_digits=9, decimal_places=6)

    class Meta:
        model = Booking
        fields = [
            'operator_code', 'pickup_latitude', 'pickup_longitude', 'pickup_address',
            'dropoff_latitude', 'dropoff_longitude', 'dropoff_address', 'stops',
            'passenger_count', 'fare_estimate', 'distance_miles', 'payment_method',
            'is_priority_pickup', 'priority_fee_amount', 'account_job_pin',
            'driver_notes', 'wait_and_return',
        ]

    def validate_pickup_latitude(self, value):
        if not -90 <= value <= 90:
            raise serializers.ValidationError("Latitude must be between -90 and 90")
        return value

    def validate_pickup_longitude(self, value):
        if not -180 <= value <= 180:
            raise serializers.ValidationError("Longitude must be between -180 and 180")
        return value


class BookingCancelSerializer(serializers.Serializer):
    """Serializer for booking cancellation"""
    reason = serializers.CharField(required=False, allow_blank=True, max_length=64)


class RideOfferSerializer(serializers.ModelSerializer):
    """An offer as shown in the driver's offer dialog, with its live countdown"""
    seconds_remaining = serializers.SerializerMethodField()

    class Meta:
        model = RideOffer
        fields = [
            'id', 'booking_id', 'driver_id', 'offer_details', 'status',
            'created_at', 'expires_at', 'responded_at', 'seconds_remaining',
        ]
        read_only_fields = fields

    def get_seconds_remaining(self, obj):
        return offer_countdown(obj, now=self.context.get('now')).seconds_remaining


class ManualAssignSerializer(serializers.Serializer):
    driver_id = serializers.IntegerField()
