from datetime import timedelta

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone


class BookingStatus:
    PENDING_ASSIGNMENT = 'pending_assignment'
    DRIVER_ASSIGNED = 'driver_assigned'
    ARRIVED_AT_PICKUP = 'arrived_at_pickup'
    IN_PROGRESS = 'in_progress'
    IN_PROGRESS_WAIT_AND_RETURN = 'in_progress_wait_and_return'
    COMPLETED = 'completed'
    CANCELLED_NO_DRIVER = 'cancelled_no_driver'
    CANCELLED_BY_PASSENGER = 'cancelled_by_passenger'
    CANCELLED_BY_OPERATOR = 'cancelled_by_operator'

    CHOICES = [
        (PENDING_ASSIGNMENT, 'Pending Assignment'),
        (DRIVER_ASSIGNED, 'Driver Assigned'),
        (ARRIVED_AT_PICKUP, 'Arrived at Pickup'),
        (IN_PROGRESS, 'In Progress'),
        (IN_PROGRESS_WAIT_AND_RETURN, 'In Progress (Wait & Return)'),
        (COMPLETED, 'Completed'),
        (CANCELLED_NO_DRIVER, 'Cancelled - No Driver'),
        (CANCELLED_BY_PASSENGER, 'Cancelled by Passenger'),
        (CANCELLED_BY_OPERATOR, 'Cancelled by Operator'),
    ]

    # Driver is attached and the trip is live
    ACTIVE = (DRIVER_ASSIGNED, ARRIVED_AT_PICKUP, IN_PROGRESS, IN_PROGRESS_WAIT_AND_RETURN)
    TERMINAL = (COMPLETED, CANCELLED_NO_DRIVER, CANCELLED_BY_PASSENGER, CANCELLED_BY_OPERATOR)


def default_timeout_at():
    return timezone.now() + timedelta(minutes=settings.BOOKING_TIMEOUT_MINUTES)


class Booking(models.Model):
    """One passenger trip request and its full lifecycle record"""

    DISPATCH_METHOD_CHOICES = [
        ('auto_system', 'Automatic'),
        ('manual_operator', 'Manual (Operator)'),
    ]
    PAYMENT_METHOD_CHOICES = [
        ('card', 'Card'),
        ('cash', 'Cash'),
        ('account', 'Account'),
    ]

    # Display ID: {operatorCode}/########
    booking_code = models.CharField(max_length=32, unique=True, null=True, blank=True)

    passenger = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='bookings'
    )
    passenger_name = models.CharField(max_length=255, blank=True)
    passenger_phone = models.CharField(max_length=20, blank=True)
    passenger_count = models.PositiveIntegerField(default=1)

    originating_operator_code = models.CharField(max_length=16, blank=True, db_index=True)
    preferred_operator_code = models.CharField(max_length=16, blank=True)

    # Pickup location
    pickup_latitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    pickup_longitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    pickup_address = models.TextField(blank=True)

    # Dropoff location
    dropoff_latitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    dropoff_longitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    dropoff_address = models.TextField(blank=True)

    # [{"address": ..., "latitude": ..., "longitude": ...}, ...]
    stops = models.JSONField(default=list, blank=True)

    # Opaque inputs from the pricing layer
    fare_estimate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    distance_miles = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, default='cash')
    is_priority_pickup = models.BooleanField(default=False)
    priority_fee_amount = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    account_job_pin = models.CharField(max_length=16, blank=True)
    driver_notes = models.TextField(blank=True)
    wait_and_return = models.BooleanField(default=False)

    status = models.CharField(
        max_length=32,
        choices=BookingStatus.CHOICES,
        default=BookingStatus.PENDING_ASSIGNMENT,
    )

    # Assignment
    driver = models.ForeignKey(
        'drivers.Driver',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='bookings'
    )
    driver_name = models.CharField(max_length=255, blank=True)
    driver_vehicle_details = models.CharField(max_length=255, blank=True)
    dispatch_method = models.CharField(max_length=20, choices=DISPATCH_METHOD_CHOICES, blank=True)
    # Set when an assignment pass found no driver; cleared on assignment
    last_match_failed_at = models.DateTimeField(null=True, blank=True)

    # Live tracking, written by location propagation
    driver_current_latitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    driver_current_longitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    driver_location_updated_at = models.DateTimeField(null=True, blank=True)
    driver_eta_minutes = models.PositiveIntegerField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    timeout_at = models.DateTimeField(default=default_timeout_at, db_index=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    arrived_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    cancellation_reason = models.CharField(max_length=64, blank=True)

    class Meta:
        db_table = 'bookings'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'timeout_at'], name='booking_status_timeout_idx'),
            models.Index(fields=['driver', 'status'], name='booking_driver_status_idx'),
        ]

    def __str__(self):
        return f"Booking {self.display_code} - {self.status}"

    @property
    def display_code(self) -> str:
        return self.booking_code or f"#{self.pk}"

    @property
    def operator_code(self) -> str:
        return self.originating_operator_code or self.preferred_operator_code


class RideOffer(models.Model):
    """A time-bounded proposal of one booking to one driver."""

    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_DECLINED = 'declined'
    STATUS_EXPIRED = 'expired'

    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        related_name='offers'
    )

    driver = models.ForeignKey(
        'drivers.Driver',
        on_delete=models.CASCADE,
        related_name='offers'
    )

    # Denormalized trip summary for the driver's offer dialog
    offer_details = models.JSONField(default=dict)

    status = models.CharField(
        max_length=20,
        choices=[
            (STATUS_PENDING, 'Pending'),
            (STATUS_ACCEPTED, 'Accepted'),
            (STATUS_DECLINED, 'Declined'),
            (STATUS_EXPIRED, 'Expired'),
        ],
        default=STATUS_PENDING,
    )

    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(db_index=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'ride_offers'
        ordering = ['-created_at']
        constraints = [
            # At most one live offer per booking at any time
            models.UniqueConstraint(
                fields=['booking'],
                condition=Q(status='pending'),
                name='unique_pending_offer_per_booking'
            )
        ]

    def __str__(self):
        return f"Offer #{self.id} - Booking {self.booking_id} -> Driver {self.driver_id} ({self.status})"

    def is_expired(self, now=None) -> bool:
        return self.expires_at <= (now or timezone.now())
