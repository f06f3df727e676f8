from django.db import models
from django.utils import timezone
from django.conf import settings

User = settings.AUTH_USER_MODEL


class Driver(models.Model):
    """A driver's live dispatch-relevant state"""
    STATUS_CHOICES = [
        ('Active', 'Active'),
        ('Inactive', 'Inactive'),
    ]
    AVAILABILITY_CHOICES = [
        ('online', 'Online'),
        ('offline', 'Offline'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='driver_profile')
    driver_code = models.CharField(max_length=32, unique=True, null=True, blank=True)
    name = models.CharField(max_length=255)
    operator_code = models.CharField(max_length=16, db_index=True)

    # Vehicle details
    vehicle_category = models.CharField(max_length=50, blank=True)
    vehicle_number = models.CharField(max_length=20, blank=True)

    # Account status is operator-controlled; availability is the driver's own toggle
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='Active')
    availability = models.CharField(max_length=10, choices=AVAILABILITY_CHOICES, default='offline')
    # Per-session "stop sending me offers" switch
    is_paused = models.BooleanField(default=False)

    # Cleared when the driver goes offline so no stale position is ever matched
    current_latitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    current_longitude = models.DecimalField(max_digits=10, decimal_places=6, null=True, blank=True)
    last_location_update = models.DateTimeField(default=timezone.now)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'drivers'
        indexes = [
            models.Index(fields=['operator_code', 'status'], name='driver_operator_status_idx'),
        ]

    def __str__(self):
        return f"{self.driver_code or self.pk} - {self.name}"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        # Remember the stored position so location-change handlers can skip no-op saves
        instance._loaded_location = (
            instance.__dict__.get('current_latitude'),
            instance.__dict__.get('current_longitude'),
        )
        return instance

    @property
    def has_location(self) -> bool:
        return self.current_latitude is not None and self.current_longitude is not None

    @property
    def vehicle_details(self) -> str:
        return " - ".join(part for part in (self.vehicle_category, self.vehicle_number) if part)
