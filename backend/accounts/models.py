from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Extended user model with platform role"""
    ROLE_CHOICES = [
        ('passenger', 'Passenger'),
        ('driver', 'Driver'),
        ('operator', 'Operator'),
        ('admin', 'Admin'),
    ]

    # Role & basic info
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='passenger')
    phone_number = models.CharField(max_length=20, blank=True)
    # Human-readable ID (CU001 for passengers), assigned on registration
    user_code = models.CharField(max_length=32, unique=True, null=True, blank=True)
    # Operator the account belongs to (operators and their staff)
    operator_code = models.CharField(max_length=16, blank=True, db_index=True)
    completed_rides = models.IntegerField(default=0)

    class Meta:
        db_table = 'users'

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
