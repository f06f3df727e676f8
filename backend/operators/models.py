from django.db import models


class OperatorDispatchSettings(models.Model):
    """Per-operator dispatch configuration, read by the assignment pipeline"""

    DISPATCH_MODE_CHOICES = [
        ('auto', 'Automatic'),
        ('manual', 'Manual'),
    ]

    operator_code = models.CharField(max_length=16, unique=True)
    operator_name = models.CharField(max_length=255, blank=True)

    dispatch_mode = models.CharField(max_length=10, choices=DISPATCH_MODE_CHOICES, default='auto')
    auto_dispatch_enabled = models.BooleanField(default=False)
    # 0 means no limit
    max_auto_accept_wait_time_minutes = models.PositiveIntegerField(default=30)

    # Stored for the pricing layer; dispatch never reads these
    enable_surge_pricing = models.BooleanField(default=False)
    operator_surge_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'operator_dispatch_settings'
        verbose_name_plural = 'operator dispatch settings'

    def __str__(self):
        return f"{self.operator_code} ({self.dispatch_mode})"
