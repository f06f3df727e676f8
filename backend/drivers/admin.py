from django.contrib import admin
from drivers.models import Driver


@admin.register(Driver)
class DriverAdmin(admin.ModelAdmin):
    """Admin panel for managing Drivers"""

    list_display = [
        "driver_code",
        "name",
        "operator_code",
        "status",
        "availability",
        "is_paused",
        "current_latitude",
        "current_longitude",
        "last_location_update",
    ]

    list_filter = [
        "status",
        "availability",
        "operator_code",
    ]

    search_fields = [
        "driver_code",
        "name",
        "user__username",
        "vehicle_number",
    ]

    readonly_fields = [
        "driver_code",
        "last_location_update",
        "created_at",
    ]

    ordering = ("driver_code",)
