from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from accounts.models import User
from drivers.models import Driver


class DriverProfileInline(admin.StackedInline):
    """Dispatch state of a driver account, editable next to the login."""
    model = Driver
    fk_name = "user"
    can_delete = False
    extra = 0
    fields = (
        ("driver_code", "operator_code"),
        "name",
        ("vehicle_category", "vehicle_number"),
        ("status", "availability", "is_paused"),
        ("current_latitude", "current_longitude", "last_location_update"),
    )
    readonly_fields = ("driver_code", "last_location_update")


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin panel for platform accounts (passengers, drivers, operator staff)"""

    list_display = ("username", "user_code", "role", "operator_code", "phone_number", "completed_rides")
    list_filter = ("role", "operator_code", "is_active")
    search_fields = ("username", "user_code", "phone_number", "operator_code")
    ordering = ("role", "username")
    readonly_fields = ("user_code", "completed_rides")

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Dispatch", {"fields": ("role", "operator_code", "user_code", "phone_number", "completed_rides")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Dispatch", {"fields": ("role", "operator_code", "phone_number")}),
    )

    def get_inlines(self, request, obj):
        # Only driver accounts carry a dispatch profile
        if obj is not None and obj.role == "driver":
            return [DriverProfileInline]
        return []
