from django.contrib import admin
from operators.models import OperatorDispatchSettings


@admin.register(OperatorDispatchSettings)
class OperatorDispatchSettingsAdmin(admin.ModelAdmin):
    list_display = (
        "operator_code",
        "operator_name",
        "dispatch_mode",
        "auto_dispatch_enabled",
        "max_auto_accept_wait_time_minutes",
        "updated_at",
    )
    list_filter = ("dispatch_mode", "auto_dispatch_enabled")
    search_fields = ("operator_code", "operator_name")
    readonly_fields = ("operator_code", "created_at", "updated_at")
