from django.contrib import admin
from realtime.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "type", "title", "read", "is_reminder", "created_at")
    list_filter = ("type", "read", "is_reminder")
    search_fields = ("user__username", "title", "related_booking__booking_code")
    readonly_fields = ("created_at", "last_reminded_at", "reminder_count")
