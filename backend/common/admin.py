from django.contrib import admin
from common.models import SequentialCounter


@admin.register(SequentialCounter)
class SequentialCounterAdmin(admin.ModelAdmin):
    list_display = ("namespace", "current_value", "updated_at")
    search_fields = ("namespace",)
    readonly_fields = ("updated_at",)
