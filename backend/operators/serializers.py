from rest_framework import serializers

from operators.models import OperatorDispatchSettings


class OperatorDispatchSettingsSerializer(serializers.ModelSerializer):
    """Operator-editable dispatch settings"""

    class Meta:
        model = OperatorDispatchSettings
        fields = [
            "operator_code",
            "operator_name",
            "dispatch_mode",
            "auto_dispatch_enabled",
            "max_auto_accept_wait_time_minutes",
            "enable_surge_pricing",
            "operator_surge_percentage",
            "updated_at",
        ]
        read_only_fields = ["operator_code", "updated_at"]

    def validate_operator_surge_percentage(self, value):
        if value < 0:
            raise serializers.ValidationError("Surge percentage cannot be negative")
        return value
