from rest_framework import serializers
from drivers.models import Driver


class DriverSerializer(serializers.ModelSerializer):
    """
    Driver session state as seen by the driver app
    """
    username = serializers.CharField(source="user.username", read_only=True)

    class Meta:
        model = Driver
        fields = [
            "id",
            "driver_code",
            "username",
            "name",
            "operator_code",
            "vehicle_category",
            "vehicle_number",
            "status",
            "availability",
            "is_paused",
            "current_latitude",
            "current_longitude",
            "last_location_update",
        ]
        read_only_fields = fields


class DriverBasicSerializer(serializers.ModelSerializer):
    """
    Lite version of driver info for booking details
    (sent to passengers once a driver is assigned).
    """
    phone_number = serializers.CharField(source="user.phone_number", read_only=True)

    class Meta:
        model = Driver
        fields = [
            "id",
            "driver_code",
            "name",
            "phone_number",
            "vehicle_details",
            "current_latitude",
            "current_longitude",
        ]


class DriverAvailabilitySerializer(serializers.Serializer):
    """
    Serializer for toggling driver availability (online/offline).
    Going online needs a position.
    """
    availability = serializers.ChoiceField(choices=["online", "offline"])
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False)

    def validate(self, attrs):
        if attrs["availability"] == "online" and (
            attrs.get("latitude") is None or attrs.get("longitude") is None
        ):
            raise serializers.ValidationError("latitude and longitude are required to go online")
        return attrs


class LocationUpdateSerializer(serializers.Serializer):
    """
    Serializer for updating driver GPS location.
    """
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6)


class DriverPauseSerializer(serializers.Serializer):
    paused = serializers.BooleanField()
