from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from drivers.models import Driver
from drivers.serializers import (
    DriverSerializer,
    DriverAvailabilitySerializer,
    LocationUpdateSerializer,
    DriverPauseSerializer,
)
from bookings.serializers import BookingSerializer
from services.ride_management import get_current_driver_booking
from services.ride_management.exceptions import DriverNotAvailableError

from drivers import services


# Utility: Ensure request.user is a driver
def require_driver(user):
    if user.role != "driver":
        return False, Response({"error": "Only drivers allowed"}, status=403)
    try:
        driver = user.driver_profile
        return True, driver
    except Driver.DoesNotExist:
        return False, Response({"error": "Driver profile not found"}, status=404)


class DriverAvailabilityView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, driver = require_driver(request.user)
        if ok is False:
            return driver

        return Response(DriverSerializer(driver).data)

    def put(self, request):
        ok, driver = require_driver(request.user)
        if ok is False:
            return driver

        serializer = DriverAvailabilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            if data["availability"] == "online":
                services.go_online(driver, data["latitude"], data["longitude"])
            else:
                services.go_offline(driver)
        except DriverNotAvailableError as e:
            return Response({"error": str(e)}, status=400)

        return Response({
            "message": f"You are now {driver.availability}",
            "driver": DriverSerializer(driver).data,
        })


class DriverLocationUpdateView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ok, driver = require_driver(request.user)
        if ok is False:
            return driver

        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]

        try:
            services.update_driver_location(driver, lat, lon)
        except DriverNotAvailableError as e:
            return Response({"error": str(e)}, status=400)

        return Response({
            "message": "Location updated",
            "latitude": float(lat),
            "longitude": float(lon),
            "availability": driver.availability,
        })


class DriverPauseView(APIView):
    """Stop (or resume) automatic offers for this driver."""
    permission_classes = [IsAuthenticated]

    def put(self, request):
        ok, driver = require_driver(request.user)
        if ok is False:
            return driver

        serializer = DriverPauseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.set_driver_paused(driver, serializer.validated_data["paused"])

        return Response({"is_paused": driver.is_paused})


class DriverCurrentRideView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, driver = require_driver(request.user)
        if ok is False:
            return driver

        booking = get_current_driver_booking(driver)
        if not booking:
            return Response({"message": "No active ride"}, status=404)

        return Response(BookingSerializer(booking).data)
