from django.urls import path
from .views import (
    DriverAvailabilityView,
    DriverLocationUpdateView,
    DriverPauseView,
    DriverCurrentRideView,
)

urlpatterns = [
    path("availability/", DriverAvailabilityView.as_view(), name="driver-availability"),
    path("location/", DriverLocationUpdateView.as_view(), name="driver-location"),
    path("pause/", DriverPauseView.as_view(), name="driver-pause"),
    path("current-ride/", DriverCurrentRideView.as_view(), name="driver-current-ride"),
]
