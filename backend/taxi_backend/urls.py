from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Driver session APIs (availability, location, pause, current ride)
    path('api/driver/', include('drivers.urls')),

    # Operator APIs (dispatch settings)
    path('api/operator/', include('operators.urls')),

    # Booking endpoints (passenger requests, driver offers, ride progress, manual dispatch)
    path('api/bookings/', include('bookings.urls')),
]
