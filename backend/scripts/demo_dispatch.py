import os
import sys
from pathlib import Path

import django

BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "taxi_backend.settings.settings")
# Run the assignment handler inline instead of through a worker
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")
django.setup()

from accounts.models import User  # noqa: E402
from drivers.models import Driver  # noqa: E402
from drivers import services as driver_services  # noqa: E402
from operators.models import OperatorDispatchSettings  # noqa: E402
from operators.services import onboard_operator  # noqa: E402
from bookings.models import Booking, BookingStatus  # noqa: E402



def ensure_operator(name: str) -> OperatorDispatchSettings:
    settings_obj = OperatorDispatchSettings.objects.filter(operator_name=name).first()
    if settings_obj is None:
        settings_obj = onboard_operator(name)
    settings_obj.auto_dispatch_enabled = True
    settings_obj.dispatch_mode = "auto"
    settings_obj.save(update_fields=["auto_dispatch_enabled", "dispatch_mode"])
    return settings_obj


def ensure_driver(username: str, operator_code: str, vehicle_number: str, lat: float, lon: float) -> Driver:
    user, created = User.objects.get_or_create(
        username=username,
        defaults={"role": "driver", "phone_number": "07700900001", "operator_code": operator_code},
    )
    if created:
        user.set_password("demo1234")
        user.save()

    driver = Driver.objects.filter(user=user).first()
    if driver is None:
        driver = driver_services.register_driver(user, operator_code, username, "Saloon", vehicle_number)
    return driver_services.go_online(driver, lat, lon)


def ensure_passenger(username: str) -> User:
    user, created = User.objects.get_or_create(
        username=username,
        defaults={"role": "passenger", "phone_number": "07700900000"},
    )
    if created:
        user.set_password("demo1234")
        user.save()
    return user


def main():
    operator = ensure_operator("Demo Cars")
    near = ensure_driver("dispatch_driver_near", operator.operator_code, "YK21 ABC", 53.6480, -1.7800)
    far = ensure_driver("dispatch_driver_far", operator.operator_code, "YK21 XYZ", 53.7000, -1.9000)
    passenger = ensure_passenger("dispatch_demo_passenger")

    Booking.objects.filter(passenger=passenger, status=BookingStatus.PENDING_ASSIGNMENT).delete()
    booking = Booking.objects.create(
        passenger=passenger,
        originating_operator_code=operator.operator_code,
        pickup_latitude=53.6450,
        pickup_longitude=-1.7830,
        pickup_address="Huddersfield Station",
        dropoff_address="Greenhead Park",
    )

    # Saving the booking queued (and, eagerly, ran) the assignment pass
    booking.refresh_from_db()
    print(f"Booking {booking.display_code} is {booking.status}")
    if booking.driver_id:
        chosen = near if booking.driver_id == near.pk else far
        offer = booking.offers.filter(status="pending").first()
        print(f"Driver: {chosen.name}  ETA: {booking.driver_eta_minutes} min  offer={offer.pk if offer else None}")
    else:
        print("No driver assigned. Check operator settings and driver availability.")


if __name__ == "__main__":
    main()
