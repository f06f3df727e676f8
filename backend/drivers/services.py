import logging

from django.db import transaction
from django.utils import timezone

from common.counters import next_driver_code
from common.utils.geo import has_valid_coordinates
from drivers.models import Driver
from services.ride_management.exceptions import DriverNotAvailableError

logger = logging.getLogger(__name__)


@transaction.atomic
def register_driver(user, operator_code: str, name: str, vehicle_category: str = "",
                    vehicle_number: str = "") -> Driver:
    """
    Create a driver under an operator with its {operatorCode}/DR#### code.
    """
    driver = Driver.objects.create(
        user=user,
        driver_code=next_driver_code(operator_code),
        name=name,
        operator_code=operator_code,
        vehicle_category=vehicle_category,
        vehicle_number=vehicle_number,
    )
    logger.info("Registered driver %s for operator %s", driver.driver_code, operator_code)
    return driver


# DRIVER AVAILABILITY
def go_online(driver: Driver, lat, lon) -> Driver:
    """
    Driver toggles online. A usable position is required, otherwise the
    driver could never be matched.
    """
    if driver.status != "Active":
        raise DriverNotAvailableError("Driver account is not active")
    if not has_valid_coordinates(lat, lon):
        raise DriverNotAvailableError("A valid location is required to go online")

    driver.availability = "online"
    driver.is_paused = False
    driver.current_latitude = lat
    driver.current_longitude = lon
    driver.last_location_update = timezone.now()
    driver.save(update_fields=[
        "availability", "is_paused", "current_latitude", "current_longitude", "last_location_update",
    ])
    return driver


def go_offline(driver: Driver) -> Driver:
    """
    Driver toggles offline. Location is cleared so the driver can't be
    matched on a stale position, and any offer they're sitting on is
    handed back.
    """
    driver.availability = "offline"
    driver.is_paused = False
    driver.current_latitude = None
    driver.current_longitude = None
    driver.save(update_fields=["availability", "is_paused", "current_latitude", "current_longitude"])

    from services.offers import release_pending_offers_for_driver
    released = release_pending_offers_for_driver(driver.pk, reason="declined")
    if released:
        logger.info("Driver %s went offline, released %d pending offer(s)", driver.pk, released)

    return driver


def set_driver_paused(driver: Driver, paused: bool) -> Driver:
    """Pause/resume automatic offers for this driver only."""
    driver.is_paused = paused
    driver.save(update_fields=["is_paused"])
    return driver


def update_driver_location(driver: Driver, lat, lon) -> Driver:
    """
    Update driver location, used by the HTTP location endpoint.

    Active bookings are refreshed by the driver post-save handler.
    """
    if driver.availability != "online":
        raise DriverNotAvailableError("Go online before sending location updates")
    if not has_valid_coordinates(lat, lon):
        raise DriverNotAvailableError("Invalid coordinates")

    driver.current_latitude = lat
    driver.current_longitude = lon
    driver.last_location_update = timezone.now()
    driver.save(update_fields=["current_latitude", "current_longitude", "last_location_update"])
    return driver
