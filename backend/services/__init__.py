"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP layer and the Celery tasks that call them.

Modules:
    - ride_management: Booking lifecycle and timeout sweep
    - matching: Nearest-driver matching, dispatch policy and assignment
    - offers: Ride offer accept/decline/expiry
    - tracking: Driver location propagation into live bookings
"""

# ride_management first: the other services import its exceptions
from .ride_management import (
    create_booking,
    cancel_booking_by_passenger,
    mark_arrived,
    start_ride,
    complete_ride,
    sweep_timed_out_bookings,
    RideNotFoundError,
    RideNotAvailableError,
    OfferExpiredError,
    OfferNotFoundError,
    DriverNotAvailableError,
    ActiveRideExistsError,
    OperatorNotFoundError,
)
from .matching import (
    auto_assign_booking,
    manual_assign_booking,
    redispatch_pending_bookings,
)
from .offers import (
    accept_offer,
    decline_offer,
    expire_offer,
    expire_stale_offers,
)
from .tracking import propagate_driver_location

__all__ = [
    # Ride management
    "create_booking",
    "cancel_booking_by_passenger",
    "mark_arrived",
    "start_ride",
    "complete_ride",
    "sweep_timed_out_bookings",
    # Matching
    "auto_assign_booking",
    "manual_assign_booking",
    "redispatch_pending_bookings",
    # Offers
    "accept_offer",
    "decline_offer",
    "expire_offer",
    "expire_stale_offers",
    # Tracking
    "propagate_driver_location",
    # Exceptions
    "RideNotFoundError",
    "RideNotAvailableError",
    "OfferExpiredError",
    "OfferNotFoundError",
    "DriverNotAvailableError",
    "ActiveRideExistsError",
    "OperatorNotFoundError",
]
