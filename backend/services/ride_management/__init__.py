"""
Ride management service - Core booking lifecycle operations.

This module handles:
    - Creating bookings
    - Driver progress (arrived, started, completed)
    - Passenger cancellation
    - Timing out bookings nobody picked up
"""

from .exceptions import (
    RideNotFoundError,
    RideNotAvailableError,
    OfferExpiredError,
    OfferNotFoundError,
    DriverNotAvailableError,
    ActiveRideExistsError,
    OperatorNotFoundError,
)

from .ride_lifecycle import (
    RideResult,
    check_active_booking,
    create_booking,
    cancel_booking_by_passenger,
    mark_arrived,
    start_ride,
    complete_ride,
    get_current_driver_booking,
)

from .timeout_sweeper import (
    SweepResult,
    TIMEOUT_CANCELLATION_REASON,
    sweep_timed_out_bookings,
)

__all__ = [
    # Lifecycle operations
    "RideResult",
    "check_active_booking",
    "create_booking",
    "cancel_booking_by_passenger",
    "mark_arrived",
    "start_ride",
    "complete_ride",
    "get_current_driver_booking",
    # Timeout sweep
    "SweepResult",
    "TIMEOUT_CANCELLATION_REASON",
    "sweep_timed_out_bookings",
    # Exceptions
    "RideNotFoundError",
    "RideNotAvailableError",
    "OfferExpiredError",
    "OfferNotFoundError",
    "DriverNotAvailableError",
    "ActiveRideExistsError",
    "OperatorNotFoundError",
]
