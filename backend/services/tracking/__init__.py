"""
Live trip tracking service.

This module handles:
    - Propagating driver locations into their active bookings
    - Refreshing the pickup ETA for assigned drivers
"""

from .location_propagator import (
    PropagationResult,
    location_changed,
    propagate_driver_location,
)

__all__ = [
    "PropagationResult",
    "location_changed",
    "propagate_driver_location",
]
