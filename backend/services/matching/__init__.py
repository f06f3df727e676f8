"""
Driver matching and assignment service.

This module handles:
    - Nearest-driver selection and ETA estimation
    - Operator dispatch policy (auto/manual, wait-time gate)
    - Assigning bookings and creating ride offers
"""

from .geo_matcher import find_nearest, estimate_eta_minutes
from .dispatch_policy import may_auto_assign, estimate_operator_wait_minutes
from .assignment import (
    AssignmentResult,
    auto_assign_booking,
    manual_assign_booking,
    redispatch_pending_bookings,
    build_offer_details,
)

__all__ = [
    "find_nearest",
    "estimate_eta_minutes",
    "may_auto_assign",
    "estimate_operator_wait_minutes",
    "AssignmentResult",
    "auto_assign_booking",
    "manual_assign_booking",
    "redispatch_pending_bookings",
    "build_offer_details",
]
