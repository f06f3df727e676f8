"""Common utility functions."""

from .geo import calculate_distance, has_valid_coordinates

__all__ = [
    "calculate_distance",
    "has_valid_coordinates",
]
