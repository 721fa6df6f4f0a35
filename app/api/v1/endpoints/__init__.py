"""
API endpoints module
"""

from . import allocations, bookings, seats, health

__all__ = [
    "allocations",
    "bookings",
    "seats",
    "health"
]
