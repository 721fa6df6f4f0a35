"""
Database models
"""

from app.models.user import User, UserRole
from app.models.seat import Seat, SeatType
from app.models.allocation import LongTermAllocation, AllocationStatus
from app.models.booking import Booking, BookingSlot, BookingStatus, DayHalf, SeatOccupancy

__all__ = [
    "User",
    "UserRole",
    "Seat",
    "SeatType",
    "LongTermAllocation",
    "AllocationStatus",
    "Booking",
    "BookingSlot",
    "BookingStatus",
    "DayHalf",
    "SeatOccupancy"
]
