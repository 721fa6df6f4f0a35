"""
Pydantic schemas for request and response validation
"""

from app.schemas.seat import (
    SeatCreate,
    SeatUpdate,
    SeatBlockUpdate,
    SeatBatchUpdate,
    SeatResponse
)
from app.schemas.availability import SeatAvailabilityResponse, SlotAvailability
from app.schemas.booking import (
    BookingCreate,
    BookingItem,
    BookingResponse,
    BookingHistoryItem,
    BookingWithUser,
    RecurrenceRequest
)
from app.schemas.allocation import AllocationCreate, AllocationResponse
from app.schemas.response import ErrorResponse, HealthResponse, MessageResponse

__all__ = [
    "SeatCreate",
    "SeatUpdate",
    "SeatBlockUpdate",
    "SeatBatchUpdate",
    "SeatResponse",
    "SeatAvailabilityResponse",
    "SlotAvailability",
    "BookingCreate",
    "BookingItem",
    "BookingResponse",
    "BookingHistoryItem",
    "BookingWithUser",
    "RecurrenceRequest",
    "AllocationCreate",
    "AllocationResponse",
    "ErrorResponse",
    "HealthResponse",
    "MessageResponse"
]
