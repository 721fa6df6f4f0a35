"""
Booking schemas
"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from app.models.booking import BookingSlot, BookingStatus
from app.models.seat import SeatType
from app.services.recurrence import RecurrenceType
from app.schemas.base import BaseSchema, IDSchema


class BookingItem(BaseSchema):
    """One requested seat/date/slot"""
    seat_id: UUID
    booking_date: date
    slot: BookingSlot


class RecurrenceRequest(BaseSchema):
    type: RecurrenceType
    until: date


class BookingCreate(BaseSchema):
    """Booking creation schema"""
    bookings: List[BookingItem] = []
    group_bookings: bool = False
    recurrence: Optional[RecurrenceRequest] = None


class BookingSeatSummary(BaseSchema):
    id: UUID
    seat_code: str
    type: SeatType
    has_monitor: bool


class BookingUserSummary(BaseSchema):
    id: UUID
    full_name: str
    email: str
    department: Optional[str] = None


class BookingResponse(IDSchema):
    """Booking response schema"""
    user_id: UUID
    seat_id: UUID
    booking_date: date
    slot: BookingSlot
    status: BookingStatus
    group_id: Optional[UUID] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    seat: Optional[BookingSeatSummary] = None


class BookingHistoryItem(BookingResponse):
    """Booking with the status shown in the employee's history"""
    display_status: str

    @classmethod
    def from_booking(cls, booking, display_status: str) -> "BookingHistoryItem":
        data = BookingResponse.model_validate(booking).model_dump()
        return cls(**data, display_status=display_status)


class BookingWithUser(BookingResponse):
    user: Optional[BookingUserSummary] = None


class BookingCancelResponse(BaseSchema):
    success: bool = True
    booking: BookingResponse


class GroupCancelResponse(BaseSchema):
    success: bool = True
    group_id: UUID
    cancelled: int
