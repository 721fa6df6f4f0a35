"""
Availability schemas
"""

from typing import Optional
from uuid import UUID
from pydantic import BaseModel

from app.models.seat import SeatType
from app.schemas.base import BaseSchema


class SlotAvailability(BaseModel):
    """Bookable slots of one seat on one date"""
    AM: bool
    PM: bool
    FULL_DAY: bool


class SeatAvailabilityResponse(BaseSchema):
    id: UUID
    seat_code: str
    type: SeatType
    has_monitor: bool
    is_blocked: bool
    x: Optional[float] = None
    y: Optional[float] = None
    availability: SlotAvailability
