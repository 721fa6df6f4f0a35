"""
Seat schemas for request/response models
"""

from typing import Optional, List
from uuid import UUID
from pydantic import Field

from app.models.seat import SeatType
from app.schemas.base import BaseSchema, IDSchema, TimestampSchema


class SeatBase(BaseSchema):
    seat_code: str = Field(..., min_length=1, max_length=20)
    type: SeatType = SeatType.SOLO
    has_monitor: bool = False


class SeatCreate(SeatBase):
    x: Optional[float] = Field(None, ge=0, le=100)
    y: Optional[float] = Field(None, ge=0, le=100)


class SeatUpdate(BaseSchema):
    seat_code: Optional[str] = Field(None, min_length=1, max_length=20)
    type: Optional[SeatType] = None
    has_monitor: Optional[bool] = None


class SeatBlockUpdate(BaseSchema):
    is_blocked: bool
    blocked_reason: Optional[str] = Field(None, max_length=255)


class SeatPlacement(BaseSchema):
    id: UUID
    x: Optional[float] = Field(None, ge=0, le=100)
    y: Optional[float] = Field(None, ge=0, le=100)


class SeatBatchUpdate(BaseSchema):
    updates: List[SeatPlacement]


class SeatBatchUpdateResponse(BaseSchema):
    success: bool = True
    count: int


class SeatResponse(SeatBase, IDSchema, TimestampSchema):
    is_blocked: bool
    blocked_reason: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
