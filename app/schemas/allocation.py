"""
Long-term allocation schemas
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID
from pydantic import Field

from app.models.allocation import AllocationStatus
from app.schemas.base import BaseSchema, IDSchema
from app.schemas.booking import BookingSeatSummary


class AllocationCreate(BaseSchema):
    seat_id: UUID
    start_date: date
    end_date: date
    reason: Optional[str] = Field(None, max_length=255)


class AllocationResponse(IDSchema):
    seat_id: UUID
    start_date: date
    end_date: date
    status: AllocationStatus
    reason: Optional[str] = None
    requested_by: UUID
    approved_by: Optional[UUID] = None
    created_at: datetime
    seat: Optional[BookingSeatSummary] = None
