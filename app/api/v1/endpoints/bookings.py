"""
Booking endpoints: creation, availability, history and cancellation
"""

from typing import Any, List, Optional
from uuid import UUID
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.database import get_session
from app.core.exceptions import RateLimitError
from app.core.metrics import metrics_collector
from app.core.redis import redis_manager
from app.core.security import CallerIdentity, get_current_user, require_admin
from app.schemas.availability import SeatAvailabilityResponse
from app.schemas.booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingHistoryItem,
    BookingResponse,
    BookingWithUser,
    GroupCancelResponse,
)
from app.schemas.response import ERROR_RESPONSES
from app.services.availability_service import availability_calculator, parse_date, parse_seat_type
from app.services.booking_service import booking_coordinator

logger = logging.getLogger(__name__)
router = APIRouter()

RATE_LIMIT_WINDOW = 60


async def enforce_booking_rate_limit(caller: CallerIdentity) -> None:
    """
    Per-user limit on booking attempts; Redis errors fail open
    """
    if not settings.RATE_LIMIT_ENABLED:
        return

    limit = settings.RATE_LIMIT_BOOKING_PER_MINUTE
    rate_limited, current_count = await redis_manager.is_rate_limited(
        f"user:{caller.id}:bookings",
        limit=limit,
        window=RATE_LIMIT_WINDOW
    )
    if rate_limited:
        await metrics_collector.record_rate_limit_hit()
        logger.warning(
            f"Booking rate limit hit: {current_count}/{limit} per minute",
            extra={"user_id": str(caller.id)}
        )
        raise RateLimitError(limit, RATE_LIMIT_WINDOW)


@router.post(
    "",
    response_model=List[BookingResponse],
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES
)
async def create_bookings(
    booking_data: BookingCreate,
    current_user: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Book one or more seat slots, optionally recurring; all or nothing
    """
    await enforce_booking_rate_limit(current_user)
    return await booking_coordinator.submit(db, current_user, booking_data)


@router.get("/availability", response_model=List[SeatAvailabilityResponse], responses=ERROR_RESPONSES)
async def get_availability(
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    seat_type: Optional[str] = Query(None, alias="seatType"),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Unblocked, unallocated seats with their free slots for a date
    """
    target_date = parse_date(date)
    return await availability_calculator.get_availability(db, target_date, parse_seat_type(seat_type))


@router.get("/my-bookings", response_model=List[BookingHistoryItem], responses=ERROR_RESPONSES)
async def get_my_bookings(
    current_user: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_session)
) -> Any:
    rows = await booking_coordinator.list_user_bookings(db, current_user)
    return [BookingHistoryItem.from_booking(booking, display) for booking, display in rows]


@router.get("/by-date", response_model=List[BookingWithUser], responses=ERROR_RESPONSES)
async def get_bookings_by_date(
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    current_user: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Who sits where on a date
    """
    return await booking_coordinator.list_bookings_by_date(db, parse_date(date))


@router.get("", response_model=List[BookingWithUser], responses=ERROR_RESPONSES)
async def list_bookings(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    admin_user: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await booking_coordinator.list_bookings(
        db,
        start_date=parse_date(start_date, "startDate") if start_date else None,
        end_date=parse_date(end_date, "endDate") if end_date else None
    )


@router.delete("/groups/{group_id}", response_model=GroupCancelResponse, responses=ERROR_RESPONSES)
async def cancel_booking_group(
    group_id: UUID,
    current_user: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Cancel every active booking of a recurring or grouped request
    """
    cancelled = await booking_coordinator.cancel_group(db, current_user, group_id)
    return GroupCancelResponse(group_id=group_id, cancelled=cancelled)


@router.delete("/{booking_id}", response_model=BookingCancelResponse, responses=ERROR_RESPONSES)
async def cancel_booking(
    booking_id: UUID,
    current_user: CallerIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_session)
) -> Any:
    booking = await booking_coordinator.cancel_booking(db, current_user, booking_id)
    return BookingCancelResponse(booking=BookingResponse.model_validate(booking))
