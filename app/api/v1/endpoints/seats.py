"""
Seat management endpoints
"""

from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import CallerIdentity, require_admin
from app.schemas.response import ERROR_RESPONSES, MessageResponse
from app.schemas.seat import (
    SeatBatchUpdate,
    SeatBatchUpdateResponse,
    SeatBlockUpdate,
    SeatCreate,
    SeatResponse,
    SeatUpdate,
)
from app.services.availability_service import parse_seat_type
from app.services.notification_service import BookingNotifier, get_notifier
from app.services.seat_service import seat_service

router = APIRouter()


@router.get("", response_model=List[SeatResponse], responses=ERROR_RESPONSES)
async def list_seats(
    seat_type: Optional[str] = Query(None, alias="type"),
    include_blocked: bool = Query(False, alias="includeBlocked"),
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await seat_service.list_seats(db, parse_seat_type(seat_type), include_blocked)


@router.post("", response_model=SeatResponse, status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def create_seat(
    seat_data: SeatCreate,
    admin_user: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await seat_service.create_seat(db, seat_data)


@router.put("/batch-update", response_model=SeatBatchUpdateResponse, responses=ERROR_RESPONSES)
async def batch_update_seats(
    batch: SeatBatchUpdate,
    admin_user: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Save floor-plan positions for many seats at once
    """
    count = await seat_service.update_placements(db, batch.updates)
    return SeatBatchUpdateResponse(count=count)


@router.get("/{seat_id}", response_model=SeatResponse, responses=ERROR_RESPONSES)
async def get_seat(
    seat_id: UUID,
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await seat_service.get_seat(db, seat_id)


@router.patch("/{seat_id}", response_model=SeatResponse, responses=ERROR_RESPONSES)
async def update_seat(
    seat_id: UUID,
    seat_data: SeatUpdate,
    admin_user: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await seat_service.update_seat(db, seat_id, seat_data)


@router.delete("/{seat_id}", response_model=MessageResponse, responses=ERROR_RESPONSES)
async def delete_seat(
    seat_id: UUID,
    admin_user: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_session)
) -> Any:
    await seat_service.delete_seat(db, seat_id)
    return MessageResponse(message="Seat deleted")


@router.patch("/{seat_id}/block", response_model=SeatResponse, responses=ERROR_RESPONSES)
async def set_seat_block(
    seat_id: UUID,
    block: SeatBlockUpdate,
    admin_user: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    notifier: BookingNotifier = Depends(get_notifier)
) -> Any:
    """
    Block or unblock a seat; holders of upcoming bookings are notified on block
    """
    return await seat_service.set_block(
        db,
        admin_user,
        seat_id,
        is_blocked=block.is_blocked,
        reason=block.blocked_reason,
        notifier=notifier
    )
