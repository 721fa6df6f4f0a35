"""
Seat directory: admin CRUD, floor-plan placement and blocking
"""

import logging
from datetime import date
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import db_manager
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.security import CallerIdentity
from app.models.booking import Booking, BookingStatus
from app.models.seat import Seat, SeatType
from app.schemas.seat import SeatCreate, SeatPlacement, SeatUpdate
from app.services.notification_service import BookingNotifier

logger = logging.getLogger(__name__)


class SeatService:
    """
    Seat operations used by the admin floor-plan editor
    """

    async def get_seat(self, db: AsyncSession, seat_id: UUID) -> Seat:
        seat = await db.get(Seat, seat_id)
        if not seat:
            raise NotFoundError("Seat", seat_id)
        return seat

    async def list_seats(
        self,
        db: AsyncSession,
        seat_type: Optional[SeatType] = None,
        include_blocked: bool = False
    ) -> List[Seat]:
        stmt = select(Seat)
        if seat_type:
            stmt = stmt.where(Seat.type == seat_type)
        if not include_blocked:
            stmt = stmt.where(Seat.is_blocked.is_(False))
        result = await db.execute(stmt.order_by(Seat.seat_code))
        return list(result.scalars().all())

    async def _ensure_code_free(self, db: AsyncSession, seat_code: str, exclude_id: Optional[UUID] = None):
        stmt = select(Seat.id).where(Seat.seat_code == seat_code)
        if exclude_id:
            stmt = stmt.where(Seat.id != exclude_id)
        if (await db.execute(stmt)).first():
            raise ConflictError(f"Seat code {seat_code} already exists", details={"seat_code": seat_code})

    async def create_seat(self, db: AsyncSession, seat_data: SeatCreate) -> Seat:
        message = f"Seat code {seat_data.seat_code} already exists"
        async with db_manager.unique_transaction(db, message, error_class=ConflictError):
            await self._ensure_code_free(db, seat_data.seat_code)
            seat = Seat(
                seat_code=seat_data.seat_code,
                type=SeatType(seat_data.type),
                has_monitor=seat_data.has_monitor,
                x=seat_data.x,
                y=seat_data.y,
            )
            db.add(seat)
            await db.flush()
            await db.refresh(seat)

        logger.info(f"Seat {seat.seat_code} created")
        return seat

    async def update_seat(self, db: AsyncSession, seat_id: UUID, seat_data: SeatUpdate) -> Seat:
        changes = seat_data.model_dump(exclude_unset=True)
        message = f"Seat code {changes.get('seat_code')} already exists"
        async with db_manager.unique_transaction(db, message, error_class=ConflictError):
            seat = await self.get_seat(db, seat_id)
            if changes.get("seat_code") and changes["seat_code"] != seat.seat_code:
                await self._ensure_code_free(db, changes["seat_code"], exclude_id=seat.id)

            for field, value in changes.items():
                if value is None:
                    continue
                setattr(seat, field, SeatType(value) if field == "type" else value)
            await db.flush()
            await db.refresh(seat)

        return seat

    async def update_placements(self, db: AsyncSession, placements: Sequence[SeatPlacement]) -> int:
        """
        Move seats on the floor plan; all or nothing
        """
        async with db_manager.transaction(db):
            ids = [placement.id for placement in placements]
            result = await db.execute(select(Seat).where(Seat.id.in_(ids)))
            seats = {seat.id: seat for seat in result.scalars().all()}

            for placement in placements:
                seat = seats.get(placement.id)
                if not seat:
                    raise NotFoundError("Seat", placement.id)
                seat.x = placement.x
                seat.y = placement.y

        logger.info(f"Updated placement of {len(placements)} seat(s)")
        return len(placements)

    async def delete_seat(self, db: AsyncSession, seat_id: UUID, today: Optional[date] = None) -> None:
        """
        Delete a seat with its history; refused while it has upcoming bookings
        """
        today = today or date.today()
        async with db_manager.transaction(db):
            seat = await self.get_seat(db, seat_id)
            upcoming = await db.execute(
                select(Booking.id).where(
                    and_(
                        Booking.seat_id == seat_id,
                        Booking.status == BookingStatus.ACTIVE,
                        Booking.booking_date >= today
                    )
                ).limit(1)
            )
            if upcoming.first():
                raise ValidationError(
                    "Cannot delete seat with active upcoming bookings. Please cancel them first."
                )
            seat_code = seat.seat_code
            db.expunge(seat)
            await db.execute(delete(Seat).where(Seat.id == seat_id))

        logger.info(f"Seat {seat_code} deleted")

    async def set_block(
        self,
        db: AsyncSession,
        caller: CallerIdentity,
        seat_id: UUID,
        is_blocked: bool,
        reason: Optional[str],
        notifier: BookingNotifier,
        today: Optional[date] = None
    ) -> Seat:
        """
        Block or unblock a seat. Blocking notifies holders of upcoming
        bookings on the seat; the bookings themselves stay ACTIVE.
        """
        async with db_manager.transaction(db):
            seat = await self.get_seat(db, seat_id)
            newly_blocked = is_blocked and not seat.is_blocked
            seat.is_blocked = is_blocked
            seat.blocked_reason = reason if is_blocked else None
            await db.flush()
            await db.refresh(seat)

        logger.info(
            f"Seat {seat.seat_code} {'blocked' if is_blocked else 'unblocked'} by {caller.id}",
            extra={"user_id": str(caller.id)}
        )

        if newly_blocked:
            await self._notify_affected(db, seat, reason or "", notifier, today or date.today())
        return seat

    async def _notify_affected(
        self,
        db: AsyncSession,
        seat: Seat,
        reason: str,
        notifier: BookingNotifier,
        today: date
    ) -> int:
        result = await db.execute(
            select(Booking)
            .options(selectinload(Booking.user), selectinload(Booking.seat))
            .where(
                and_(
                    Booking.seat_id == seat.id,
                    Booking.status == BookingStatus.ACTIVE,
                    Booking.booking_date >= today
                )
            )
            .order_by(Booking.booking_date)
        )
        affected = result.scalars().all()
        # Release the read transaction before calling out
        await db.commit()

        notified = 0
        for booking in affected:
            try:
                notifier.notify(booking, reason)
                notified += 1
            except Exception:
                logger.exception(f"Failed to notify user {booking.user_id} about booking {booking.id}")

        if affected:
            logger.info(f"Seat {seat.seat_code} blocked: notified {notified}/{len(affected)} upcoming booking(s)")
        return notified


seat_service = SeatService()
