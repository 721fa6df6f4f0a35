"""
Booking transaction coordinator: validates a batch of booking tuples and
commits it all-or-nothing, plus cancellation and booking queries
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence, Set, Tuple
from uuid import UUID, uuid4

from sqlalchemy import select, update, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.core.database import db_manager
from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.core.logging import BookingLoggerAdapter
from app.core.metrics import metrics_collector
from app.core.security import CallerIdentity
from app.models.allocation import LongTermAllocation, AllocationStatus
from app.models.booking import Booking, BookingSlot, BookingStatus, SeatOccupancy
from app.models.seat import Seat
from app.schemas.booking import BookingCreate
from app.services.recurrence import (
    BaseSelection,
    BookingTuple,
    RecurrenceExpander,
    RecurrenceRule,
    RecurrenceType,
    recurrence_expander,
    should_group,
)

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "One or more seats already booked for selected slot"


class DisplayStatus:
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


def display_status(booking: Booking, today: Optional[date] = None) -> str:
    """Status shown in booking history"""
    if booking.status == BookingStatus.CANCELLED:
        return DisplayStatus.CANCELLED
    if booking.booking_date < (today or date.today()):
        return DisplayStatus.COMPLETED
    return DisplayStatus.CONFIRMED


@dataclass(frozen=True)
class BookingPlan:
    tuples: List[BookingTuple]
    group_id: Optional[UUID]


class BookingCoordinator:
    """
    Creates and cancels bookings. Exclusivity of FULL_DAY against AM/PM is
    enforced by the seat_occupancies unique constraint, so concurrent requests
    for the same seat half are decided at commit time.
    """

    def __init__(
        self,
        expander: RecurrenceExpander = recurrence_expander,
        max_bookings: Optional[int] = None
    ):
        self.expander = expander
        self.max_bookings = max_bookings or settings.MAX_BOOKINGS_PER_REQUEST

    def plan(self, request: BookingCreate, today: Optional[date] = None) -> BookingPlan:
        """
        Turn a booking request into concrete tuples and a group id
        """
        items = request.bookings
        if not items:
            raise ValidationError("No bookings provided", field="bookings")

        rule = None
        if request.recurrence is not None:
            anchors = {item.booking_date for item in items}
            if len(anchors) != 1:
                raise ValidationError(
                    "Recurring bookings must share a single start date",
                    field="bookings"
                )
            rule = RecurrenceRule(
                type=RecurrenceType(request.recurrence.type),
                until=request.recurrence.until
            )
            selections = [BaseSelection(seat_id=item.seat_id, slot=BookingSlot(item.slot)) for item in items]
            tuples = self.expander.expand(selections, anchors.pop(), rule, today=today)
        else:
            tuples = [
                BookingTuple(seat_id=item.seat_id, booking_date=item.booking_date, slot=BookingSlot(item.slot))
                for item in items
            ]

        group_id = uuid4() if should_group(rule, request.group_bookings, len(tuples)) else None
        return BookingPlan(tuples=tuples, group_id=group_id)

    async def submit(
        self,
        db: AsyncSession,
        caller: CallerIdentity,
        request: BookingCreate,
        today: Optional[date] = None
    ) -> List[Booking]:
        """
        Plan and commit a booking request
        """
        async with metrics_collector.track_booking_operation("create"):
            plan = self.plan(request, today=today)
            return await self.create_bookings(db, caller, plan.tuples, plan.group_id, today=today)

    def validate_batch(self, tuples: Sequence[BookingTuple], today: Optional[date] = None) -> None:
        """
        Checks that need no database access; run before any transaction
        """
        if not tuples:
            raise ValidationError("No bookings provided", field="bookings")

        if len(tuples) > self.max_bookings:
            raise ValidationError(
                f"Maximum {self.max_bookings} bookings per request",
                field="bookings"
            )

        today = today or date.today()
        if any(t.booking_date < today for t in tuples):
            raise ValidationError("Cannot book dates in the past", field="bookingDate")

        claimed: Set[Tuple[UUID, date, str]] = set()
        for t in tuples:
            for half in t.slot.halves:
                key = (t.seat_id, t.booking_date, half.value)
                if key in claimed:
                    raise ValidationError(
                        "Request contains overlapping selections for the same seat and date",
                        field="bookings"
                    )
                claimed.add(key)

    async def create_bookings(
        self,
        db: AsyncSession,
        caller: CallerIdentity,
        tuples: Sequence[BookingTuple],
        group_id: Optional[UUID] = None,
        today: Optional[date] = None
    ) -> List[Booking]:
        """
        Insert every tuple as an ACTIVE booking, or none of them
        """
        log = BookingLoggerAdapter(logger, {"user_id": str(caller.id)})
        self.validate_batch(tuples, today=today)

        async with db_manager.unique_transaction(db, CONFLICT_MESSAGE):
            seats = await self._load_seats(db, {t.seat_id for t in tuples})
            await self._check_allocations(db, tuples, seats)

            bookings = []
            for t in tuples:
                booking = Booking(
                    user_id=caller.id,
                    seat_id=t.seat_id,
                    booking_date=t.booking_date,
                    slot=t.slot,
                    status=BookingStatus.ACTIVE,
                    group_id=group_id,
                )
                booking.occupancies = [
                    SeatOccupancy(seat_id=t.seat_id, occupancy_date=t.booking_date, half=half)
                    for half in t.slot.halves
                ]
                bookings.append(booking)
            db.add_all(bookings)
            await db.flush()
            # Load server defaults while still inside the write transaction
            created = await self._load_bookings(db, [b.id for b in bookings])

        log.info(f"Created {len(created)} booking(s), group={group_id}")
        await metrics_collector.record_created(len(created))
        return created

    async def _load_seats(self, db: AsyncSession, seat_ids: Set[UUID]) -> Dict[UUID, Seat]:
        result = await db.execute(select(Seat).where(Seat.id.in_(seat_ids)))
        seats = {seat.id: seat for seat in result.scalars().all()}

        for seat_id in seat_ids:
            if seat_id not in seats:
                raise NotFoundError("Seat", seat_id)

        blocked = sorted(seat.seat_code for seat in seats.values() if seat.is_blocked)
        if blocked:
            raise ValidationError(f"Seat {', '.join(blocked)} is blocked", field="seatId")
        return seats

    async def _check_allocations(
        self,
        db: AsyncSession,
        tuples: Sequence[BookingTuple],
        seats: Dict[UUID, Seat]
    ) -> None:
        first_day = min(t.booking_date for t in tuples)
        last_day = max(t.booking_date for t in tuples)
        result = await db.execute(
            select(LongTermAllocation).where(
                and_(
                    LongTermAllocation.status == AllocationStatus.APPROVED,
                    LongTermAllocation.seat_id.in_(list(seats)),
                    LongTermAllocation.start_date <= last_day,
                    LongTermAllocation.end_date >= first_day
                )
            )
        )
        allocations = result.scalars().all()
        for t in tuples:
            for allocation in allocations:
                if allocation.seat_id == t.seat_id and allocation.covers(t.booking_date):
                    raise ConflictError(
                        f"Seat {seats[t.seat_id].seat_code} is allocated long-term on {t.booking_date.isoformat()}",
                        details={"seat_id": str(t.seat_id), "booking_date": t.booking_date.isoformat()}
                    )

    async def _load_bookings(
        self,
        db: AsyncSession,
        booking_ids: Sequence[UUID],
        with_user: bool = False
    ) -> List[Booking]:
        options = [selectinload(Booking.seat)]
        if with_user:
            options.append(selectinload(Booking.user))
        result = await db.execute(
            select(Booking)
            .options(*options)
            .where(Booking.id.in_(booking_ids))
            .execution_options(populate_existing=True)
        )
        by_id = {b.id: b for b in result.scalars().all()}
        return [by_id[booking_id] for booking_id in booking_ids if booking_id in by_id]

    async def cancel_booking(
        self,
        db: AsyncSession,
        caller: CallerIdentity,
        booking_id: UUID
    ) -> Booking:
        """
        Soft-cancel one booking; owner or admin only. Already cancelled
        bookings are returned unchanged.
        """
        async with metrics_collector.track_booking_operation("cancel"):
            cancelled = False
            async with db_manager.transaction(db):
                result = await db.execute(
                    select(Booking).where(Booking.id == booking_id).with_for_update()
                )
                booking = result.scalar_one_or_none()
                if not booking:
                    raise NotFoundError("Booking", booking_id)

                if not caller.can_act_for(booking.user_id):
                    raise AuthorizationError("You can only cancel your own bookings")

                if booking.status == BookingStatus.ACTIVE:
                    booking.status = BookingStatus.CANCELLED
                    booking.cancelled_at = datetime.now(timezone.utc)
                    await db.execute(
                        delete(SeatOccupancy).where(SeatOccupancy.booking_id == booking.id)
                    )
                    cancelled = True
                    await db.flush()
                booking = (await self._load_bookings(db, [booking_id]))[0]

            if cancelled:
                logger.info(f"Booking {booking_id} cancelled by {caller.id}")
                await metrics_collector.record_cancelled(1)
            return booking

    async def cancel_group(
        self,
        db: AsyncSession,
        caller: CallerIdentity,
        group_id: UUID
    ) -> int:
        """
        Cancel every ACTIVE booking sharing a group id in one update.
        Every booking of the group must belong to the caller unless admin.
        """
        async with metrics_collector.track_booking_operation("cancel_group"):
            async with db_manager.transaction(db):
                result = await db.execute(
                    select(Booking).where(Booking.group_id == group_id).with_for_update()
                )
                bookings = result.scalars().all()
                if not bookings:
                    raise NotFoundError("Booking group", group_id)

                if not caller.is_admin and any(b.user_id != caller.id for b in bookings):
                    raise AuthorizationError("You can only cancel your own bookings")

                active_ids = [b.id for b in bookings if b.status == BookingStatus.ACTIVE]
                if active_ids:
                    await db.execute(
                        update(Booking)
                        .where(
                            and_(
                                Booking.id.in_(active_ids),
                                Booking.status == BookingStatus.ACTIVE
                            )
                        )
                        .values(
                            status=BookingStatus.CANCELLED,
                            cancelled_at=datetime.now(timezone.utc)
                        )
                    )
                    await db.execute(
                        delete(SeatOccupancy).where(SeatOccupancy.booking_id.in_(active_ids))
                    )

            logger.info(f"Booking group {group_id}: {len(active_ids)} booking(s) cancelled by {caller.id}")
            await metrics_collector.record_cancelled(len(active_ids))
            return len(active_ids)

    async def list_user_bookings(
        self,
        db: AsyncSession,
        caller: CallerIdentity,
        today: Optional[date] = None
    ) -> List[Tuple[Booking, str]]:
        """
        Caller's booking history, latest date first, with display status
        """
        result = await db.execute(
            select(Booking)
            .options(selectinload(Booking.seat))
            .where(Booking.user_id == caller.id)
            .order_by(Booking.booking_date.desc(), Booking.created_at.desc())
        )
        return [(booking, display_status(booking, today)) for booking in result.scalars().all()]

    async def list_bookings_by_date(self, db: AsyncSession, target_date: date) -> List[Booking]:
        result = await db.execute(
            select(Booking)
            .join(Seat, Booking.seat_id == Seat.id)
            .options(selectinload(Booking.seat), selectinload(Booking.user))
            .where(
                and_(
                    Booking.booking_date == target_date,
                    Booking.status == BookingStatus.ACTIVE
                )
            )
            .order_by(Seat.seat_code, Booking.slot)
        )
        return list(result.scalars().all())

    async def list_bookings(
        self,
        db: AsyncSession,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Booking]:
        """
        ACTIVE bookings, optionally limited to an inclusive date range
        """
        stmt = (
            select(Booking)
            .options(selectinload(Booking.seat), selectinload(Booking.user))
            .where(Booking.status == BookingStatus.ACTIVE)
        )
        if start_date and end_date and start_date > end_date:
            raise ValidationError("startDate must not be after endDate", field="startDate")
        if start_date:
            stmt = stmt.where(Booking.booking_date >= start_date)
        if end_date:
            stmt = stmt.where(Booking.booking_date <= end_date)
        result = await db.execute(stmt.order_by(Booking.booking_date, Booking.created_at))
        return list(result.scalars().all())


booking_coordinator = BookingCoordinator()
