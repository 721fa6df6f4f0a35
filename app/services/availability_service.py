"""
Seat availability for a single date
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Set
from uuid import UUID

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.models.allocation import LongTermAllocation, AllocationStatus
from app.models.booking import Booking, BookingSlot, BookingStatus
from app.models.seat import Seat, SeatType

logger = logging.getLogger(__name__)

AM_SLOTS = (BookingSlot.AM, BookingSlot.FULL_DAY)
PM_SLOTS = (BookingSlot.PM, BookingSlot.FULL_DAY)


def parse_date(value: Optional[str], field: str = "date") -> date:
    """
    Parse an ISO calendar date from a query parameter
    """
    if not value:
        raise ValidationError(f"{field} parameter required", field=field)
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value!r}, expected YYYY-MM-DD", field=field)


def parse_seat_type(value: Optional[str]) -> Optional[SeatType]:
    if not value:
        return None
    try:
        return SeatType(value.upper())
    except ValueError:
        allowed = ", ".join(t.value for t in SeatType)
        raise ValidationError(f"Invalid seatType: {value!r}, expected one of {allowed}", field="seatType")


def slot_availability(seat_bookings: List[Booking]) -> Dict[str, bool]:
    am_booked = any(b.slot in AM_SLOTS for b in seat_bookings)
    pm_booked = any(b.slot in PM_SLOTS for b in seat_bookings)
    return {
        "AM": not am_booked,
        "PM": not pm_booked,
        "FULL_DAY": not am_booked and not pm_booked,
    }


class AvailabilityCalculator:
    """
    Read-only view of which slots each seat can still take on a date.
    Not locked against concurrent bookings; commit-time constraints decide.
    """

    async def allocated_seat_ids(self, db: AsyncSession, target_date: date) -> Set[UUID]:
        """Seats held by an APPROVED allocation covering the date"""
        result = await db.execute(
            select(LongTermAllocation.seat_id).where(
                and_(
                    LongTermAllocation.status == AllocationStatus.APPROVED,
                    LongTermAllocation.start_date <= target_date,
                    LongTermAllocation.end_date >= target_date
                )
            )
        )
        return set(result.scalars().all())

    async def get_availability(
        self,
        db: AsyncSession,
        target_date: date,
        seat_type: Optional[SeatType] = None
    ) -> List[dict]:
        seat_stmt = select(Seat).where(Seat.is_blocked.is_(False))
        if seat_type:
            seat_stmt = seat_stmt.where(Seat.type == seat_type)
        seats = (await db.execute(seat_stmt.order_by(Seat.seat_code))).scalars().all()

        booking_result = await db.execute(
            select(Booking).where(
                and_(
                    Booking.booking_date == target_date,
                    Booking.status == BookingStatus.ACTIVE
                )
            )
        )
        bookings_by_seat: Dict[UUID, List[Booking]] = {}
        for booking in booking_result.scalars().all():
            bookings_by_seat.setdefault(booking.seat_id, []).append(booking)

        allocated = await self.allocated_seat_ids(db, target_date)

        availability = [
            {
                "id": seat.id,
                "seat_code": seat.seat_code,
                "type": seat.type,
                "has_monitor": seat.has_monitor,
                "is_blocked": seat.is_blocked,
                "x": seat.x,
                "y": seat.y,
                "availability": slot_availability(bookings_by_seat.get(seat.id, [])),
            }
            for seat in seats
            if seat.id not in allocated
        ]

        logger.debug(
            f"Availability for {target_date}: {len(availability)} seat(s), "
            f"{len(allocated)} allocated"
        )
        return availability


availability_calculator = AvailabilityCalculator()
