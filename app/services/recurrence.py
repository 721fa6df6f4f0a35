"""
Recurrence expansion: turns base seat selections plus an optional repeat
rule into the concrete (seat, date, slot) tuples a booking request commits.

Expansion is pure and deterministic, so a retried request always produces
the same tuple list.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, List, Optional, Sequence
from uuid import UUID

from app.config import settings
from app.core.exceptions import ValidationError
from app.models.booking import BookingSlot

logger = logging.getLogger(__name__)

SATURDAY = 5


class RecurrenceType(str, enum.Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"


@dataclass(frozen=True)
class RecurrenceRule:
    type: RecurrenceType
    until: date


@dataclass(frozen=True)
class BaseSelection:
    seat_id: UUID
    slot: BookingSlot


@dataclass(frozen=True)
class BookingTuple:
    seat_id: UUID
    booking_date: date
    slot: BookingSlot


class RecurrenceExpander:
    """
    Expands booking selections across the dates of a recurrence rule
    """

    def __init__(
        self,
        max_window_days: Optional[int] = None,
        max_bookings: Optional[int] = None
    ):
        self.max_window_days = max_window_days or settings.MAX_RECURRENCE_DAYS
        self.max_bookings = max_bookings or settings.MAX_BOOKINGS_PER_REQUEST

    def occurrence_dates(self, start_date: date, rule: Optional[RecurrenceRule]) -> List[date]:
        """
        Dates a rule produces from start_date onwards; DAILY skips weekends,
        the start date included
        """
        if rule is None:
            return [start_date]

        if rule.until < start_date:
            raise ValidationError("Recurrence end date cannot be before the start date", field="recurrence.until")

        if (rule.until - start_date).days > self.max_window_days:
            raise ValidationError(
                f"Recurrence cannot extend more than {self.max_window_days} days",
                field="recurrence.until"
            )

        if rule.type == RecurrenceType.DAILY:
            dates = list(self._weekdays(start_date, rule.until))
            if not dates:
                raise ValidationError("Daily recurrence has no weekdays in range", field="recurrence.until")
            return dates
        if rule.type == RecurrenceType.WEEKLY:
            return list(self._every_week(start_date, rule.until))
        raise ValidationError(f"Unsupported recurrence type: {rule.type}", field="recurrence.type")

    @staticmethod
    def _weekdays(start_date: date, until: date) -> Iterator[date]:
        current = start_date
        while current <= until:
            if current.weekday() < SATURDAY:
                yield current
            current += timedelta(days=1)

    @staticmethod
    def _every_week(start_date: date, until: date) -> Iterator[date]:
        current = start_date
        while current <= until:
            yield current
            current += timedelta(days=7)

    def expand(
        self,
        selections: Sequence[BaseSelection],
        start_date: date,
        rule: Optional[RecurrenceRule] = None,
        today: Optional[date] = None
    ) -> List[BookingTuple]:
        """
        Expand selections anchored at start_date into booking tuples,
        date by date, keeping selection order within each date
        """
        if not selections:
            raise ValidationError("No bookings provided", field="bookings")

        today = today or date.today()
        if start_date < today:
            raise ValidationError("Cannot book dates in the past", field="bookingDate")

        dates = self.occurrence_dates(start_date, rule)

        total = len(dates) * len(selections)
        if total > self.max_bookings:
            raise ValidationError(
                f"Maximum {self.max_bookings} bookings per request (requested {total})",
                field="bookings"
            )

        tuples = [
            BookingTuple(seat_id=selection.seat_id, booking_date=day, slot=selection.slot)
            for day in dates
            for selection in selections
        ]
        logger.debug(f"Expanded {len(selections)} selection(s) over {len(dates)} date(s)")
        return tuples


def should_group(rule: Optional[RecurrenceRule], group_bookings: bool, tuple_count: int) -> bool:
    """
    Bookings share a group id when they come from a recurrence, or when the
    caller asked for a group and there is more than one booking to tie together
    """
    return rule is not None or (group_bookings and tuple_count > 1)


recurrence_expander = RecurrenceExpander()
