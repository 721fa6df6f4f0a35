"""
Notification sink for bookings affected by a seat block
"""

import logging
from typing import Protocol

from jinja2 import Template

from app.models.booking import Booking

logger = logging.getLogger("app.notifications")


class BookingNotifier(Protocol):
    def notify(self, booking: Booking, reason: str) -> None:
        ...


SEAT_BLOCKED_TEMPLATE = Template(
    """To: {{ email }} ({{ name }})
Subject: Your desk booking for {{ booking_date }} has been affected

Hi {{ name }},

Your booking for seat {{ seat_code }} on {{ booking_date }} ({{ slot }}) is affected because the seat has been blocked by an administrator.

Reason: {{ reason }}

Please cancel this booking and select a new seat.
"""
)


class LogNotifier:
    """
    Renders the seat-blocked message and writes it to the notifications log
    """

    def __init__(self, template: Template = SEAT_BLOCKED_TEMPLATE):
        self.template = template

    def render(self, booking: Booking, reason: str) -> str:
        user = booking.user
        return self.template.render(
            email=user.email if user else "unknown",
            name=user.full_name if user else "colleague",
            seat_code=booking.seat.seat_code if booking.seat else booking.seat_id,
            booking_date=booking.booking_date.isoformat(),
            slot=booking.slot.value,
            reason=reason or "No reason given",
        )

    def notify(self, booking: Booking, reason: str) -> None:
        logger.info(self.render(booking, reason), extra={"user_id": str(booking.user_id)})


log_notifier = LogNotifier()


def get_notifier() -> BookingNotifier:
    """FastAPI dependency; tests override it with a recording notifier"""
    return log_notifier
