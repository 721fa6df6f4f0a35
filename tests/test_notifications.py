"""
Seat-blocked notification rendering
"""

import logging
import pytest
from types import SimpleNamespace
from uuid import uuid4

from app.models.booking import BookingSlot
from app.services.notification_service import LogNotifier

from conftest import next_weekday


@pytest.fixture
def booking():
    user = SimpleNamespace(email="alice@example.com", full_name="Alice Employee")
    seat = SimpleNamespace(seat_code="A-01")
    return SimpleNamespace(
        id=uuid4(),
        user_id=uuid4(),
        seat_id=uuid4(),
        user=user,
        seat=seat,
        booking_date=next_weekday(),
        slot=BookingSlot.PM,
    )


@pytest.mark.unit
class TestLogNotifier:

    def test_render(self, booking):
        message = LogNotifier().render(booking, "Desk being repaired")

        assert "To: alice@example.com (Alice Employee)" in message
        assert "seat A-01" in message
        assert booking.booking_date.isoformat() in message
        assert "(PM)" in message
        assert "Reason: Desk being repaired" in message

    def test_render_without_reason(self, booking):
        assert "Reason: No reason given" in LogNotifier().render(booking, "")

    def test_notify_logs(self, booking, caplog):
        # "app" loggers do not propagate to the root handler caplog listens on
        notifications_logger = logging.getLogger("app.notifications")
        notifications_logger.addHandler(caplog.handler)
        try:
            with caplog.at_level(logging.INFO, logger="app.notifications"):
                LogNotifier().notify(booking, "Flooded")
        finally:
            notifications_logger.removeHandler(caplog.handler)

        record = caplog.records[-1]
        assert record.name == "app.notifications"
        assert record.user_id == str(booking.user_id)
        assert "Flooded" in record.getMessage()
