"""
HTTP tests for the booking endpoints
"""

import pytest
from datetime import date, timedelta
from uuid import uuid4

from app.models.booking import BookingSlot, BookingStatus

from conftest import make_allocation, make_booking, persist

BOOKINGS_URL = "/api/v1/bookings"


def booking_body(*items, **extra):
    body = {
        "bookings": [
            {"seatId": str(seat.id), "bookingDate": day.isoformat(), "slot": slot}
            for seat, day, slot in items
        ]
    }
    body.update(extra)
    return body


class TestCreateBookingEndpoint:

    @pytest.mark.asyncio
    async def test_single_full_day(self, client, auth_headers, test_user, seat, booking_date):
        response = await client.post(
            BOOKINGS_URL, json=booking_body((seat, booking_date, "FULL_DAY")), headers=auth_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert len(data) == 1
        assert data[0]["seatId"] == str(seat.id)
        assert data[0]["userId"] == str(test_user.id)
        assert data[0]["bookingDate"] == booking_date.isoformat()
        assert data[0]["slot"] == "FULL_DAY"
        assert data[0]["status"] == "ACTIVE"
        assert data[0]["groupId"] is None
        assert data[0]["seat"]["seatCode"] == "A-01"
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_grouped_selection(self, client, auth_headers, seats, booking_date):
        response = await client.post(
            BOOKINGS_URL,
            json=booking_body((seats[0], booking_date, "AM"), (seats[1], booking_date, "AM"), groupBookings=True),
            headers=auth_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert len(data) == 2
        assert data[0]["groupId"] is not None
        assert data[0]["groupId"] == data[1]["groupId"]

    @pytest.mark.asyncio
    async def test_weekly_recurrence(self, client, auth_headers, seat, booking_date):
        until = booking_date + timedelta(days=21)
        response = await client.post(
            BOOKINGS_URL,
            json=booking_body((seat, booking_date, "PM"), recurrence={"type": "WEEKLY", "until": until.isoformat()}),
            headers=auth_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert [b["bookingDate"] for b in data] == [
            (booking_date + timedelta(days=7 * i)).isoformat() for i in range(4)
        ]
        assert len({b["groupId"] for b in data}) == 1

    @pytest.mark.asyncio
    async def test_recurrence_too_long(self, client, auth_headers, seat, booking_date):
        until = booking_date + timedelta(days=120)
        response = await client.post(
            BOOKINGS_URL,
            json=booking_body((seat, booking_date, "AM"), recurrence={"type": "DAILY", "until": until.isoformat()}),
            headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_conflict(self, client, auth_headers, other_auth_headers, seat, booking_date):
        first = await client.post(BOOKINGS_URL, json=booking_body((seat, booking_date, "AM")), headers=auth_headers)
        second = await client.post(
            BOOKINGS_URL, json=booking_body((seat, booking_date, "FULL_DAY")), headers=other_auth_headers
        )

        assert first.status_code == 201
        assert second.status_code == 409
        body = second.json()
        assert body["success"] is False
        assert body["error"]["code"] == "BOOKING_CONFLICT"
        assert body["error"]["message"] == "One or more seats already booked for selected slot"

    @pytest.mark.asyncio
    async def test_empty_bookings(self, client, auth_headers):
        response = await client.post(BOOKINGS_URL, json={"bookings": []}, headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_malformed_body(self, client, auth_headers, seat):
        response = await client.post(
            BOOKINGS_URL,
            json={"bookings": [{"seatId": str(seat.id), "bookingDate": "not-a-date", "slot": "EVENING"}]},
            headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_past_date(self, client, auth_headers, seat):
        yesterday = date.today() - timedelta(days=1)
        response = await client.post(BOOKINGS_URL, json=booking_body((seat, yesterday, "AM")), headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_seat(self, client, auth_headers, booking_date):
        response = await client.post(
            BOOKINGS_URL,
            json={"bookings": [{"seatId": str(uuid4()), "bookingDate": booking_date.isoformat(), "slot": "AM"}]},
            headers=auth_headers
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client, seat, booking_date):
        response = await client.post(BOOKINGS_URL, json=booking_body((seat, booking_date, "AM")))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_rate_limited(self, client, auth_headers, seat, booking_date, monkeypatch):
        from app.config import settings
        from app.core.redis import redis_manager

        async def always_limited(key, limit, window=60):
            return True, limit + 1

        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
        monkeypatch.setattr(redis_manager, "is_rate_limited", always_limited)

        response = await client.post(BOOKINGS_URL, json=booking_body((seat, booking_date, "AM")), headers=auth_headers)

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"

    @pytest.mark.asyncio
    async def test_invalid_token(self, client, seat, booking_date):
        response = await client.post(
            BOOKINGS_URL,
            json=booking_body((seat, booking_date, "AM")),
            headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401


class TestAvailabilityEndpoint:

    @pytest.mark.asyncio
    async def test_availability(self, client, session_factory, test_user, seats, booking_date):
        await persist(session_factory, make_booking(test_user, seats[0], booking_date, BookingSlot.AM))

        response = await client.get(f"{BOOKINGS_URL}/availability", params={"date": booking_date.isoformat()})

        assert response.status_code == 200
        data = {row["seatCode"]: row for row in response.json()}
        assert data["A-01"]["availability"] == {"AM": False, "PM": True, "FULL_DAY": False}
        assert data["A-02"]["availability"] == {"AM": True, "PM": True, "FULL_DAY": True}
        assert data["A-01"]["hasMonitor"] is True

    @pytest.mark.asyncio
    async def test_seat_type_filter(self, client, seats, booking_date):
        response = await client.get(
            f"{BOOKINGS_URL}/availability",
            params={"date": booking_date.isoformat(), "seatType": "TEAM_CLUSTER"}
        )

        assert response.status_code == 200
        assert [row["seatCode"] for row in response.json()] == ["T-01"]

    @pytest.mark.asyncio
    async def test_allocated_seat_hidden(self, client, session_factory, test_admin, seats, booking_date):
        await persist(session_factory, make_allocation(seats[0], test_admin, booking_date, booking_date))

        response = await client.get(f"{BOOKINGS_URL}/availability", params={"date": booking_date.isoformat()})

        assert "A-01" not in {row["seatCode"] for row in response.json()}

    @pytest.mark.asyncio
    async def test_missing_date(self, client):
        response = await client.get(f"{BOOKINGS_URL}/availability")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_date(self, client):
        response = await client.get(f"{BOOKINGS_URL}/availability", params={"date": "31/12/2024"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_no_seats(self, client, booking_date):
        response = await client.get(f"{BOOKINGS_URL}/availability", params={"date": booking_date.isoformat()})
        assert response.status_code == 200
        assert response.json() == []


class TestBookingListsEndpoint:

    @pytest.mark.asyncio
    async def test_my_bookings(self, client, session_factory, auth_headers, test_user, other_user, seats, booking_date):
        past = date.today() - timedelta(days=2)
        await persist(
            session_factory,
            make_booking(test_user, seats[0], past, BookingSlot.AM),
            make_booking(test_user, seats[1], booking_date, BookingSlot.PM),
            make_booking(other_user, seats[2], booking_date, BookingSlot.PM),
        )

        response = await client.get(f"{BOOKINGS_URL}/my-bookings", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [(b["seat"]["seatCode"], b["displayStatus"]) for b in data] == [
            ("A-02", "CONFIRMED"),
            ("A-01", "COMPLETED"),
        ]

    @pytest.mark.asyncio
    async def test_by_date(self, client, session_factory, auth_headers, test_user, seats, booking_date):
        await persist(
            session_factory,
            make_booking(test_user, seats[1], booking_date, BookingSlot.AM),
            make_booking(test_user, seats[0], booking_date, BookingSlot.PM),
            make_booking(test_user, seats[2], booking_date, BookingSlot.AM, status=BookingStatus.CANCELLED),
        )

        response = await client.get(
            f"{BOOKINGS_URL}/by-date", params={"date": booking_date.isoformat()}, headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert [b["seat"]["seatCode"] for b in data] == ["A-01", "A-02"]
        assert data[0]["user"]["fullName"] == "Alice Employee"

    @pytest.mark.asyncio
    async def test_by_date_requires_date(self, client, auth_headers):
        response = await client.get(f"{BOOKINGS_URL}/by-date", headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_admin_list(self, client, session_factory, admin_headers, test_user, seat, booking_date):
        await persist(
            session_factory,
            make_booking(test_user, seat, booking_date, BookingSlot.AM),
            make_booking(test_user, seat, booking_date + timedelta(days=10), BookingSlot.AM),
        )

        response = await client.get(
            BOOKINGS_URL,
            params={"startDate": booking_date.isoformat(), "endDate": (booking_date + timedelta(days=1)).isoformat()},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert [b["bookingDate"] for b in response.json()] == [booking_date.isoformat()]

    @pytest.mark.asyncio
    async def test_admin_list_forbidden_for_employees(self, client, auth_headers):
        response = await client.get(BOOKINGS_URL, headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTH_FORBIDDEN"


class TestCancelEndpoints:

    @pytest.mark.asyncio
    async def test_cancel_booking(self, client, auth_headers, seat, booking_date):
        created = await client.post(BOOKINGS_URL, json=booking_body((seat, booking_date, "AM")), headers=auth_headers)
        booking_id = created.json()[0]["id"]

        response = await client.delete(f"{BOOKINGS_URL}/{booking_id}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["booking"]["status"] == "CANCELLED"
        assert body["booking"]["cancelledAt"] is not None

    @pytest.mark.asyncio
    async def test_cancel_someone_elses_booking(self, client, auth_headers, other_auth_headers, seat, booking_date):
        created = await client.post(BOOKINGS_URL, json=booking_body((seat, booking_date, "AM")), headers=auth_headers)
        booking_id = created.json()[0]["id"]

        response = await client.delete(f"{BOOKINGS_URL}/{booking_id}", headers=other_auth_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_cancel_unknown(self, client, auth_headers):
        response = await client.delete(f"{BOOKINGS_URL}/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_cancel_group(self, client, auth_headers, seats, booking_date):
        until = booking_date + timedelta(days=14)
        grouped = await client.post(
            BOOKINGS_URL,
            json=booking_body((seats[0], booking_date, "AM"), recurrence={"type": "WEEKLY", "until": until.isoformat()}),
            headers=auth_headers
        )
        single = await client.post(
            BOOKINGS_URL, json=booking_body((seats[1], booking_date, "AM")), headers=auth_headers
        )
        group_id = grouped.json()[0]["groupId"]

        response = await client.delete(f"{BOOKINGS_URL}/groups/{group_id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "groupId": group_id, "cancelled": 3}

        history = (await client.get(f"{BOOKINGS_URL}/my-bookings", headers=auth_headers)).json()
        statuses = {b["id"]: b["status"] for b in history}
        assert statuses[single.json()[0]["id"]] == "ACTIVE"
        assert sum(status == "CANCELLED" for status in statuses.values()) == 3

    @pytest.mark.asyncio
    async def test_cancel_unknown_group(self, client, auth_headers):
        response = await client.delete(f"{BOOKINGS_URL}/groups/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404
