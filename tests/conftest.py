"""
Test configuration and fixtures
Each test gets its own SQLite file database; HTTP tests drive the app through
httpx with the session and notifier dependencies overridden.
"""

import pytest
import pytest_asyncio
from datetime import date, timedelta
from typing import AsyncGenerator, List, Tuple
from uuid import uuid4
import os

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from httpx import AsyncClient, ASGITransport

# Set test environment before the app reads its settings
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./deskbook-test.db"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PROMETHEUS_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"

# Import all models BEFORE creating fixtures (critical for create_all to work)
from app.core.database import Base, create_engine_for_url
from app.models.user import User, UserRole
from app.models.seat import Seat, SeatType
from app.models.allocation import LongTermAllocation, AllocationStatus
from app.models.booking import Booking, BookingSlot, BookingStatus, SeatOccupancy

from app.core.security import CallerIdentity, create_token_for_user, get_password_hash

# Hashing is slow; every fixture user shares one password
TEST_PASSWORD = "TestPass123!"
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


def next_weekday(days_ahead: int = 14, weekday: int = 0) -> date:
    """First date at least days_ahead from today falling on weekday (Monday=0)"""
    day = date.today() + timedelta(days=days_ahead)
    return day + timedelta(days=(weekday - day.weekday()) % 7)


class RecordingNotifier:
    """Notifier that remembers what it was asked to send"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple] = []

    def notify(self, booking, reason):
        if self.fail:
            raise RuntimeError("mail server down")
        self.sent.append((booking.id, booking.user.email, booking.seat.seat_code, reason))


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Fresh SQLite database per test"""
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'deskbook.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest_asyncio.fixture
async def client(session_factory, notifier):
    """Create test client with dependency override"""
    from app.main import app
    from app.core.database import get_session
    from app.services.notification_service import get_notifier

    # One session per request, as in production
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_notifier] = lambda: notifier

    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


async def persist(session_factory, *instances):
    """Insert rows in a short-lived session and hand back the instances"""
    async with session_factory() as session:
        session.add_all(instances)
        await session.commit()
    return instances[0] if len(instances) == 1 else instances


def make_user(role: UserRole = UserRole.EMPLOYEE, is_active: bool = True, name: str = "Test User") -> User:
    return User(
        email=f"{role.value.lower()}_{uuid4().hex[:8]}@example.com",
        password_hash=TEST_PASSWORD_HASH,
        full_name=name,
        department="Engineering",
        role=role,
        is_active=is_active,
    )


# User fixtures
@pytest_asyncio.fixture
async def test_user(session_factory):
    return await persist(session_factory, make_user(name="Alice Employee"))


@pytest_asyncio.fixture
async def other_user(session_factory):
    return await persist(session_factory, make_user(name="Bob Employee"))


@pytest_asyncio.fixture
async def test_admin(session_factory):
    return await persist(session_factory, make_user(UserRole.ADMIN, name="Ada Admin"))


@pytest.fixture
def caller(test_user):
    return CallerIdentity.from_user(test_user)


@pytest.fixture
def other_caller(other_user):
    return CallerIdentity.from_user(other_user)


@pytest.fixture
def admin_caller(test_admin):
    return CallerIdentity.from_user(test_admin)


@pytest.fixture
def auth_headers(test_user):
    return {"Authorization": f"Bearer {create_token_for_user(test_user)}"}


@pytest.fixture
def other_auth_headers(other_user):
    return {"Authorization": f"Bearer {create_token_for_user(other_user)}"}


@pytest.fixture
def admin_headers(test_admin):
    return {"Authorization": f"Bearer {create_token_for_user(test_admin)}"}


# Seat fixtures
@pytest_asyncio.fixture
async def seats(session_factory):
    """Two solo desks and one team cluster, in code order"""
    return list(await persist(
        session_factory,
        Seat(seat_code="A-01", type=SeatType.SOLO, has_monitor=True, x=10.0, y=20.0),
        Seat(seat_code="A-02", type=SeatType.SOLO, has_monitor=False, x=30.0, y=20.0),
        Seat(seat_code="T-01", type=SeatType.TEAM_CLUSTER, has_monitor=True, x=60.0, y=70.0),
    ))


@pytest_asyncio.fixture
async def seat(seats):
    return seats[0]


@pytest_asyncio.fixture
async def blocked_seat(session_factory):
    return await persist(
        session_factory,
        Seat(seat_code="Z-99", type=SeatType.SOLO, is_blocked=True, blocked_reason="Broken chair"),
    )


@pytest.fixture
def booking_date():
    return next_weekday()


def make_booking(user, seat, booking_date, slot=BookingSlot.FULL_DAY, group_id=None,
                 status=BookingStatus.ACTIVE) -> Booking:
    """Booking row with the occupancy rows an ACTIVE booking holds"""
    booking = Booking(
        user_id=user.id,
        seat_id=seat.id,
        booking_date=booking_date,
        slot=slot,
        status=status,
        group_id=group_id,
    )
    if status == BookingStatus.ACTIVE:
        booking.occupancies = [
            SeatOccupancy(seat_id=seat.id, occupancy_date=booking_date, half=half)
            for half in slot.halves
        ]
    return booking


def make_allocation(seat, requested_by, start_date, end_date, status=AllocationStatus.APPROVED):
    return LongTermAllocation(
        seat_id=seat.id,
        start_date=start_date,
        end_date=end_date,
        status=status,
        reason="Project war room",
        requested_by=requested_by.id,
    )
