#!/usr/bin/env python3
"""
Seed database with demo accounts and a floor of desks
"""
import asyncio
import os
import sys
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

# Add project root to path
sys.path.insert(0, os.path.dirname(__file__))

from app.core.database import async_session, init_db
from app.core.security import get_password_hash
from app.models import User, UserRole, Seat, SeatType

DEMO_USERS = [
    {"email": "admin@company.com", "password": "admin123", "full_name": "Admin User", "role": UserRole.ADMIN},
    {"email": "employee@company.com", "password": "employee123", "full_name": "John Employee", "role": UserRole.EMPLOYEE},
]

SOLO_DESKS = 4
TEAM_DESKS = 80
TEAM_COLUMNS = 10


def demo_seats() -> List[Dict]:
    """Solo desks along the top edge, team clusters in a grid below"""
    seats = [
        {"seat_code": f"S{i + 1}", "type": SeatType.SOLO, "has_monitor": False, "x": 10.0 + i * 20, "y": 8.0}
        for i in range(SOLO_DESKS)
    ]
    seats += [
        {
            "seat_code": f"T{i + 1}",
            "type": SeatType.TEAM_CLUSTER,
            "has_monitor": True,
            "x": 5.0 + (i % TEAM_COLUMNS) * 10,
            "y": 20.0 + (i // TEAM_COLUMNS) * 10,
        }
        for i in range(TEAM_DESKS)
    ]
    return seats


async def seed_demo_data(session: AsyncSession) -> Dict[str, int]:
    """
    Insert demo users and seats that do not exist yet; safe to run repeatedly
    """
    existing_emails = set((await session.execute(select(User.email))).scalars().all())
    existing_codes = set((await session.execute(select(Seat.seat_code))).scalars().all())

    users = [
        User(
            email=data["email"],
            password_hash=get_password_hash(data["password"]),
            full_name=data["full_name"],
            role=data["role"],
            is_active=True,
        )
        for data in DEMO_USERS
        if data["email"] not in existing_emails
    ]
    seats = [Seat(**data) for data in demo_seats() if data["seat_code"] not in existing_codes]

    session.add_all(users + seats)
    await session.commit()
    return {"users": len(users), "seats": len(seats)}


async def main():
    await init_db()
    async with async_session() as session:
        created = await seed_demo_data(session)

    print(f"✅ Created {created['users']} users and {created['seats']} seats")
    print("\n📋 Demo credentials:")
    for data in DEMO_USERS:
        print(f"   {data['role'].value}: {data['email']} / {data['password']}")


if __name__ == "__main__":
    asyncio.run(main())
