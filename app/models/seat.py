"""
Seat model
"""

from sqlalchemy import Column, String, Boolean, Enum, Float
from sqlalchemy.orm import relationship
import enum

from app.models.base import BaseModel


class SeatType(str, enum.Enum):
    SOLO = "SOLO"
    TEAM_CLUSTER = "TEAM_CLUSTER"


class Seat(BaseModel):
    """
    Bookable desk; x/y are percentages of the floor-plan image
    """
    __tablename__ = "seats"

    seat_code = Column(String(20), unique=True, nullable=False, index=True)
    type = Column(
        Enum(SeatType),
        default=SeatType.SOLO,
        nullable=False,
        index=True
    )
    has_monitor = Column(Boolean, default=False, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False, index=True)
    blocked_reason = Column(String(255))
    x = Column(Float)
    y = Column(Float)

    # Relationships
    bookings = relationship("Booking", back_populates="seat", passive_deletes=True)
    allocations = relationship("LongTermAllocation", back_populates="seat", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Seat(id={self.id}, code={self.seat_code}, type={self.type}, blocked={self.is_blocked})>"
