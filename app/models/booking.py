"""
Booking and SeatOccupancy models
"""

from sqlalchemy import Column, ForeignKey, Enum, Date, DateTime, Uuid, UniqueConstraint, Index, text
from sqlalchemy.orm import relationship
import enum

from app.models.base import BaseModel


class BookingSlot(str, enum.Enum):
    AM = "AM"
    PM = "PM"
    FULL_DAY = "FULL_DAY"

    @property
    def halves(self) -> tuple:
        """Half-day units claimed by this slot"""
        if self is BookingSlot.FULL_DAY:
            return (DayHalf.AM, DayHalf.PM)
        return (DayHalf(self.value),)


class DayHalf(str, enum.Enum):
    AM = "AM"
    PM = "PM"


class BookingStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"


class Booking(BaseModel):
    """
    Seat reservation for one date and slot; cancelled rows are kept for history
    """
    __tablename__ = "bookings"
    __table_args__ = (
        Index(
            "uq_active_booking_seat_date_slot",
            "seat_id", "booking_date", "slot",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
        Index("ix_bookings_seat_date", "seat_id", "booking_date"),
    )

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    seat_id = Column(Uuid(as_uuid=True), ForeignKey("seats.id", ondelete="CASCADE"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False, index=True)
    slot = Column(Enum(BookingSlot), nullable=False)
    status = Column(
        Enum(BookingStatus),
        default=BookingStatus.ACTIVE,
        nullable=False,
        index=True
    )
    group_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    cancelled_at = Column(DateTime(timezone=True))

    # Relationships
    user = relationship("User", back_populates="bookings")
    seat = relationship("Seat", back_populates="bookings")
    occupancies = relationship("SeatOccupancy", back_populates="booking", cascade="all, delete-orphan")

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, seat_id={self.seat_id}, date={self.booking_date}, "
            f"slot={self.slot}, status={self.status})>"
        )


class SeatOccupancy(BaseModel):
    """
    Half-day claim held by an ACTIVE booking. The unique constraint is what
    keeps FULL_DAY and AM/PM bookings on the same seat and date exclusive.
    """
    __tablename__ = "seat_occupancies"
    __table_args__ = (
        UniqueConstraint('seat_id', 'occupancy_date', 'half', name='uq_seat_occupancy'),
    )

    booking_id = Column(Uuid(as_uuid=True), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_id = Column(Uuid(as_uuid=True), ForeignKey("seats.id", ondelete="CASCADE"), nullable=False)
    occupancy_date = Column(Date, nullable=False)
    half = Column(Enum(DayHalf), nullable=False)

    # Relationships
    booking = relationship("Booking", back_populates="occupancies")

    def __repr__(self):
        return f"<SeatOccupancy(seat_id={self.seat_id}, date={self.occupancy_date}, half={self.half})>"
