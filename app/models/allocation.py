"""
Long-term allocation model
"""

from sqlalchemy import Column, String, ForeignKey, Enum, Date, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
import enum

from app.models.base import BaseModel


class AllocationStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class LongTermAllocation(BaseModel):
    """
    Admin-approved seat reservation over an inclusive date range
    """
    __tablename__ = "long_term_allocations"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_allocation_date_range"),
    )

    seat_id = Column(Uuid(as_uuid=True), ForeignKey("seats.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(
        Enum(AllocationStatus),
        default=AllocationStatus.PENDING,
        nullable=False,
        index=True
    )
    reason = Column(String(255))
    requested_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    approved_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"))

    # Relationships
    seat = relationship("Seat", back_populates="allocations")
    requester = relationship("User", foreign_keys=[requested_by])
    approver = relationship("User", foreign_keys=[approved_by])

    def covers(self, day) -> bool:
        return self.start_date <= day <= self.end_date

    def __repr__(self):
        return (
            f"<LongTermAllocation(id={self.id}, seat_id={self.seat_id}, "
            f"{self.start_date}..{self.end_date}, status={self.status})>"
        )
