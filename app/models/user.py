"""
User model
"""

from sqlalchemy import Column, String, Boolean, Enum
from sqlalchemy.orm import relationship
import enum

from app.models.base import BaseModel


class UserRole(str, enum.Enum):
    EMPLOYEE = "EMPLOYEE"
    ADMIN = "ADMIN"


class User(BaseModel):
    """
    Employee or administrator account; managed outside the booking core
    """
    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    department = Column(String(100))
    role = Column(
        Enum(UserRole),
        default=UserRole.EMPLOYEE,
        nullable=False
    )
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    bookings = relationship("Booking", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
