# hostel_app/models/user/user.py
"""
User account and resident profile models.

Accounts are provisioned by the identity service; this service reads them
for names and email addresses and owns the resident profile, which is
upserted whenever a booking is committed.
"""

from datetime import date
from typing import Optional

from sqlalchemy import Date, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hostel_app.models.base.base_model import TimestampModel, enum_type
from hostel_app.models.base.enums import Gender, UserRole

__all__ = ["User", "UserProfile"]


class User(TimestampModel):
    """Login account of a student, warden or admin."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[UserRole] = mapped_column(
        enum_type(UserRole),
        nullable=False,
        default=UserRole.STUDENT,
    )

    profile: Mapped[Optional["UserProfile"]] = relationship(
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def display_name(self) -> str:
        if self.profile is not None and self.profile.full_name:
            return self.profile.full_name
        return self.username


class UserProfile(TimestampModel):
    """Resident registration details, one row per user."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    full_name: Mapped[Optional[str]] = mapped_column(String(200))
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date)
    # Captured when the profile is written, never re-derived
    age: Mapped[Optional[int]] = mapped_column(Integer)
    gender: Mapped[Optional[Gender]] = mapped_column(enum_type(Gender))
    student_id: Mapped[Optional[str]] = mapped_column(String(50))
    phone_number: Mapped[Optional[str]] = mapped_column(String(20))
    alt_phone: Mapped[Optional[str]] = mapped_column(String(20))

    address_street: Mapped[Optional[str]] = mapped_column(String(255))
    address_city: Mapped[Optional[str]] = mapped_column(String(100))
    address_state: Mapped[Optional[str]] = mapped_column(String(100))
    address_zip_code: Mapped[Optional[str]] = mapped_column(String(20))

    emergency_contact_name: Mapped[Optional[str]] = mapped_column(String(200))
    emergency_contact_phone: Mapped[Optional[str]] = mapped_column(String(20))
    emergency_contact_relationship: Mapped[Optional[str]] = mapped_column(String(50))

    user: Mapped[User] = relationship(back_populates="profile")
