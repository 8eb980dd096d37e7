# hostel_app/models/booking/booking.py
"""
Booking model.

A booking is created exactly once per verified payment and is never deleted;
afterwards only its status and lifecycle timestamps change. The price and the
plan it was bought on are snapshotted so later edits to the room's plans or
discounts never alter it.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hostel_app.models.base.base_model import TimestampModel, enum_type
from hostel_app.models.base.enums import BookingStatus, PaymentStatus, PlanUnit

__all__ = ["Booking"]


class Booking(TimestampModel):
    __tablename__ = "bookings"

    student_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    room_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("rooms.id"),
        nullable=False,
        index=True,
    )

    # Plan snapshot (the plan row itself may later be removed)
    plan_id: Mapped[str] = mapped_column(String(36), nullable=False)
    plan_duration: Mapped[int] = mapped_column(Integer, nullable=False)
    plan_unit: Mapped[PlanUnit] = mapped_column(enum_type(PlanUnit), nullable=False)

    # Captured price
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount_paid_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")

    payment_status: Mapped[PaymentStatus] = mapped_column(
        enum_type(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    status: Mapped[BookingStatus] = mapped_column(
        enum_type(BookingStatus),
        nullable=False,
        default=BookingStatus.PENDING,
    )

    order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    payment_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    # Planned dates are captured at booking time; the *_at columns record
    # when the resident actually arrived or left.
    check_in_date: Mapped[Optional[date]] = mapped_column(Date)
    check_out_date: Mapped[Optional[date]] = mapped_column(Date)
    checked_in_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    checked_out_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)

    resident_details: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    room = relationship("Room", lazy="joined")
    student = relationship("User", lazy="select")

    __table_args__ = (
        Index("ix_booking_student_status", "student_id", "status"),
    )

    @property
    def plan_label(self) -> str:
        return f"{self.plan_duration} {self.plan_unit.value}"

    @property
    def is_active(self) -> bool:
        return self.status in BookingStatus.active_statuses()
