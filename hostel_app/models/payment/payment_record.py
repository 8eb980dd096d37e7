# hostel_app/models/payment/payment_record.py
"""
Durable log of verified gateway payments.

A row is committed as soon as a payment signature verifies and before any
booking write is attempted, so a payment can never be taken without a trace.
``payment_id`` is unique: replays of the same callback find the existing row.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hostel_app.models.base.base_model import TimestampModel, enum_type
from hostel_app.models.base.enums import PaymentRecordStatus

__all__ = ["PaymentRecord"]


class PaymentRecord(TimestampModel):
    __tablename__ = "payment_records"

    order_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    payment_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    student_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    room_id: Mapped[str] = mapped_column(String(36), nullable=False)
    plan_id: Mapped[str] = mapped_column(String(36), nullable=False)

    # Filled from the gateway order once it has been fetched
    amount_minor: Mapped[Optional[int]] = mapped_column(Integer)
    currency: Mapped[Optional[str]] = mapped_column(String(3))

    status: Mapped[PaymentRecordStatus] = mapped_column(
        enum_type(PaymentRecordStatus),
        nullable=False,
        default=PaymentRecordStatus.RECEIVED,
    )
    booking_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("bookings.id"),
        nullable=True,
    )

    failure_code: Mapped[Optional[str]] = mapped_column(String(64))
    failure_reason: Mapped[Optional[str]] = mapped_column(Text)
    refund_id: Mapped[Optional[str]] = mapped_column(String(64))
    resolution_note: Mapped[Optional[str]] = mapped_column(Text)
    resolved_by: Mapped[Optional[str]] = mapped_column(String(36))
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index("ix_payment_record_status", "status"),
    )
