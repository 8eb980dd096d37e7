# hostel_app/models/payment/invoice.py
"""
Invoice ledger.

Every payable event produces an invoice. Credits are negative, already-paid
invoices, so a student's balance is always the sum of their rows.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hostel_app.models.base.base_model import TimestampModel, enum_type
from hostel_app.models.base.enums import InvoiceStatus

__all__ = ["Invoice", "InvoiceItem"]


class Invoice(TimestampModel):
    __tablename__ = "invoices"

    invoice_number: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    student_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    booking_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("bookings.id"),
        nullable=True,
        index=True,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[InvoiceStatus] = mapped_column(
        enum_type(InvoiceStatus),
        nullable=False,
        default=InvoiceStatus.PENDING,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    items: Mapped[List["InvoiceItem"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    student = relationship("User", lazy="select")


class InvoiceItem(TimestampModel):
    __tablename__ = "invoice_items"

    invoice_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    invoice: Mapped[Invoice] = relationship(back_populates="items")
