# --- File: hostel_app/schemas/billing/billing_schemas.py ---
"""
Billing schemas: admin charges, credits and invoice views.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from hostel_app.models.base.enums import ChargeType, InvoiceStatus
from hostel_app.schemas.common.base import BaseResponseSchema, BaseSchema

__all__ = [
    "ChargeCreate",
    "CreditCreate",
    "InvoiceItemResponse",
    "InvoiceResponse",
    "OutstandingInvoicesResponse",
    "OverdueSweepResponse",
    "StudentSummary",
    "InvoiceWithStudentResponse",
    "DueReminderRequest",
    "DueReminderResponse",
]


class ChargeCreate(BaseSchema):
    student_id: str = Field(..., min_length=1)
    charge_type: ChargeType
    description: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    due_date: Optional[datetime] = None


class CreditCreate(BaseSchema):
    student_id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Credit value (positive)")


class InvoiceItemResponse(BaseSchema):
    description: str
    amount: Decimal


class InvoiceResponse(BaseResponseSchema):
    invoice_number: str
    student_id: str
    booking_id: Optional[str] = None
    total_amount: Decimal
    status: InvoiceStatus
    paid_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    items: List[InvoiceItemResponse] = Field(default_factory=list)


class OutstandingInvoicesResponse(BaseSchema):
    invoices: List[InvoiceResponse]
    total_due: Decimal


class OverdueSweepResponse(BaseSchema):
    marked_overdue: int


class StudentSummary(BaseSchema):
    id: str
    username: str
    email: str


class InvoiceWithStudentResponse(InvoiceResponse):
    student: Optional[StudentSummary] = None


class DueReminderRequest(BaseSchema):
    student_id: str = Field(..., min_length=1)


class DueReminderResponse(BaseSchema):
    student_id: str
    total_due: Decimal
    invoice_count: int
    notified: bool
    email_sent: bool
