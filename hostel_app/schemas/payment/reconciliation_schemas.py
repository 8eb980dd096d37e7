# --- File: hostel_app/schemas/payment/reconciliation_schemas.py ---
"""
Schemas for the payment reconciliation queue.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from hostel_app.models.base.enums import PaymentRecordStatus
from hostel_app.schemas.common.base import BaseResponseSchema, BaseSchema

__all__ = ["PaymentRecordResponse", "ResolveRecordRequest"]


class PaymentRecordResponse(BaseResponseSchema):
    order_id: str
    payment_id: str
    student_id: str
    room_id: str
    plan_id: str
    amount_minor: Optional[int] = None
    currency: Optional[str] = None
    status: PaymentRecordStatus
    booking_id: Optional[str] = None
    failure_code: Optional[str] = None
    failure_reason: Optional[str] = None
    refund_id: Optional[str] = None
    resolution_note: Optional[str] = None
    resolved_at: Optional[datetime] = None
    attempts: int


class ResolveRecordRequest(BaseSchema):
    note: str = Field(..., min_length=3, max_length=1000, description="What was done to settle the payment")
