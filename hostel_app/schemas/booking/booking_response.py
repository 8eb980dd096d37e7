# --- File: hostel_app/schemas/booking/booking_response.py ---
"""
Booking response schemas.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import Field

from hostel_app.models.base.enums import BookingStatus, PaymentStatus, PlanUnit, RoomType
from hostel_app.schemas.common.base import BaseResponseSchema, BaseSchema

__all__ = [
    "RoomSnapshot",
    "PriceBreakdown",
    "CheckoutResponse",
    "BookingCommitResponse",
    "BookingResponse",
    "BookingStatusResponse",
]


class RoomSnapshot(BaseSchema):
    id: str
    room_number: str
    floor_id: str
    room_type: RoomType
    capacity: int
    occupant_count: int


class PriceBreakdown(BaseSchema):
    plan_id: str
    duration: int
    unit: PlanUnit
    base_price: Decimal
    discount_amount: Decimal
    final_price: Decimal


class CheckoutResponse(BaseSchema):
    """Everything the client needs to open the gateway payment widget."""

    order_id: str
    amount: int = Field(..., description="Amount in minor currency units (paise)")
    currency: str
    key_id: str = Field(..., description="Public gateway key")
    price: PriceBreakdown
    room: RoomSnapshot


class BookingCommitResponse(BaseSchema):
    booking_id: str
    invoice_id: Optional[str] = None
    total_amount: Decimal
    replayed: bool = Field(False, description="True when this payment was already committed")


class BookingResponse(BaseResponseSchema):
    student_id: str
    room_id: str
    plan_id: str
    plan_duration: int
    plan_unit: PlanUnit
    total_amount: Decimal
    currency: str
    payment_status: PaymentStatus
    status: BookingStatus
    order_id: str
    payment_id: str
    check_in_date: Optional[date] = None
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    resident_details: Dict[str, Any] = Field(default_factory=dict)
    room: Optional[RoomSnapshot] = None


class BookingStatusResponse(BaseSchema):
    has_booking: bool
    booking_id: Optional[str] = None
    status: Optional[BookingStatus] = None
