# --- File: hostel_app/schemas/booking/booking_request.py ---
"""
Booking request schemas: checkout, payment verification and cancellation.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import Field, field_validator

from hostel_app.models.base.enums import Gender
from hostel_app.schemas.common.base import BaseSchema

__all__ = [
    "CheckoutRequest",
    "AddressInfo",
    "EmergencyContact",
    "ResidentDetails",
    "VerifyPaymentRequest",
    "CancelBookingRequest",
]


class CheckoutRequest(BaseSchema):
    room_id: str = Field(..., min_length=1, description="Room to book")
    plan_id: str = Field(..., min_length=1, description="Pricing plan of that room")


class AddressInfo(BaseSchema):
    street: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)


class EmergencyContact(BaseSchema):
    name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=20)
    relationship: Optional[str] = Field(None, max_length=50)


class ResidentDetails(BaseSchema):
    """
    Registration details captured once, when the booking is paid for.
    """

    full_name: str = Field(..., min_length=2, max_length=200)
    date_of_birth: date = Field(..., description="Used to compute age at booking time")
    gender: Optional[Gender] = None
    phone_number: str = Field(..., pattern=r"^\+?\d{10,15}$")
    alt_phone: Optional[str] = Field(None, pattern=r"^\+?\d{10,15}$")
    student_id: Optional[str] = Field(None, max_length=50, description="College roll number")
    address: AddressInfo = Field(default_factory=AddressInfo)
    emergency_contact: Optional[EmergencyContact] = None
    check_in_date: Optional[date] = Field(None, description="Planned arrival date")

    @field_validator("date_of_birth")
    @classmethod
    def not_in_future(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v


class VerifyPaymentRequest(BaseSchema):
    """Proof of payment returned by the gateway checkout widget."""

    order_id: str = Field(..., min_length=1, max_length=64)
    payment_id: str = Field(..., min_length=1, max_length=64)
    signature: str = Field(..., min_length=1, max_length=256)
    room_id: str = Field(..., min_length=1)
    plan_id: str = Field(..., min_length=1)
    resident_details: ResidentDetails


class CancelBookingRequest(BaseSchema):
    reason: str = Field(..., min_length=3, max_length=500)
