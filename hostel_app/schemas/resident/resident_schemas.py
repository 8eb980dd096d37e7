# --- File: hostel_app/schemas/resident/resident_schemas.py ---
"""
Resident overview schemas.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from hostel_app.models.base.enums import BookingStatus, Gender, ResidencyStatus
from hostel_app.schemas.booking.booking_response import RoomSnapshot
from hostel_app.schemas.common.base import BaseSchema

__all__ = ["ResidentOverview"]


class ResidentOverview(BaseSchema):
    student_id: str
    username: str
    email: str
    full_name: Optional[str] = None
    gender: Optional[Gender] = None
    age: Optional[int] = None
    phone_number: Optional[str] = None
    city: Optional[str] = None
    residency_status: ResidencyStatus
    booking_id: Optional[str] = None
    booking_status: Optional[BookingStatus] = None
    check_in_date: Optional[date] = None
    room: Optional[RoomSnapshot] = None
    pending_dues: Decimal
