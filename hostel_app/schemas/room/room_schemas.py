# --- File: hostel_app/schemas/room/room_schemas.py ---
"""
Room inventory and discount schemas.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import Field, model_validator

from hostel_app.models.base.enums import (
    BathroomType,
    DiscountTarget,
    DiscountType,
    PlanUnit,
    RoomType,
)
from hostel_app.schemas.common.base import BaseResponseSchema, BaseSchema

__all__ = [
    "PricingPlanCreate",
    "PricingPlanResponse",
    "RoomCreate",
    "RoomResponse",
    "RoomDiscountUpdate",
    "DiscountCreate",
    "DiscountResponse",
]


class PricingPlanCreate(BaseSchema):
    duration: int = Field(..., gt=0, description="Number of units")
    unit: PlanUnit = Field(..., description="months or year")
    price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class PricingPlanResponse(BaseSchema):
    id: str
    duration: int
    unit: PlanUnit
    price: Decimal


class RoomCreate(BaseSchema):
    """Payload for adding a room to the inventory."""

    room_number: str = Field(..., min_length=1, max_length=20)
    floor_id: str = Field(..., min_length=1, max_length=36)
    room_type: RoomType
    capacity: int = Field(..., ge=1, le=5, description="Beds in the room (1-5)")
    pricing_plans: List[PricingPlanCreate] = Field(..., min_length=1)
    is_staff_room: bool = False
    staff_role: Optional[str] = Field(None, max_length=50)

    @model_validator(mode="after")
    def staff_role_needs_staff_room(self) -> "RoomCreate":
        if self.staff_role and not self.is_staff_room:
            raise ValueError("staff_role is only valid for staff rooms")
        return self


class RoomResponse(BaseResponseSchema):
    room_number: str
    floor_id: str
    room_type: RoomType
    bathroom_type: BathroomType
    capacity: int
    occupant_count: int
    is_occupied: bool
    is_staff_room: bool
    staff_role: Optional[str] = None
    active_discount_id: Optional[str] = None
    plans: List[PricingPlanResponse] = Field(default_factory=list)


class RoomDiscountUpdate(BaseSchema):
    discount_id: Optional[str] = Field(None, description="Discount to apply; null removes it")


class DiscountCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    discount_type: DiscountType
    value: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    target_category: DiscountTarget = DiscountTarget.ALL

    @model_validator(mode="after")
    def percentage_within_bounds(self) -> "DiscountCreate":
        if self.discount_type == DiscountType.PERCENTAGE and self.value > 100:
            raise ValueError("Percentage discounts cannot exceed 100")
        return self


class DiscountResponse(BaseResponseSchema):
    name: str
    description: Optional[str] = None
    discount_type: DiscountType
    value: Decimal
    target_category: DiscountTarget
    is_active: bool
