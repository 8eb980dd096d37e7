# hostel_app/models/room/discount.py
"""Discount definitions that can be linked to rooms."""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hostel_app.models.base.base_model import TimestampModel, enum_type
from hostel_app.models.base.enums import DiscountTarget, DiscountType

__all__ = ["Discount"]


class Discount(TimestampModel):
    __tablename__ = "discounts"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    discount_type: Mapped[DiscountType] = mapped_column(enum_type(DiscountType), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    target_category: Mapped[DiscountTarget] = mapped_column(
        enum_type(DiscountTarget),
        nullable=False,
        default=DiscountTarget.ALL,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("value >= 0", name="ck_discount_value_non_negative"),
    )

    def applies_to_rooms(self) -> bool:
        return self.is_active and self.target_category in (DiscountTarget.ROOM, DiscountTarget.ALL)
