"""
Booking pricing: resolve what a student pays for a room plan.

Pure functions over already-loaded models; nothing here touches the session.
The amount handed to the gateway is in minor units (paise), rounded half-up,
and that same amount is what the booking and invoice later record.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from hostel_app.core.exceptions import PlanNotFoundError
from hostel_app.models.base.enums import DiscountType, PlanUnit
from hostel_app.models.room import Discount, Room

MINOR_UNITS = Decimal(100)
ZERO = Decimal("0")


@dataclass(frozen=True)
class PriceQuote:
    plan_id: str
    duration: int
    unit: PlanUnit
    base_price: Decimal
    discount_amount: Decimal
    final_price: Decimal
    amount_minor: int
    discount_id: Optional[str] = None

    @property
    def plan_label(self) -> str:
        return f"{self.duration} {self.unit.value}"


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to an integer count of minor units, half-up."""
    return int((Decimal(amount) * MINOR_UNITS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount_minor: int) -> Decimal:
    return (Decimal(amount_minor) / MINOR_UNITS).quantize(Decimal("0.01"))


def apply_discount(base_price: Decimal, discount: Optional[Discount]) -> Decimal:
    """
    Price after ``discount``.

    Fixed discounts floor at zero; percentage discounts reduce proportionally.
    """
    base_price = Decimal(base_price)
    if discount is None:
        return base_price

    value = Decimal(discount.value)
    if discount.discount_type == DiscountType.FIXED:
        return max(ZERO, base_price - value)

    return max(ZERO, base_price * (Decimal(1) - value / MINOR_UNITS))


def room_discount(room: Room) -> Optional[Discount]:
    """The room's linked discount, if it is active and targets room charges."""
    discount = room.active_discount
    if discount is not None and discount.applies_to_rooms():
        return discount
    return None


def quote(room: Room, plan_id: str) -> PriceQuote:
    """
    Price ``plan_id`` of ``room`` with the room's current discount.

    Raises:
        PlanNotFoundError: the plan is not one of this room's plans.
    """
    plan = room.find_plan(plan_id)
    if plan is None:
        raise PlanNotFoundError(plan_id, room.id)

    base_price = Decimal(plan.price)
    discount = room_discount(room)
    amount_minor = to_minor_units(apply_discount(base_price, discount))
    final_price = from_minor_units(amount_minor)

    return PriceQuote(
        plan_id=plan.id,
        duration=plan.duration,
        unit=plan.unit,
        base_price=base_price.quantize(Decimal("0.01")),
        discount_amount=(base_price - final_price).quantize(Decimal("0.01")),
        final_price=final_price,
        amount_minor=amount_minor,
        discount_id=discount.id if discount else None,
    )


def resolve_price(room: Room, plan_id: str) -> int:
    """Amount payable for ``plan_id`` in minor currency units."""
    return quote(room, plan_id).amount_minor
