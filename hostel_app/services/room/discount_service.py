"""Discount catalogue management."""

from decimal import Decimal
from typing import List

from sqlalchemy.orm import Session

from hostel_app.core.exceptions import DiscountNotFoundError
from hostel_app.core.security import Actor, can_manage_rooms, require
from hostel_app.models.room import Discount
from hostel_app.repositories.room import DiscountRepository
from hostel_app.schemas.room.room_schemas import DiscountCreate
from hostel_app.services.base.base_service import BaseService


class DiscountService(BaseService):

    def __init__(self, db_session: Session):
        super().__init__(db_session)
        self.discounts = DiscountRepository(db_session)

    def create_discount(self, actor: Actor, data: DiscountCreate) -> Discount:
        require(can_manage_rooms(actor), "manage_rooms")
        with self.transaction():
            discount = self.discounts.add(Discount(
                name=data.name,
                description=data.description,
                discount_type=data.discount_type,
                value=Decimal(data.value),
                target_category=data.target_category,
                is_active=True,
            ))
        self._log_operation("create_discount", {"discount_id": discount.id, "type": data.discount_type.value})
        return discount

    def list_discounts(self, active_only: bool = False) -> List[Discount]:
        return self.discounts.list_discounts(active_only=active_only)

    def deactivate_discount(self, actor: Actor, discount_id: str) -> Discount:
        """Deactivate and detach from every room, so new checkouts stop using it."""
        require(can_manage_rooms(actor), "manage_rooms")
        discount = self.discounts.find_by_id(discount_id)
        if discount is None:
            raise DiscountNotFoundError(discount_id)

        with self.transaction():
            discount.is_active = False
            detached = self.discounts.detach_from_rooms(discount.id)

        self._log_operation("deactivate_discount", {"discount_id": discount.id, "rooms_detached": detached})
        return discount
