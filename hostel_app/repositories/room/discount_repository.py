"""Discount repository."""

from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from hostel_app.models.room import Discount, Room
from hostel_app.repositories.base.base_repository import BaseRepository


class DiscountRepository(BaseRepository[Discount]):

    def __init__(self, db: Session):
        super().__init__(Discount, db)

    def list_discounts(self, active_only: bool = False) -> List[Discount]:
        stmt = select(Discount).order_by(Discount.created_at.desc(), Discount.name)
        if active_only:
            stmt = stmt.where(Discount.is_active.is_(True))
        return list(self.db.scalars(stmt))

    def detach_from_rooms(self, discount_id: str) -> int:
        """Unlink a discount from every room; returns the number of rooms touched."""
        stmt = (
            update(Room)
            .where(Room.active_discount_id == discount_id)
            .values(active_discount_id=None)
            .execution_options(synchronize_session="fetch")
        )
        return self.db.execute(stmt).rowcount
