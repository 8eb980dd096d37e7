"""
Room inventory service.

Admins create and delete rooms and manage their pricing plans and
discount link. Occupancy is deliberately absent here: only the booking
lifecycle claims and releases slots.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hostel_app.core.exceptions import (
    DiscountNotFoundError,
    DuplicateEntryError,
    PlanNotFoundError,
    RoomInUseError,
    RoomNotFoundError,
    ValidationError,
)
from hostel_app.core.security import Actor, can_manage_rooms, require
from hostel_app.models.room import Room, RoomPricingPlan
from hostel_app.repositories.booking import BookingRepository
from hostel_app.repositories.room import DiscountRepository, RoomRepository
from hostel_app.schemas.room.room_schemas import PricingPlanCreate, RoomCreate
from hostel_app.services.base.base_service import BaseService


class RoomService(BaseService):

    def __init__(self, db_session: Session):
        super().__init__(db_session)
        self.rooms = RoomRepository(db_session)
        self.discounts = DiscountRepository(db_session)
        self.bookings = BookingRepository(db_session)

    def create_room(self, actor: Actor, data: RoomCreate) -> Room:
        require(can_manage_rooms(actor), "manage_rooms")

        if self.rooms.find_by_floor_and_number(data.floor_id, data.room_number) is not None:
            raise DuplicateEntryError(
                f"Room {data.room_number} already exists on this floor",
                {"floor_id": data.floor_id, "room_number": data.room_number},
            )

        room = Room(
            room_number=data.room_number,
            floor_id=data.floor_id,
            room_type=data.room_type,
            bathroom_type=Room.bathroom_for(data.room_type),
            capacity=data.capacity,
            occupant_count=0,
            is_occupied=False,
            is_staff_room=data.is_staff_room,
            staff_role=data.staff_role,
            plans=[self._new_plan(plan) for plan in data.pricing_plans],
        )
        try:
            with self.transaction():
                self.rooms.add(room)
        except IntegrityError as e:
            # Lost a race with an identical create
            raise DuplicateEntryError(
                f"Room {data.room_number} already exists on this floor",
                {"floor_id": data.floor_id, "room_number": data.room_number},
            ) from e

        self._log_operation("create_room", {"room_id": room.id, "room_number": room.room_number})
        return room

    @staticmethod
    def _new_plan(plan: PricingPlanCreate) -> RoomPricingPlan:
        return RoomPricingPlan(duration=plan.duration, unit=plan.unit, price=Decimal(plan.price))

    def list_rooms(self, available_only: bool = False, floor_id: Optional[str] = None) -> List[Room]:
        return self.rooms.list_rooms(available_only=available_only, floor_id=floor_id)

    def get_room(self, room_id: str) -> Room:
        room = self.rooms.find_by_id(room_id)
        if room is None:
            raise RoomNotFoundError(room_id)
        return room

    def add_pricing_plan(self, actor: Actor, room_id: str, plan: PricingPlanCreate) -> Room:
        require(can_manage_rooms(actor), "manage_rooms")
        room = self.get_room(room_id)

        with self.transaction():
            room.plans.append(self._new_plan(plan))

        self._log_operation("add_pricing_plan", {"room_id": room.id, "plans": len(room.plans)})
        return room

    def remove_pricing_plan(self, actor: Actor, room_id: str, plan_id: str) -> Room:
        """
        Drop a plan from a room. Bookings keep their plan snapshot, so past
        bookings are unaffected; a room must keep at least one plan.
        """
        require(can_manage_rooms(actor), "manage_rooms")
        room = self.get_room(room_id)
        plan = room.find_plan(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id, room_id)
        if len(room.plans) == 1:
            raise ValidationError(
                "A room must keep at least one pricing plan",
                {"plan_id": ["cannot remove the last plan"]},
            )

        with self.transaction():
            room.plans.remove(plan)

        self._log_operation("remove_pricing_plan", {"room_id": room.id, "plan_id": plan_id})
        return room

    def apply_discount(self, actor: Actor, room_id: str, discount_id: Optional[str]) -> Room:
        """Link an active discount to a room, or unlink with ``None``."""
        require(can_manage_rooms(actor), "manage_rooms")
        room = self.get_room(room_id)

        if discount_id is not None:
            discount = self.discounts.find_by_id(discount_id)
            if discount is None or not discount.is_active:
                raise DiscountNotFoundError(discount_id)

        with self.transaction():
            room.active_discount_id = discount_id
        self.db.refresh(room)

        self._log_operation("apply_discount", {"room_id": room.id, "discount_id": discount_id})
        return room

    def delete_room(self, actor: Actor, room_id: str) -> None:
        """
        Remove a room and its plans.

        Refused while anyone holds a slot, and for rooms that bookings still
        reference, since those keep the room as their history.
        """
        require(can_manage_rooms(actor), "manage_rooms")
        room = self.get_room(room_id)
        if room.occupant_count > 0:
            raise RoomInUseError(room.id, "occupied")
        if self.bookings.exists_for_room(room.id):
            raise RoomInUseError(room.id, "has_bookings")

        room_number = room.room_number
        with self.transaction():
            self.rooms.delete(room)

        self._log_operation("delete_room", {"room_id": room_id, "room_number": room_number})
