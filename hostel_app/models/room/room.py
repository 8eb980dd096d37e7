# hostel_app/models/room/room.py
"""
Room inventory models.

A room owns its pricing plans and its occupancy. Occupancy is tracked three
ways that must agree:

* ``occupant_count`` is the counter the compare-and-swap claim updates;
* ``is_occupied`` is derived in the same UPDATE (count >= capacity);
* one ``RoomOccupant`` row per held slot, unique per student, as a backstop.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hostel_app.models.base.base_model import TimestampModel, enum_type
from hostel_app.models.base.enums import BathroomType, PlanUnit, RoomType

__all__ = [
    "Room",
    "RoomPricingPlan",
    "RoomOccupant",
]

MIN_CAPACITY = 1
MAX_CAPACITY = 5


class Room(TimestampModel):
    """A bookable room on a floor."""

    __tablename__ = "rooms"

    room_number: Mapped[str] = mapped_column(String(20), nullable=False)
    floor_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    room_type: Mapped[RoomType] = mapped_column(enum_type(RoomType), nullable=False)
    bathroom_type: Mapped[BathroomType] = mapped_column(enum_type(BathroomType), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    occupant_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_occupied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    active_discount_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("discounts.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_staff_room: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    staff_role: Mapped[Optional[str]] = mapped_column(String(50))

    plans: Mapped[List["RoomPricingPlan"]] = relationship(
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="RoomPricingPlan.price",
    )
    occupants: Mapped[List["RoomOccupant"]] = relationship(
        back_populates="room",
        order_by="RoomOccupant.created_at",
    )
    active_discount = relationship("Discount", lazy="joined")

    __table_args__ = (
        UniqueConstraint("floor_id", "room_number", name="uq_room_floor_number"),
        CheckConstraint(
            f"capacity BETWEEN {MIN_CAPACITY} AND {MAX_CAPACITY}",
            name="ck_room_capacity_range",
        ),
        CheckConstraint(
            "occupant_count >= 0 AND occupant_count <= capacity",
            name="ck_room_occupant_count",
        ),
    )

    @staticmethod
    def bathroom_for(room_type: RoomType) -> BathroomType:
        return BathroomType.ATTACHED if room_type == RoomType.AC else BathroomType.COMMON

    def find_plan(self, plan_id: str) -> Optional["RoomPricingPlan"]:
        for plan in self.plans:
            if plan.id == plan_id:
                return plan
        return None

    def __repr__(self) -> str:
        return (
            f"<Room(id={self.id}, number={self.room_number}, "
            f"occupants={self.occupant_count}/{self.capacity})>"
        )


class RoomPricingPlan(TimestampModel):
    """Price for staying ``duration`` ``unit``s in a room."""

    __tablename__ = "room_pricing_plans"

    room_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    unit: Mapped[PlanUnit] = mapped_column(enum_type(PlanUnit), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    room: Mapped[Room] = relationship(back_populates="plans")

    __table_args__ = (
        CheckConstraint("duration > 0", name="ck_plan_duration_positive"),
        CheckConstraint("price > 0", name="ck_plan_price_positive"),
    )


class RoomOccupant(TimestampModel):
    """One claimed slot of a room."""

    __tablename__ = "room_occupants"

    room_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
    )
    booking_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("bookings.id"),
        nullable=False,
    )

    room: Mapped[Room] = relationship(back_populates="occupants")

    __table_args__ = (
        # A student can hold at most one slot anywhere
        UniqueConstraint("student_id", name="uq_room_occupant_student"),
        UniqueConstraint("booking_id", name="uq_room_occupant_booking"),
    )
