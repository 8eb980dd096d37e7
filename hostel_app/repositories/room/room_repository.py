"""
Room repository.

Occupancy is only ever changed through ``claim_slot``/``release_slot``: each is
one conditional UPDATE, so the database serializes concurrent claims on the
same row and the guard is evaluated against the committed count, not a value
read earlier by the application.
"""

from typing import List, Optional

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session, selectinload

from hostel_app.core.logging import get_logger
from hostel_app.models.room import Room, RoomOccupant
from hostel_app.repositories.base.base_repository import BaseRepository

logger = get_logger(__name__)


class RoomRepository(BaseRepository[Room]):

    def __init__(self, db: Session):
        super().__init__(Room, db)

    # ------------------------------------------------------------------ reads

    def find_by_id(self, id: str) -> Optional[Room]:
        stmt = (
            select(Room)
            .options(selectinload(Room.plans))
            .where(Room.id == id)
        )
        return self.db.scalars(stmt).unique().first()

    def find_by_floor_and_number(self, floor_id: str, room_number: str) -> Optional[Room]:
        stmt = select(Room).where(Room.floor_id == floor_id, Room.room_number == room_number)
        return self.db.scalars(stmt).unique().first()

    def list_rooms(self, available_only: bool = False, floor_id: Optional[str] = None) -> List[Room]:
        stmt = select(Room).options(selectinload(Room.plans)).order_by(Room.floor_id, Room.room_number)
        if available_only:
            stmt = stmt.where(Room.is_occupied.is_(False), Room.is_staff_room.is_(False))
        if floor_id:
            stmt = stmt.where(Room.floor_id == floor_id)
        return list(self.db.scalars(stmt).unique())

    def has_free_slot(self, room_id: str) -> bool:
        """Advisory read; the claim itself is decided by ``claim_slot``."""
        stmt = select(Room.occupant_count < Room.capacity).where(Room.id == room_id)
        return bool(self.db.scalar(stmt))

    # -------------------------------------------------------------- occupancy

    def claim_slot(self, room: Room) -> bool:
        """
        Take one slot if the room is not full.

        Returns False when no slot was free at the time of the UPDATE. The
        in-session ``room`` is expired so its counters reload from the row.
        """
        new_count = Room.occupant_count + 1
        stmt = (
            update(Room)
            .where(Room.id == room.id, Room.occupant_count < Room.capacity)
            .values(
                occupant_count=new_count,
                is_occupied=case((new_count >= Room.capacity, True), else_=False),
            )
            .execution_options(synchronize_session=False)
        )
        claimed = self.db.execute(stmt).rowcount == 1
        self.db.expire(room, ["occupant_count", "is_occupied"])

        logger.info(
            "Room slot claim",
            extra={"room_id": room.id, "claimed": claimed},
        )
        return claimed

    def release_slot(self, room: Room) -> bool:
        """Give one slot back and recompute ``is_occupied``."""
        new_count = Room.occupant_count - 1
        stmt = (
            update(Room)
            .where(Room.id == room.id, Room.occupant_count > 0)
            .values(
                occupant_count=new_count,
                is_occupied=case((new_count >= Room.capacity, True), else_=False),
            )
            .execution_options(synchronize_session=False)
        )
        released = self.db.execute(stmt).rowcount == 1
        self.db.expire(room, ["occupant_count", "is_occupied"])

        if not released:
            logger.warning("Room slot release found no held slot", extra={"room_id": room.id})
        return released

    def add_occupant(self, room_id: str, student_id: str, booking_id: str) -> RoomOccupant:
        occupant = RoomOccupant(room_id=room_id, student_id=student_id, booking_id=booking_id)
        self.db.add(occupant)
        self.db.flush()
        return occupant

    def remove_occupant(self, booking_id: str) -> bool:
        occupant = self.db.scalars(
            select(RoomOccupant).where(RoomOccupant.booking_id == booking_id)
        ).first()
        if occupant is None:
            return False
        self.db.delete(occupant)
        self.db.flush()
        return True

    def occupant_student_ids(self, room_id: str) -> List[str]:
        stmt = (
            select(RoomOccupant.student_id)
            .where(RoomOccupant.room_id == room_id)
            .order_by(RoomOccupant.created_at, RoomOccupant.id)
        )
        return list(self.db.scalars(stmt))
