"""Booking repository."""

from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hostel_app.models.base.enums import BookingStatus
from hostel_app.models.booking import Booking
from hostel_app.repositories.base.base_repository import BaseRepository


class BookingRepository(BaseRepository[Booking]):

    def __init__(self, db: Session):
        super().__init__(Booking, db)

    def find_active_for_student(self, student_id: str) -> Optional[Booking]:
        """The booking currently holding a slot for this student, if any."""
        stmt = (
            select(Booking)
            .where(
                Booking.student_id == student_id,
                Booking.status.in_(BookingStatus.active_statuses()),
            )
            .order_by(Booking.created_at.desc())
        )
        return self.db.scalars(stmt).unique().first()

    def find_by_payment_id(self, payment_id: str) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.payment_id == payment_id)
        return self.db.scalars(stmt).unique().first()

    def list_for_students(self, student_ids: Iterable[str]) -> List[Booking]:
        """All bookings of these students, newest first."""
        ids = list(student_ids)
        if not ids:
            return []
        stmt = (
            select(Booking)
            .where(Booking.student_id.in_(ids))
            .order_by(Booking.created_at.desc())
        )
        return list(self.db.scalars(stmt).unique())

    def exists_for_room(self, room_id: str) -> bool:
        stmt = select(Booking.id).where(Booking.room_id == room_id).limit(1)
        return self.db.scalar(stmt) is not None

    def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> List[Booking]:
        stmt = select(Booking).order_by(Booking.created_at.desc()).offset(offset).limit(limit)
        if status is not None:
            stmt = stmt.where(Booking.status == status)
        return list(self.db.scalars(stmt).unique())
