"""Repository for the durable payment log."""

from typing import Any, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from hostel_app.models.base.enums import PaymentRecordStatus
from hostel_app.models.payment import PaymentRecord
from hostel_app.repositories.base.base_repository import BaseRepository


class PaymentRecordRepository(BaseRepository[PaymentRecord]):

    def __init__(self, db: Session):
        super().__init__(PaymentRecord, db)

    def find_by_payment_id(self, payment_id: str) -> Optional[PaymentRecord]:
        return self.db.scalars(
            select(PaymentRecord).where(PaymentRecord.payment_id == payment_id)
        ).first()

    def find_by_booking_id(self, booking_id: str) -> Optional[PaymentRecord]:
        return self.db.scalars(
            select(PaymentRecord).where(PaymentRecord.booking_id == booking_id)
        ).first()

    def list_by_status(self, statuses) -> List[PaymentRecord]:
        stmt = (
            select(PaymentRecord)
            .where(PaymentRecord.status.in_(tuple(statuses)))
            .order_by(PaymentRecord.created_at)
        )
        return list(self.db.scalars(stmt))

    def list_flagged(self) -> List[PaymentRecord]:
        return self.list_by_status(PaymentRecordStatus.flagged())

    def transition(
        self,
        record_id: str,
        to_status: PaymentRecordStatus,
        from_statuses: Iterable[PaymentRecordStatus],
        **values: Any,
    ) -> bool:
        """
        Move a record to ``to_status`` only if it is still in one of
        ``from_statuses``.

        One conditional UPDATE, like the room slot claim: a record another
        session has already committed is never overwritten. Returns whether
        the row changed; the in-session instance is expired either way.
        """
        stmt = (
            update(PaymentRecord)
            .where(
                PaymentRecord.id == record_id,
                PaymentRecord.status.in_(tuple(from_statuses)),
            )
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        changed = self.db.execute(stmt).rowcount == 1

        record = self.db.get(PaymentRecord, record_id)
        if record is not None:
            self.db.expire(record)
        return changed
