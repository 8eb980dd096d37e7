"""Invoice repository."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from hostel_app.models.base.enums import InvoiceStatus
from hostel_app.models.payment import Invoice
from hostel_app.repositories.base.base_repository import BaseRepository


class InvoiceRepository(BaseRepository[Invoice]):

    def __init__(self, db: Session):
        super().__init__(Invoice, db)

    def find_for_booking(self, booking_id: str) -> Optional[Invoice]:
        return self.db.scalars(
            select(Invoice).where(Invoice.booking_id == booking_id)
        ).first()

    def list_for_student(self, student_id: str) -> List[Invoice]:
        stmt = (
            select(Invoice)
            .where(Invoice.student_id == student_id)
            .order_by(Invoice.created_at.desc(), Invoice.invoice_number.desc())
        )
        return list(self.db.scalars(stmt))

    def list_outstanding_for_student(self, student_id: str) -> List[Invoice]:
        stmt = (
            select(Invoice)
            .where(
                Invoice.student_id == student_id,
                Invoice.status.in_((InvoiceStatus.PENDING, InvoiceStatus.OVERDUE)),
            )
            .order_by(Invoice.due_date)
        )
        return list(self.db.scalars(stmt))

    def mark_overdue(self, now: datetime) -> int:
        """Flip Pending invoices past their due date to Overdue."""
        stmt = (
            update(Invoice)
            .where(
                Invoice.status == InvoiceStatus.PENDING,
                Invoice.due_date.is_not(None),
                Invoice.due_date < now,
            )
            .values(status=InvoiceStatus.OVERDUE)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def list_invoices(
        self,
        status: Optional[InvoiceStatus] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        """Every student's invoices, newest first, with the student loaded."""
        stmt = (
            select(Invoice)
            .options(selectinload(Invoice.student))
            .order_by(Invoice.created_at.desc(), Invoice.invoice_number.desc())
            .offset(offset)
            .limit(limit)
        )
        if status is not None:
            stmt = stmt.where(Invoice.status == status)
        return list(self.db.scalars(stmt))

    def outstanding_totals(self, student_ids: Iterable[str]) -> Dict[str, Decimal]:
        """Sum of Pending and Overdue invoices per student; students with none are absent."""
        ids = list(student_ids)
        if not ids:
            return {}
        stmt = (
            select(Invoice.student_id, func.sum(Invoice.total_amount))
            .where(
                Invoice.student_id.in_(ids),
                Invoice.status.in_((InvoiceStatus.PENDING, InvoiceStatus.OVERDUE)),
            )
            .group_by(Invoice.student_id)
        )
        return {student_id: Decimal(total) for student_id, total in self.db.execute(stmt)}
