"""
Billing service: admin charges, credits, payment marking and invoice queries.

The ledger is additive. Charges are Pending invoices, credits are negative
invoices that are born Paid, and a student's balance is the sum of the rows.
"""

import secrets
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from hostel_app.core.exceptions import (
    InvalidInvoiceStateError,
    InvoiceNotFoundError,
    ResourceNotFoundError,
    ValidationError,
)
from hostel_app.core.security import Actor, can_manage_billing, require
from hostel_app.models.base.enums import ChargeType, InvoiceStatus, NotificationType
from hostel_app.models.payment import Invoice, InvoiceItem
from hostel_app.repositories.payment import InvoiceRepository
from hostel_app.repositories.user import UserRepository
from hostel_app.services.base.base_service import BaseService
from hostel_app.services.notification.notification_service import NotificationService
from hostel_app.utils.date_utils import now_utc, timestamp_millis
from hostel_app.utils.email import Mailer

CREDIT_PREFIX = "DSC"


def generate_invoice_number(prefix: str) -> str:
    """``<PREFIX>-<epoch millis>-<4 hex>``; the suffix keeps same-millisecond numbers apart."""
    return f"{prefix}-{timestamp_millis()}-{secrets.token_hex(2).upper()}"


class BillingService(BaseService):

    def __init__(self, db_session: Session, mailer: Optional[Mailer] = None, currency: str = "INR"):
        super().__init__(db_session)
        self.invoices = InvoiceRepository(db_session)
        self.users = UserRepository(db_session)
        self.notifications = NotificationService(db_session)
        self.mailer = mailer
        self.currency = currency

    def _require_student(self, student_id: str):
        student = self.users.find_by_id(student_id)
        if student is None:
            raise ResourceNotFoundError("Student", student_id)
        return student

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def create_charge(
        self,
        actor: Actor,
        student_id: str,
        charge_type: ChargeType,
        description: str,
        amount: Decimal,
        due_date: Optional[datetime] = None,
    ) -> Invoice:
        """Raise a Pending fine, service or utility invoice against a student."""
        require(can_manage_billing(actor), "manage_billing")
        student = self._require_student(student_id)
        amount = Decimal(amount)

        with self.transaction():
            invoice = self.invoices.add(Invoice(
                invoice_number=generate_invoice_number(charge_type.prefix),
                student_id=student.id,
                total_amount=amount,
                status=InvoiceStatus.PENDING,
                due_date=due_date or now_utc(),
                items=[InvoiceItem(description=f"{charge_type.value.upper()}: {description}", amount=amount)],
            ))

        self._log_operation(
            "create_charge",
            {"invoice_number": invoice.invoice_number, "charge_type": charge_type.value, "student_id": student.id},
        )

        notification_type = NotificationType.FINE if charge_type == ChargeType.FINE else NotificationType.PAYMENT
        self.notifications.notify(
            student.id,
            notification_type,
            f"A {charge_type.value.lower()} charge of {self.currency} {amount:,.2f} was added: {description}",
        )
        if charge_type == ChargeType.FINE:
            self._send_fine_email(student, invoice, description, amount)
        return invoice

    def _send_fine_email(self, student, invoice: Invoice, description: str, amount: Decimal) -> None:
        if self.mailer is None:
            return
        try:
            self.mailer.send_fine_notification(
                student.email,
                student.display_name,
                {
                    "currency": self.currency,
                    "amount": f"{amount:,.2f}",
                    "description": description,
                    "invoice_number": invoice.invoice_number,
                    "due_date": f"{invoice.due_date:%d %b %Y}" if invoice.due_date else None,
                },
            )
        except Exception:
            self._logger.exception("Fine notification email failed", extra={"invoice_number": invoice.invoice_number})

    def apply_credit(self, actor: Actor, student_id: str, description: str, amount: Decimal) -> Invoice:
        """Record a credit as a negative invoice that is already Paid."""
        require(can_manage_billing(actor), "manage_billing")
        student = self._require_student(student_id)
        credit = -abs(Decimal(amount))
        now = now_utc()

        with self.transaction():
            invoice = self.invoices.add(Invoice(
                invoice_number=generate_invoice_number(CREDIT_PREFIX),
                student_id=student.id,
                total_amount=credit,
                status=InvoiceStatus.PAID,
                paid_at=now,
                due_date=now,
                items=[InvoiceItem(description=f"DISCOUNT: {description}", amount=credit)],
            ))

        self._log_operation("apply_credit", {"invoice_number": invoice.invoice_number, "student_id": student.id})
        self.notifications.notify(
            student.id,
            NotificationType.PAYMENT,
            f"A credit of {self.currency} {abs(credit):,.2f} was applied to your account: {description}",
        )
        return invoice

    def mark_paid(self, actor: Actor, invoice_id: str) -> Invoice:
        require(can_manage_billing(actor), "manage_billing")
        invoice = self.invoices.find_by_id(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        if invoice.status not in (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE):
            raise InvalidInvoiceStateError(invoice.id, invoice.status.value)

        with self.transaction():
            invoice.status = InvoiceStatus.PAID
            invoice.paid_at = now_utc()

        self._log_operation("mark_paid", {"invoice_number": invoice.invoice_number})
        return invoice

    def mark_overdue(self, actor: Actor, now: Optional[datetime] = None) -> int:
        """Sweep Pending invoices whose due date has passed; returns how many moved."""
        require(can_manage_billing(actor), "manage_billing")
        with self.transaction():
            count = self.invoices.mark_overdue(now or now_utc())
        self._log_operation("mark_overdue", {"marked_overdue": count})
        return count

    def send_due_reminder(self, actor: Actor, student_id: str) -> Dict[str, Any]:
        """
        Remind a student of everything they owe.

        The amount is read from the ledger, not supplied by the caller. The
        in-app notification is always written; the email is best effort.

        Raises:
            ValidationError: the student has no Pending or Overdue invoices.
        """
        require(can_manage_billing(actor), "manage_billing")
        student = self._require_student(student_id)
        invoices = self.invoices.list_outstanding_for_student(student.id)
        if not invoices:
            raise ValidationError(
                "Student has no outstanding dues",
                {"student_id": ["no pending or overdue invoices"]},
            )
        total_due = sum((Decimal(invoice.total_amount) for invoice in invoices), Decimal("0.00"))

        notified = self.notifications.notify(
            student.id,
            NotificationType.PAYMENT,
            f"Reminder: {self.currency} {total_due:,.2f} is outstanding on your account",
        )
        email_sent = self._send_reminder_email(student, invoices, total_due)

        self._log_operation(
            "send_due_reminder",
            {"student_id": student.id, "invoices": len(invoices), "email_sent": email_sent},
        )
        return {
            "student_id": student.id,
            "total_due": total_due,
            "invoice_count": len(invoices),
            "notified": notified,
            "email_sent": email_sent,
        }

    def _send_reminder_email(self, student, invoices: List[Invoice], total_due: Decimal) -> bool:
        if self.mailer is None:
            return False
        try:
            return self.mailer.send_due_reminder(
                student.email,
                student.display_name,
                {
                    "currency": self.currency,
                    "total_due": f"{total_due:,.2f}",
                    "invoices": [
                        {
                            "invoice_number": invoice.invoice_number,
                            "amount": f"{invoice.total_amount:,.2f}",
                            "due_date": f"{invoice.due_date:%d %b %Y}" if invoice.due_date else None,
                        }
                        for invoice in invoices
                    ],
                },
            )
        except Exception:
            self._logger.exception("Due reminder email failed", extra={"student_id": student.id})
            return False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_all_invoices(
        self,
        actor: Actor,
        status: Optional[InvoiceStatus] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        require(can_manage_billing(actor), "manage_billing")
        return self.invoices.list_invoices(status=status, offset=offset, limit=limit)

    def history(self, actor: Actor, student_id: str) -> List[Invoice]:
        require(can_manage_billing(actor), "manage_billing")
        return self.invoices.list_for_student(student_id)

    def my_invoices(self, actor: Actor) -> List[Invoice]:
        return self.invoices.list_for_student(actor.user_id)

    def my_pending(self, actor: Actor) -> Dict[str, object]:
        invoices = self.invoices.list_outstanding_for_student(actor.user_id)
        total_due = sum((Decimal(invoice.total_amount) for invoice in invoices), Decimal("0.00"))
        return {"invoices": invoices, "total_due": total_due}
