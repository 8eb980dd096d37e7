"""
Payment reconciliation: the durable log of verified payments and the
compensating workflow for payments that could not become bookings.

Lifecycle of a PaymentRecord:

    RECEIVED --commit--> COMMITTED
    RECEIVED --conflict--> REFUND_REQUIRED --refund--> REFUNDED
    RECEIVED --db failure--> NEEDS_REVIEW
    REFUND_REQUIRED / NEEDS_REVIEW --operator--> RESOLVED
"""

from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hostel_app.core.exceptions import (
    GatewayRejectedError,
    GatewayUnavailableError,
    InvalidBookingStateError,
    PaymentRecordNotFoundError,
)
from hostel_app.core.security import Actor, can_reconcile_payments, require
from hostel_app.models.base.enums import PaymentRecordStatus
from hostel_app.models.payment import PaymentRecord
from hostel_app.repositories.payment import PaymentRecordRepository
from hostel_app.services.base.base_service import BaseService
from hostel_app.services.payment.payment_gateway import GatewayOrder, RazorpayGateway
from hostel_app.utils.date_utils import now_utc


class PaymentReconciliationService(BaseService):

    def __init__(self, db_session: Session, gateway: RazorpayGateway, auto_refund: bool = False):
        super().__init__(db_session)
        self.records = PaymentRecordRepository(db_session)
        self.gateway = gateway
        self.auto_refund = auto_refund

    # ------------------------------------------------------------------
    # Durable log
    # ------------------------------------------------------------------

    def record_verified_payment(
        self,
        order_id: str,
        payment_id: str,
        student_id: str,
        room_id: str,
        plan_id: str,
    ) -> Tuple[PaymentRecord, bool]:
        """
        Commit a RECEIVED record for a verified payment.

        Returns the record and whether it was created by this call. A replay
        of the same payment returns the existing record.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: the log itself could not be written.
        """
        existing = self.records.find_by_payment_id(payment_id)
        if existing is not None:
            return self._note_attempt(existing), False

        record = PaymentRecord(
            order_id=order_id,
            payment_id=payment_id,
            student_id=student_id,
            room_id=room_id,
            plan_id=plan_id,
            status=PaymentRecordStatus.RECEIVED,
        )
        try:
            with self.transaction():
                self.records.add(record)
        except IntegrityError:
            # A concurrent replay inserted it first
            existing = self.records.find_by_payment_id(payment_id)
            if existing is None:
                raise
            return self._note_attempt(existing), False

        self._logger.info(
            "Verified payment recorded",
            extra={"order_id": order_id, "payment_id": payment_id, "student_id": student_id},
        )
        return record, True

    def _note_attempt(self, record: PaymentRecord) -> PaymentRecord:
        try:
            with self.transaction():
                record.attempts = (record.attempts or 0) + 1
        except SQLAlchemyError as e:
            self._logger.warning(
                "Could not count payment replay",
                extra={"payment_id": record.payment_id, "error": str(e)},
            )
        return record

    def capture_order(self, record: PaymentRecord, order: GatewayOrder) -> None:
        """Store what the gateway says was paid, and for which room and plan."""
        with self.transaction():
            record.amount_minor = order.amount
            record.currency = order.currency
            record.room_id = order.notes.get("room_id", record.room_id)
            record.plan_id = order.notes.get("plan_id", record.plan_id)

    # ------------------------------------------------------------------
    # Failure paths
    # ------------------------------------------------------------------

    def flag_refund_required(
        self,
        record_id: str,
        failure_code: str,
        reason: str,
        from_statuses: Optional[Iterable[PaymentRecordStatus]] = None,
    ) -> Optional[PaymentRecord]:
        """
        Mark a verified payment as owed back to the student and start the
        compensating workflow. Never raises.

        Only a record still in ``from_statuses`` (default: not yet committed)
        is flagged. Returns None when the record was left alone, e.g. because
        a concurrent submission of the same payment committed it first.
        """
        from_statuses = tuple(from_statuses or PaymentRecordStatus.uncommitted())
        try:
            with self.transaction():
                flagged = self.records.transition(
                    record_id,
                    PaymentRecordStatus.REFUND_REQUIRED,
                    from_statuses,
                    failure_code=failure_code,
                    failure_reason=reason,
                )
            record = self.records.find_by_id(record_id)
        except SQLAlchemyError as e:
            self._logger.critical(
                "Could not flag payment for refund",
                extra={"record_id": record_id, "failure_code": failure_code, "error": str(e)},
            )
            return None

        if not flagged:
            self._logger.warning(
                "Refund flag skipped; payment record moved on",
                extra={
                    "record_id": record_id,
                    "failure_code": failure_code,
                    "status": record.status.value if record else None,
                },
            )
            return None

        self._logger.warning(
            "Payment flagged for refund",
            extra={
                "order_id": record.order_id,
                "payment_id": record.payment_id,
                "failure_code": failure_code,
            },
        )
        if self.auto_refund:
            self._attempt_refund(record)
        return record

    def mark_needs_review(self, record_id: str, reason: str) -> None:
        """Flag a payment whose booking write failed for reasons other than a conflict."""
        try:
            with self.transaction():
                flagged = self.records.transition(
                    record_id,
                    PaymentRecordStatus.NEEDS_REVIEW,
                    PaymentRecordStatus.uncommitted(),
                    failure_code="PERSISTENCE_FAILURE",
                    failure_reason=reason,
                )
        except SQLAlchemyError as e:
            self._logger.critical(
                "Could not flag payment for review",
                extra={"record_id": record_id, "error": str(e)},
            )
            return
        if not flagged:
            self._logger.warning("Review flag skipped; payment record moved on", extra={"record_id": record_id})

    def _attempt_refund(self, record: PaymentRecord) -> bool:
        try:
            refund_id = self.gateway.refund_payment(record.payment_id, record.amount_minor)
        except (GatewayUnavailableError, GatewayRejectedError) as e:
            self._logger.error(
                "Automatic refund failed; left for manual reconciliation",
                extra={"payment_id": record.payment_id, "order_id": record.order_id, "error": e.message},
            )
            return False

        with self.transaction():
            return self.records.transition(
                record.id,
                PaymentRecordStatus.REFUNDED,
                (PaymentRecordStatus.REFUND_REQUIRED,),
                refund_id=refund_id,
                resolved_at=now_utc(),
            )

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    def list_flagged(self, actor: Actor) -> List[PaymentRecord]:
        require(can_reconcile_payments(actor), "reconcile_payments")
        return self.records.list_flagged()

    def _get_record(self, record_id: str) -> PaymentRecord:
        record = self.records.find_by_id(record_id)
        if record is None:
            raise PaymentRecordNotFoundError(record_id)
        return record

    def retry_refund(self, actor: Actor, record_id: str) -> PaymentRecord:
        """Issue the refund for a REFUND_REQUIRED record now."""
        require(can_reconcile_payments(actor), "reconcile_payments")
        record = self._get_record(record_id)
        if record.status != PaymentRecordStatus.REFUND_REQUIRED:
            raise InvalidBookingStateError(
                record.id, record.status.value, [PaymentRecordStatus.REFUND_REQUIRED.value]
            )

        refund_id = self.gateway.refund_payment(record.payment_id, record.amount_minor)
        with self.transaction():
            record.status = PaymentRecordStatus.REFUNDED
            record.refund_id = refund_id
            record.resolved_by = actor.user_id
            record.resolved_at = now_utc()

        self._log_operation("retry_refund", {"payment_id": record.payment_id, "refund_id": refund_id})
        return record

    def resolve(self, actor: Actor, record_id: str, note: str) -> PaymentRecord:
        """Close a flagged record after manual handling."""
        require(can_reconcile_payments(actor), "reconcile_payments")
        record = self._get_record(record_id)
        if record.status not in PaymentRecordStatus.flagged():
            raise InvalidBookingStateError(
                record.id,
                record.status.value,
                [status.value for status in PaymentRecordStatus.flagged()],
            )

        with self.transaction():
            record.status = PaymentRecordStatus.RESOLVED
            record.resolution_note = note
            record.resolved_by = actor.user_id
            record.resolved_at = now_utc()

        self._log_operation("resolve", {"payment_id": record.payment_id})
        return record
