"""
Booking lifecycle: checkout, payment verification and commit, check-in,
check-out and cancellation.

Commit protocol for a verified payment:

1. authorize, verify the signature (no writes on failure);
2. commit a RECEIVED PaymentRecord so the payment is never untraceable;
3. fetch the gateway order; its amount is the captured price;
4. conflict checks; a conflict left by a concurrent commit of the same
   payment is a replay, any other flags the record for refund;
5. one transaction: slot claim (compare-and-swap, first write), booking,
   occupant row, invoice, profile upsert, record COMMITTED;
6. best-effort side effects.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hostel_app.config.settings import Settings
from hostel_app.core.exceptions import (
    AlreadyBookedError,
    AuthorizationError,
    BaseAppException,
    BookingNotFoundError,
    ErrorCode,
    GatewayRejectedError,
    GatewayUnavailableError,
    InvalidBookingStateError,
    InvalidPaymentSignatureError,
    PaymentOrderMismatchError,
    PersistenceFailureError,
    PlanNotFoundError,
    RoomNoLongerAvailableError,
    RoomNotFoundError,
    ValidationError,
)
from hostel_app.core.security import (
    Actor,
    can_cancel_booking,
    can_check_in,
    can_check_out,
    can_initiate_checkout,
    can_verify_own_booking,
    can_view_residents,
    require,
)
from hostel_app.models.base.enums import (
    BookingStatus,
    InvoiceStatus,
    PaymentRecordStatus,
    PaymentStatus,
    PlanUnit,
)
from hostel_app.models.booking import Booking
from hostel_app.models.payment import Invoice, InvoiceItem, PaymentRecord
from hostel_app.models.room import Room
from hostel_app.repositories.booking import BookingRepository
from hostel_app.repositories.payment import InvoiceRepository
from hostel_app.repositories.room import RoomRepository
from hostel_app.repositories.user import UserProfileRepository, UserRepository
from hostel_app.schemas.booking.booking_request import ResidentDetails, VerifyPaymentRequest
from hostel_app.services.base.base_service import BaseService, track_performance
from hostel_app.services.billing.billing_service import generate_invoice_number
from hostel_app.services.booking.booking_pricing_service import from_minor_units, quote
from hostel_app.services.booking.booking_side_effects import BookingSideEffects
from hostel_app.services.payment.payment_gateway import GatewayOrder, RazorpayGateway
from hostel_app.services.payment.reconciliation_service import PaymentReconciliationService
from hostel_app.utils.date_utils import calculate_age, now_utc, timestamp_millis

# Smallest order the gateway accepts, in minor units
MIN_ORDER_AMOUNT_MINOR = 100


class BookingLifecycleService(BaseService):
    """
    Orchestrates a booking from checkout to check-out.

    The room slot is claimed with a conditional UPDATE on the occupancy
    counter, so two verified payments racing for the last slot are
    serialized by the database: exactly one claim updates a row.
    """

    def __init__(
        self,
        db_session: Session,
        settings: Settings,
        gateway: RazorpayGateway,
        side_effects: Optional[BookingSideEffects] = None,
        reconciliation: Optional[PaymentReconciliationService] = None,
    ):
        super().__init__(db_session)
        self.currency = settings.CURRENCY
        self.gateway = gateway
        self.rooms = RoomRepository(db_session)
        self.bookings = BookingRepository(db_session)
        self.invoices = InvoiceRepository(db_session)
        self.users = UserRepository(db_session)
        self.profiles = UserProfileRepository(db_session)
        self.reconciliation = reconciliation or PaymentReconciliationService(
            db_session, gateway, settings.PAYMENT_AUTO_REFUND
        )
        self.side_effects = side_effects or BookingSideEffects(db_session)

    # =========================================================================
    # Checkout
    # =========================================================================

    @track_performance("initiate_checkout")
    def initiate_checkout(self, actor: Actor, room_id: str, plan_id: str) -> Dict[str, Any]:
        """
        Price the room plan and open a gateway order for it.

        Nothing is persisted: an abandoned checkout leaves no trace.

        Raises:
            AlreadyBookedError, RoomNotFoundError, RoomNoLongerAvailableError,
            PlanNotFoundError, ValidationError, GatewayUnavailableError
        """
        require(can_initiate_checkout(actor), "initiate_checkout")

        existing = self.bookings.find_active_for_student(actor.user_id)
        if existing is not None:
            raise AlreadyBookedError(actor.user_id, existing.id)

        room = self.rooms.find_by_id(room_id)
        if room is None:
            raise RoomNotFoundError(room_id)
        if room.is_staff_room or room.is_occupied:
            raise RoomNoLongerAvailableError(room_id)

        price = quote(room, plan_id)
        if price.amount_minor < MIN_ORDER_AMOUNT_MINOR:
            raise ValidationError(
                "Amount payable is below the minimum the payment gateway accepts",
                {"amount": [f"must be at least {MIN_ORDER_AMOUNT_MINOR} minor units"]},
            )

        order = self.gateway.create_order(
            price.amount_minor,
            self.currency,
            receipt=f"receipt_{timestamp_millis()}",
            notes={
                "student_id": actor.user_id,
                "room_id": room.id,
                "plan_id": price.plan_id,
                "plan_duration": str(price.duration),
                "plan_unit": price.unit.value,
                "amount_minor": str(price.amount_minor),
            },
        )

        self._log_operation(
            "initiate_checkout",
            {"order_id": order.id, "room_id": room.id, "amount_minor": order.amount},
        )
        return {
            "order_id": order.id,
            "amount": order.amount,
            "currency": order.currency,
            "key_id": self.gateway.public_key_id,
            "price": {
                "plan_id": price.plan_id,
                "duration": price.duration,
                "unit": price.unit,
                "base_price": price.base_price,
                "discount_amount": price.discount_amount,
                "final_price": price.final_price,
            },
            "room": room,
        }

    # =========================================================================
    # Verify & commit
    # =========================================================================

    @track_performance("verify_and_commit")
    def verify_and_commit(self, actor: Actor, request: VerifyPaymentRequest) -> Dict[str, Any]:
        """
        Turn a verified payment into a booking, exactly once.

        Returns:
            {"booking_id", "invoice_id", "total_amount", "replayed"}

        Raises:
            InvalidPaymentSignatureError: proof did not verify; nothing written.
            RoomNotFoundError, AlreadyBookedError, RoomNoLongerAvailableError,
            PaymentOrderMismatchError: the payment could not become a booking.
            PersistenceFailureError: payment received, booking pending.
        """
        student_id = actor.user_id
        require(can_verify_own_booking(actor, student_id), "verify_own_booking")

        order_id, payment_id = request.order_id, request.payment_id
        if not self.gateway.verify_payment(order_id, payment_id, request.signature):
            self._logger.warning(
                "Payment signature rejected",
                extra={"order_id": order_id, "payment_id": payment_id, "student_id": student_id},
            )
            raise InvalidPaymentSignatureError(order_id)

        # Step 2: durable log before anything else
        try:
            record, created = self.reconciliation.record_verified_payment(
                order_id, payment_id, student_id, request.room_id, request.plan_id
            )
        except SQLAlchemyError as e:
            self._logger.critical(
                "Verified payment could not be logged",
                extra={"order_id": order_id, "payment_id": payment_id, "student_id": student_id, "error": str(e)},
            )
            raise PersistenceFailureError(order_id, payment_id, "payment_log_unavailable") from e

        if record.student_id != student_id:
            raise AuthorizationError("This payment belongs to another account", "verify_own_booking")
        if record.order_id != order_id:
            raise PaymentOrderMismatchError(order_id, "order_id")

        if not created:
            replay = self._resume_or_replay(record)
            if replay is not None:
                return replay

        # Step 3: the gateway order is the source of truth for what was paid
        order = self._fetch_paid_order(record)
        self._check_order_matches(order, student_id, request.room_id, request.plan_id)
        self.reconciliation.capture_order(record, order)

        # Step 4: conflicts detected before the write group
        room = self.rooms.find_by_id(request.room_id)
        conflict = self._find_conflict(room, request.room_id, student_id)
        if conflict is not None:
            # A concurrent submission of this same payment may be the cause
            replay = self._committed_replay(record)
            if replay is not None:
                return replay
            self._refund_and_raise(record.id, conflict)

        # Step 5: the write group
        booking, invoice, replayed = self._commit_booking(record, order, room, request.resident_details)
        if replayed:
            return self._commit_result(booking, invoice, replayed=True)

        # Step 6: best effort
        try:
            student = self.users.find_by_id(student_id)
            if student is not None:
                self.side_effects.booking_committed(booking, invoice, student, room)
        except Exception:
            self._logger.exception("Post-commit side effects failed", extra={"booking_id": booking.id})

        return self._commit_result(booking, invoice, replayed=False)

    def _resume_or_replay(self, record: PaymentRecord) -> Optional[Dict[str, Any]]:
        """
        Decide what a repeated submission of a logged payment means.

        Returns the committed result for a replay, None to resume processing,
        or raises the conflict recorded the first time.
        """
        if record.status == PaymentRecordStatus.COMMITTED:
            booking = self.bookings.find_by_id(record.booking_id)
            self._logger.info(
                "Replayed payment verification",
                extra={"payment_id": record.payment_id, "booking_id": record.booking_id},
            )
            return self._commit_result(booking, self.invoices.find_for_booking(booking.id), replayed=True)

        if record.status in (
            PaymentRecordStatus.REFUND_REQUIRED,
            PaymentRecordStatus.REFUNDED,
            PaymentRecordStatus.RESOLVED,
        ):
            raise self._recorded_conflict(record)

        self._logger.info(
            "Resuming payment commit",
            extra={"payment_id": record.payment_id, "status": record.status.value, "attempts": record.attempts},
        )
        return None

    @staticmethod
    def _recorded_conflict(record: PaymentRecord) -> BaseAppException:
        code = record.failure_code
        if code == ErrorCode.ROOM_UNAVAILABLE.value:
            return RoomNoLongerAvailableError(record.room_id)
        if code == ErrorCode.ALREADY_BOOKED.value:
            return AlreadyBookedError(record.student_id)
        if code == ErrorCode.ROOM_NOT_FOUND.value:
            return RoomNotFoundError(record.room_id)
        if code == ErrorCode.PLAN_NOT_FOUND.value:
            return PlanNotFoundError(record.plan_id, record.room_id)
        if code == ErrorCode.INVALID_BOOKING_STATE.value and record.booking_id:
            return InvalidBookingStateError(
                record.booking_id, BookingStatus.CANCELLED.value, [BookingStatus.PENDING.value]
            )
        return BaseAppException(
            record.failure_reason or "This payment could not be applied to a booking",
            ErrorCode.ROOM_UNAVAILABLE,
            {"payment_id": record.payment_id, "record_status": record.status.value},
            409,
        )

    def _fetch_paid_order(self, record: PaymentRecord) -> GatewayOrder:
        try:
            return self.gateway.fetch_order(record.order_id)
        except GatewayUnavailableError as e:
            # Record stays RECEIVED; the client may simply retry
            self._logger.error(
                "Gateway unavailable while confirming a verified payment",
                extra={"order_id": record.order_id, "payment_id": record.payment_id},
            )
            raise PersistenceFailureError(record.order_id, record.payment_id, "gateway_unavailable") from e
        except GatewayRejectedError as e:
            self.reconciliation.mark_needs_review(record.id, f"order lookup refused: {e.message}")
            raise PersistenceFailureError(record.order_id, record.payment_id, "order_unverifiable") from e

    def _find_conflict(self, room: Optional[Room], room_id: str, student_id: str) -> Optional[BaseAppException]:
        if room is None:
            return RoomNotFoundError(room_id)
        existing = self.bookings.find_active_for_student(student_id)
        if existing is not None:
            return AlreadyBookedError(student_id, existing.id)
        if not self.rooms.has_free_slot(room.id):
            return RoomNoLongerAvailableError(room.id)
        return None

    def _committed_replay(self, record: PaymentRecord) -> Optional[Dict[str, Any]]:
        """The result of an earlier commit of this payment by another request, if any."""
        booking = self.bookings.find_by_payment_id(record.payment_id)
        if booking is None:
            return None
        self._logger.info(
            "Payment committed by a concurrent request",
            extra={"payment_id": record.payment_id, "booking_id": booking.id},
        )
        return self._commit_result(booking, self.invoices.find_for_booking(booking.id), replayed=True)

    @staticmethod
    def _check_order_matches(order: GatewayOrder, student_id: str, room_id: str, plan_id: str) -> None:
        expected = {"student_id": student_id, "room_id": room_id, "plan_id": plan_id}
        for field_name, value in expected.items():
            if order.notes.get(field_name) != value:
                raise PaymentOrderMismatchError(order.id, field_name)

    def _refund_and_raise(self, record_id: str, error: BaseAppException) -> None:
        self._rollback()
        self.reconciliation.flag_refund_required(record_id, error.error_code.value, error.message)
        raise error

    def _commit_booking(
        self,
        record: PaymentRecord,
        order: GatewayOrder,
        room: Room,
        resident: ResidentDetails,
    ):
        record_id, payment_id = record.id, record.payment_id
        student_id = record.student_id

        try:
            plan_duration = int(order.notes["plan_duration"])
            plan_unit = PlanUnit(order.notes["plan_unit"])
        except (KeyError, ValueError):
            self._refund_and_raise(record_id, PaymentOrderMismatchError(order.id, "plan"))

        total_amount = from_minor_units(order.amount)
        now = now_utc()

        try:
            if not self.rooms.claim_slot(room):
                self._rollback()
                committed = self.bookings.find_by_payment_id(payment_id)
                if committed is not None:
                    return committed, self.invoices.find_for_booking(committed.id), True
                self._refund_and_raise(record_id, RoomNoLongerAvailableError(room.id))

            booking = self.bookings.add(Booking(
                student_id=student_id,
                room_id=room.id,
                plan_id=order.notes["plan_id"],
                plan_duration=plan_duration,
                plan_unit=plan_unit,
                total_amount=total_amount,
                amount_paid_minor=order.amount,
                currency=order.currency or self.currency,
                payment_status=PaymentStatus.PAID,
                status=BookingStatus.PENDING,
                order_id=order.id,
                payment_id=payment_id,
                check_in_date=resident.check_in_date,
                resident_details=resident.model_dump(mode="json"),
            ))
            self.rooms.add_occupant(room.id, student_id, booking.id)

            invoice = self.invoices.add(Invoice(
                invoice_number=generate_invoice_number("BKG"),
                student_id=student_id,
                booking_id=booking.id,
                total_amount=total_amount,
                status=InvoiceStatus.PAID,
                paid_at=now,
                due_date=now,
                items=[InvoiceItem(description=f"Hostel Fee ({booking.plan_label})", amount=total_amount)],
            ))

            self.profiles.upsert(student_id, self._profile_fields(resident))

            record.status = PaymentRecordStatus.COMMITTED
            record.booking_id = booking.id
            self._commit()
        except IntegrityError as e:
            self._rollback()
            return self._resolve_integrity_error(record_id, payment_id, student_id, e)
        except SQLAlchemyError as e:
            self._rollback()
            self._logger.critical(
                "Booking write failed after payment was verified",
                extra={"order_id": order.id, "payment_id": payment_id, "student_id": student_id, "error": str(e)},
            )
            self.reconciliation.mark_needs_review(record_id, f"booking write failed: {type(e).__name__}")
            raise PersistenceFailureError(order.id, payment_id, "booking_write_failed") from e

        self._log_operation(
            "verify_and_commit",
            {"booking_id": booking.id, "room_id": room.id, "payment_id": payment_id, "amount_minor": order.amount},
        )
        return booking, invoice, False

    def _resolve_integrity_error(self, record_id: str, payment_id: str, student_id: str, error: IntegrityError):
        """
        Classify a constraint violation from the write group.

        A concurrent replay that already committed wins; a student occupant
        violation means the student got a slot elsewhere first.
        """
        committed = self.bookings.find_by_payment_id(payment_id)
        if committed is not None:
            return committed, self.invoices.find_for_booking(committed.id), True

        message = str(error.orig)
        active = self.bookings.find_active_for_student(student_id)
        if active is not None or "room_occupants.student_id" in message or "uq_room_occupant_student" in message:
            self._refund_and_raise(record_id, AlreadyBookedError(student_id, active.id if active else None))

        self._logger.critical(
            "Constraint violation committing a verified payment",
            extra={"payment_id": payment_id, "student_id": student_id, "error": message},
        )
        self.reconciliation.mark_needs_review(record_id, f"integrity error: {message}")
        record = self.reconciliation.records.find_by_id(record_id)
        raise PersistenceFailureError(record.order_id if record else "", payment_id, "booking_write_failed") from error

    @staticmethod
    def _profile_fields(resident: ResidentDetails) -> Dict[str, Any]:
        contact = resident.emergency_contact
        return {
            "full_name": resident.full_name,
            "date_of_birth": resident.date_of_birth,
            "age": calculate_age(resident.date_of_birth),
            "gender": resident.gender,
            "student_id": resident.student_id,
            "phone_number": resident.phone_number,
            "alt_phone": resident.alt_phone,
            "address_street": resident.address.street,
            "address_city": resident.address.city,
            "address_state": resident.address.state,
            "address_zip_code": resident.address.zip_code,
            "emergency_contact_name": contact.name if contact else None,
            "emergency_contact_phone": contact.phone if contact else None,
            "emergency_contact_relationship": contact.relationship if contact else None,
        }

    @staticmethod
    def _commit_result(booking: Booking, invoice: Optional[Invoice], replayed: bool) -> Dict[str, Any]:
        return {
            "booking_id": booking.id,
            "invoice_id": invoice.id if invoice else None,
            "total_amount": booking.total_amount,
            "replayed": replayed,
        }

    # =========================================================================
    # Resident lifecycle
    # =========================================================================

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.bookings.find_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    @staticmethod
    def _require_status(booking: Booking, allowed) -> None:
        if booking.status not in allowed:
            raise InvalidBookingStateError(booking.id, booking.status.value, [s.value for s in allowed])

    def check_in(self, actor: Actor, booking_id: str) -> Booking:
        """Pending -> CheckedIn, stamping the actual arrival time."""
        require(can_check_in(actor), "check_in")
        booking = self._get_booking(booking_id)
        self._require_status(booking, (BookingStatus.PENDING,))

        with self.transaction():
            booking.status = BookingStatus.CHECKED_IN
            booking.checked_in_at = now_utc()

        self._log_operation("check_in", {"booking_id": booking.id, "admin_id": actor.user_id})
        self.side_effects.checked_in(booking)
        return booking

    def check_out(self, actor: Actor, booking_id: str) -> Booking:
        """CheckedIn/Active -> CheckedOut; frees the slot in the same transaction."""
        require(can_check_out(actor), "check_out")
        booking = self._get_booking(booking_id)
        self._require_status(booking, (BookingStatus.CHECKED_IN, BookingStatus.ACTIVE))

        with self.transaction():
            self._free_slot(booking)
            booking.status = BookingStatus.CHECKED_OUT
            booking.checked_out_at = now_utc()

        self._log_operation("check_out", {"booking_id": booking.id, "room_id": booking.room_id})
        self.side_effects.checked_out(booking)
        return booking

    def cancel_booking(self, actor: Actor, booking_id: str, reason: str) -> Booking:
        """
        Cancel a booking before check-in.

        The slot is released and the payment is flagged for refund; the
        booking row itself is kept.
        """
        require(can_cancel_booking(actor), "cancel_booking")
        booking = self._get_booking(booking_id)
        self._require_status(booking, (BookingStatus.PENDING,))

        with self.transaction():
            self._free_slot(booking)
            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = now_utc()
            booking.cancellation_reason = reason

        record = self.reconciliation.records.find_by_booking_id(booking.id)
        if record is not None:
            self.reconciliation.flag_refund_required(
                record.id,
                ErrorCode.INVALID_BOOKING_STATE.value,
                f"cancelled: {reason}",
                from_statuses=(PaymentRecordStatus.COMMITTED,),
            )
        else:
            self._logger.warning("Cancelled booking has no payment record", extra={"booking_id": booking.id})

        self._log_operation("cancel_booking", {"booking_id": booking.id, "admin_id": actor.user_id})
        self.side_effects.cancelled(booking)
        return booking

    def _free_slot(self, booking: Booking) -> None:
        room = booking.room
        self.rooms.remove_occupant(booking.id)
        self.rooms.release_slot(room)

    # =========================================================================
    # Queries
    # =========================================================================

    def booking_status(self, actor: Actor) -> Dict[str, Any]:
        booking = self.bookings.find_active_for_student(actor.user_id)
        if booking is None:
            return {"has_booking": False, "booking_id": None, "status": None}
        return {"has_booking": True, "booking_id": booking.id, "status": booking.status}

    def my_booking(self, actor: Actor) -> Booking:
        booking = self.bookings.find_active_for_student(actor.user_id)
        if booking is None:
            raise BookingNotFoundError()
        return booking

    def list_bookings(
        self,
        actor: Actor,
        status: Optional[BookingStatus] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> List[Booking]:
        require(can_view_residents(actor), "view_residents")
        return self.bookings.list_bookings(status=status, offset=offset, limit=limit)
