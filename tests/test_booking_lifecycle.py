from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from hostel_app.core.exceptions import (
    AlreadyBookedError,
    AuthorizationError,
    InvalidBookingStateError,
    InvalidPaymentSignatureError,
    PaymentOrderMismatchError,
    PersistenceFailureError,
    RoomNoLongerAvailableError,
    RoomNotFoundError,
    ValidationError,
)
from hostel_app.models.base.enums import (
    BookingStatus,
    DiscountTarget,
    DiscountType,
    InvoiceStatus,
    NotificationType,
    PaymentRecordStatus,
    PaymentStatus,
)
from hostel_app.models.booking import Booking
from hostel_app.models.notification import Notification
from hostel_app.models.payment import Invoice, PaymentRecord
from hostel_app.models.room import Discount, RoomOccupant
from hostel_app.models.user import UserProfile
from hostel_app.repositories.room import RoomRepository
from hostel_app.services.booking.booking_lifecycle_service import BookingLifecycleService

from tests.conftest import actor_for, verify_request, years_since


def _count(db, model, *where):
    return db.scalar(select(func.count()).select_from(model).where(*where))


def _refresh(db, *objects):
    for obj in objects:
        db.refresh(obj)


class TestCheckout:

    def test_returns_order_in_paise_and_persists_nothing(self, booking_service, student, make_room, fake_razorpay, db):
        room = make_room(capacity=2, price="12000")

        result = booking_service.initiate_checkout(actor_for(student), room.id, room.plans[0].id)

        assert result["amount"] == 1_200_000
        assert result["currency"] == "INR"
        assert result["key_id"] == "rzp_test_key"
        assert result["price"]["final_price"] == Decimal("12000.00")
        order = fake_razorpay.orders[result["order_id"]]
        assert order["notes"]["student_id"] == student.id
        assert order["notes"]["room_id"] == room.id
        assert order["receipt"].startswith("receipt_")
        assert _count(db, Booking) == 0
        assert _count(db, PaymentRecord) == 0

    def test_full_room_is_rejected(self, booking_service, student, make_room, db):
        room = make_room(capacity=1)
        room.occupant_count, room.is_occupied = 1, True
        db.commit()

        with pytest.raises(RoomNoLongerAvailableError):
            booking_service.initiate_checkout(actor_for(student), room.id, room.plans[0].id)

    def test_unknown_room(self, booking_service, student):
        with pytest.raises(RoomNotFoundError):
            booking_service.initiate_checkout(actor_for(student), "missing", "plan")

    def test_amount_below_gateway_minimum(self, booking_service, student, make_room, db):
        discount = Discount(name="free", discount_type=DiscountType.FIXED, value=Decimal("10000"),
                            target_category=DiscountTarget.ROOM, is_active=True)
        db.add(discount)
        db.commit()
        room = make_room(price="8000", discount=discount)

        with pytest.raises(ValidationError):
            booking_service.initiate_checkout(actor_for(student), room.id, room.plans[0].id)

    def test_admin_cannot_checkout(self, booking_service, admin, make_room):
        room = make_room()
        with pytest.raises(AuthorizationError):
            booking_service.initiate_checkout(actor_for(admin), room.id, room.plans[0].id)

    def test_student_with_active_booking(self, booking_service, book, student, make_room):
        room = make_room()
        book(student, room, "pay_A1")

        with pytest.raises(AlreadyBookedError):
            booking_service.initiate_checkout(actor_for(student), make_room().id, room.plans[0].id)


class TestVerifyAndCommit:

    def test_end_to_end_commit(self, book, student, make_room, db):
        room = make_room(capacity=2, price="12000")

        checkout, result = book(student, room, "pay_A1")

        assert checkout["amount"] == 1_200_000
        assert result["replayed"] is False
        booking = db.get(Booking, result["booking_id"])
        assert booking.status == BookingStatus.PENDING
        assert booking.payment_status == PaymentStatus.PAID
        assert booking.total_amount == Decimal("12000.00")
        assert booking.amount_paid_minor == 1_200_000
        assert booking.check_in_date == date(2026, 11, 1)
        assert booking.resident_details["full_name"] == "Asha Verma"

        _refresh(db, room)
        assert room.occupant_count == 1
        assert room.is_occupied is False
        assert RoomRepository(db).occupant_student_ids(room.id) == [student.id]

        invoice = db.get(Invoice, result["invoice_id"])
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.total_amount == Decimal("12000.00")
        assert invoice.paid_at is not None
        assert invoice.invoice_number.startswith("BKG-")
        assert [item.description for item in invoice.items] == ["Hostel Fee (6 months)"]

        record = db.scalars(select(PaymentRecord)).one()
        assert record.status == PaymentRecordStatus.COMMITTED
        assert record.booking_id == booking.id
        assert record.amount_minor == 1_200_000

    def test_profile_upserted_with_age_at_booking(self, book, student, make_room, db):
        book(student, make_room(), "pay_A1")

        profile = db.scalars(select(UserProfile).where(UserProfile.user_id == student.id)).one()
        assert profile.full_name == "Asha Verma"
        assert profile.age == years_since(date(2004, 5, 17))
        assert profile.address_city == "Pune"
        assert profile.emergency_contact_relationship == "Father"

    def test_second_student_fills_room(self, book, student, other_student, make_room, db):
        room = make_room(capacity=2)
        book(student, room, "pay_A1")
        book(other_student, room, "pay_B1", full_name="Bilal Khan")

        _refresh(db, room)
        assert room.occupant_count == 2
        assert room.is_occupied is True
        assert set(RoomRepository(db).occupant_student_ids(room.id)) == {student.id, other_student.id}

    def test_booking_notification_created(self, book, student, make_room, db):
        book(student, make_room(), "pay_A1")
        notes = db.scalars(select(Notification).where(Notification.user_id == student.id)).all()
        assert [n.notification_type for n in notes] == [NotificationType.BOOKING]

    def test_replay_returns_same_booking(self, booking_service, book, student, make_room, sign, db):
        room = make_room(capacity=2)
        checkout, first = book(student, room, "pay_A1")

        request = verify_request(checkout["order_id"], "pay_A1", sign(checkout["order_id"], "pay_A1"),
                                 room.id, room.plans[0].id)
        second = booking_service.verify_and_commit(actor_for(student), request)

        assert second["replayed"] is True
        assert second["booking_id"] == first["booking_id"]
        assert second["invoice_id"] == first["invoice_id"]
        assert _count(db, Booking) == 1
        assert _count(db, Invoice) == 1
        _refresh(db, room)
        assert room.occupant_count == 1
        assert db.scalars(select(PaymentRecord)).one().attempts == 2

    def test_tampered_payment_id_changes_nothing(self, booking_service, student, make_room, sign, db):
        room = make_room()
        actor = actor_for(student)
        checkout = booking_service.initiate_checkout(actor, room.id, room.plans[0].id)
        signature = sign(checkout["order_id"], "pay_A1")

        with pytest.raises(InvalidPaymentSignatureError):
            booking_service.verify_and_commit(
                actor, verify_request(checkout["order_id"], "pay_FORGED", signature, room.id, room.plans[0].id)
            )

        _refresh(db, room)
        assert room.occupant_count == 0
        assert _count(db, Booking) == 0
        assert _count(db, Invoice) == 0
        assert _count(db, PaymentRecord) == 0

    def test_price_captured_at_checkout(self, booking_service, student, make_room, sign, db):
        room = make_room(price="12000")
        actor = actor_for(student)
        checkout = booking_service.initiate_checkout(actor, room.id, room.plans[0].id)

        # Discount introduced between checkout and payment verification
        discount = Discount(name="late", discount_type=DiscountType.FIXED, value=Decimal("2000"),
                            target_category=DiscountTarget.ROOM, is_active=True)
        db.add(discount)
        db.flush()
        room.active_discount_id = discount.id
        db.commit()

        result = booking_service.verify_and_commit(
            actor,
            verify_request(checkout["order_id"], "pay_A1", sign(checkout["order_id"], "pay_A1"),
                           room.id, room.plans[0].id),
        )
        assert result["total_amount"] == Decimal("12000.00")

    def test_order_for_other_room_is_rejected(self, booking_service, student, make_room, sign, db):
        room, other_room = make_room(), make_room()
        actor = actor_for(student)
        checkout = booking_service.initiate_checkout(actor, room.id, room.plans[0].id)

        with pytest.raises(PaymentOrderMismatchError) as exc:
            booking_service.verify_and_commit(
                actor,
                verify_request(checkout["order_id"], "pay_A1", sign(checkout["order_id"], "pay_A1"),
                               other_room.id, other_room.plans[0].id),
            )
        assert exc.value.details["field"] == "room_id"
        assert _count(db, Booking) == 0
        assert db.scalars(select(PaymentRecord)).one().status == PaymentRecordStatus.RECEIVED

    def test_other_student_cannot_claim_payment(self, booking_service, book, student, other_student,
                                                make_room, sign):
        room = make_room()
        checkout, _ = book(student, room, "pay_A1")

        with pytest.raises(AuthorizationError):
            booking_service.verify_and_commit(
                actor_for(other_student),
                verify_request(checkout["order_id"], "pay_A1", sign(checkout["order_id"], "pay_A1"),
                               room.id, room.plans[0].id),
            )


class TestLastSlotRace:

    def _checkout_both(self, booking_service, student, other_student, room):
        plan_id = room.plans[0].id
        first = booking_service.initiate_checkout(actor_for(student), room.id, plan_id)
        second = booking_service.initiate_checkout(actor_for(other_student), room.id, plan_id)
        return first, second

    def test_loser_is_flagged_for_refund(self, booking_service, student, other_student, make_room, sign, db):
        room = make_room(capacity=1)
        plan_id = room.plans[0].id
        first, second = self._checkout_both(booking_service, student, other_student, room)

        booking_service.verify_and_commit(
            actor_for(student),
            verify_request(first["order_id"], "pay_A1", sign(first["order_id"], "pay_A1"), room.id, plan_id),
        )
        with pytest.raises(RoomNoLongerAvailableError):
            booking_service.verify_and_commit(
                actor_for(other_student),
                verify_request(second["order_id"], "pay_B1", sign(second["order_id"], "pay_B1"), room.id, plan_id),
            )

        _refresh(db, room)
        assert room.occupant_count == 1
        assert room.is_occupied is True
        assert _count(db, Booking) == 1
        loser = db.scalars(select(PaymentRecord).where(PaymentRecord.payment_id == "pay_B1")).one()
        assert loser.status == PaymentRecordStatus.REFUND_REQUIRED
        assert loser.failure_code == "ROOM_UNAVAILABLE"

    def test_stale_availability_read_is_caught_by_slot_claim(
        self, booking_service, student, other_student, make_room, sign, db, monkeypatch
    ):
        room = make_room(capacity=1)
        plan_id = room.plans[0].id
        first, second = self._checkout_both(booking_service, student, other_student, room)
        booking_service.verify_and_commit(
            actor_for(student),
            verify_request(first["order_id"], "pay_A1", sign(first["order_id"], "pay_A1"), room.id, plan_id),
        )

        # Both requests saw a free slot; only the conditional update decides
        monkeypatch.setattr(RoomRepository, "has_free_slot", lambda self, room_id: True)

        with pytest.raises(RoomNoLongerAvailableError):
            booking_service.verify_and_commit(
                actor_for(other_student),
                verify_request(second["order_id"], "pay_B1", sign(second["order_id"], "pay_B1"), room.id, plan_id),
            )

        _refresh(db, room)
        assert room.occupant_count == 1
        assert _count(db, Booking, Booking.student_id == other_student.id) == 0
        assert _count(db, RoomOccupant) == 1
        loser = db.scalars(select(PaymentRecord).where(PaymentRecord.payment_id == "pay_B1")).one()
        assert loser.status == PaymentRecordStatus.REFUND_REQUIRED

    def test_replay_of_refunded_conflict_repeats_it(
        self, booking_service, student, other_student, make_room, sign
    ):
        room = make_room(capacity=1)
        plan_id = room.plans[0].id
        first, second = self._checkout_both(booking_service, student, other_student, room)
        booking_service.verify_and_commit(
            actor_for(student),
            verify_request(first["order_id"], "pay_A1", sign(first["order_id"], "pay_A1"), room.id, plan_id),
        )
        request = verify_request(second["order_id"], "pay_B1", sign(second["order_id"], "pay_B1"), room.id, plan_id)
        with pytest.raises(RoomNoLongerAvailableError):
            booking_service.verify_and_commit(actor_for(other_student), request)

        with pytest.raises(RoomNoLongerAvailableError):
            booking_service.verify_and_commit(actor_for(other_student), request)

    def test_claim_slot_is_conditional(self, make_room, db):
        room = make_room(capacity=1)
        rooms = RoomRepository(db)

        assert rooms.claim_slot(room) is True
        assert rooms.claim_slot(room) is False
        db.commit()

        _refresh(db, room)
        assert room.occupant_count == 1
        assert room.is_occupied is True

    def test_release_slot_reopens_room(self, make_room, db):
        room = make_room(capacity=1)
        rooms = RoomRepository(db)
        rooms.claim_slot(room)
        assert rooms.release_slot(room) is True
        assert rooms.release_slot(room) is False
        db.commit()

        _refresh(db, room)
        assert room.occupant_count == 0
        assert room.is_occupied is False


class TestAutoRefund:

    def test_conflict_refunded_automatically(self, db, settings, gateway, fake_razorpay, student,
                                             other_student, make_room, sign):
        service = BookingLifecycleService(db, settings.model_copy(update={"PAYMENT_AUTO_REFUND": True}), gateway)
        room = make_room(capacity=1)
        plan_id = room.plans[0].id
        first = service.initiate_checkout(actor_for(student), room.id, plan_id)
        second = service.initiate_checkout(actor_for(other_student), room.id, plan_id)
        service.verify_and_commit(
            actor_for(student),
            verify_request(first["order_id"], "pay_A1", sign(first["order_id"], "pay_A1"), room.id, plan_id),
        )

        with pytest.raises(RoomNoLongerAvailableError):
            service.verify_and_commit(
                actor_for(other_student),
                verify_request(second["order_id"], "pay_B1", sign(second["order_id"], "pay_B1"), room.id, plan_id),
            )

        record = db.scalars(select(PaymentRecord).where(PaymentRecord.payment_id == "pay_B1")).one()
        assert record.status == PaymentRecordStatus.REFUNDED
        assert record.refund_id == "rfnd_0001"
        assert fake_razorpay.refunds[0]["amount"] == 1_200_000


class TestGatewayOutageDuringCommit:

    def test_payment_received_booking_pending_then_resumed(
        self, booking_service, student, make_room, sign, fake_razorpay, db
    ):
        room = make_room()
        actor = actor_for(student)
        checkout = booking_service.initiate_checkout(actor, room.id, room.plans[0].id)
        request = verify_request(checkout["order_id"], "pay_A1", sign(checkout["order_id"], "pay_A1"),
                                 room.id, room.plans[0].id)

        fake_razorpay.fail_with = "timeout"
        with pytest.raises(PersistenceFailureError) as exc:
            booking_service.verify_and_commit(actor, request)
        assert exc.value.status_code == 202
        assert exc.value.details["payment_received"] is True
        assert db.scalars(select(PaymentRecord)).one().status == PaymentRecordStatus.RECEIVED
        assert _count(db, Booking) == 0

        fake_razorpay.fail_with = None
        result = booking_service.verify_and_commit(actor, request)
        assert result["replayed"] is False
        assert db.scalars(select(PaymentRecord)).one().status == PaymentRecordStatus.COMMITTED


class TestResidentLifecycle:

    def test_check_in_then_out_frees_slot(self, booking_service, book, admin, student, make_room, db):
        room = make_room(capacity=1)
        _, result = book(student, room, "pay_A1")
        _refresh(db, room)
        assert room.is_occupied is True

        booking = booking_service.check_in(actor_for(admin), result["booking_id"])
        assert booking.status == BookingStatus.CHECKED_IN
        assert booking.checked_in_at is not None

        booking = booking_service.check_out(actor_for(admin), result["booking_id"])
        assert booking.status == BookingStatus.CHECKED_OUT
        assert booking.checked_out_at is not None

        _refresh(db, room)
        assert room.occupant_count == 0
        assert room.is_occupied is False
        assert _count(db, RoomOccupant) == 0

    def test_check_in_twice_is_invalid(self, booking_service, book, admin, student, make_room):
        _, result = book(student, make_room(), "pay_A1")
        booking_service.check_in(actor_for(admin), result["booking_id"])

        with pytest.raises(InvalidBookingStateError):
            booking_service.check_in(actor_for(admin), result["booking_id"])

    def test_check_out_requires_check_in(self, booking_service, book, admin, student, make_room):
        _, result = book(student, make_room(), "pay_A1")
        with pytest.raises(InvalidBookingStateError) as exc:
            booking_service.check_out(actor_for(admin), result["booking_id"])
        assert exc.value.details["current_status"] == "Pending"

    def test_student_cannot_check_in(self, booking_service, book, student, make_room):
        _, result = book(student, make_room(), "pay_A1")
        with pytest.raises(AuthorizationError):
            booking_service.check_in(actor_for(student), result["booking_id"])

    def test_student_can_book_again_after_check_out(self, booking_service, book, admin, student, make_room):
        _, result = book(student, make_room(), "pay_A1")
        booking_service.check_in(actor_for(admin), result["booking_id"])
        booking_service.check_out(actor_for(admin), result["booking_id"])

        _, second = book(student, make_room(), "pay_A2")
        assert second["booking_id"] != result["booking_id"]


class TestCancellation:

    def test_cancel_releases_slot_and_flags_refund(self, booking_service, book, admin, student, make_room, db):
        room = make_room(capacity=1)
        _, result = book(student, room, "pay_A1")

        booking = booking_service.cancel_booking(actor_for(admin), result["booking_id"], "student withdrew")

        assert booking.status == BookingStatus.CANCELLED
        assert booking.cancellation_reason == "student withdrew"
        _refresh(db, room)
        assert room.occupant_count == 0
        assert room.is_occupied is False
        record = db.scalars(select(PaymentRecord)).one()
        assert record.status == PaymentRecordStatus.REFUND_REQUIRED
        assert record.failure_reason == "cancelled: student withdrew"

    def test_cannot_cancel_after_check_in(self, booking_service, book, admin, student, make_room):
        _, result = book(student, make_room(), "pay_A1")
        booking_service.check_in(actor_for(admin), result["booking_id"])

        with pytest.raises(InvalidBookingStateError):
            booking_service.cancel_booking(actor_for(admin), result["booking_id"], "too late")


class TestQueries:

    def test_booking_status(self, booking_service, book, student, make_room):
        assert booking_service.booking_status(actor_for(student)) == {
            "has_booking": False, "booking_id": None, "status": None,
        }
        _, result = book(student, make_room(), "pay_A1")

        status = booking_service.booking_status(actor_for(student))
        assert status["has_booking"] is True
        assert status["booking_id"] == result["booking_id"]
        assert status["status"] == BookingStatus.PENDING

    def test_list_bookings_requires_manager(self, booking_service, book, student, make_user, make_room):
        from hostel_app.models.base.enums import UserRole

        book(student, make_room(), "pay_A1")
        warden = make_user("warden", UserRole.WARDEN)

        assert len(booking_service.list_bookings(actor_for(warden))) == 1
        with pytest.raises(AuthorizationError):
            booking_service.list_bookings(actor_for(student))
