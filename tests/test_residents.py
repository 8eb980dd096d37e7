from decimal import Decimal

import pytest

from hostel_app.core.exceptions import AuthorizationError
from hostel_app.models.base.enums import BookingStatus, ChargeType, Gender, ResidencyStatus, UserRole
from hostel_app.services.billing.billing_service import BillingService
from hostel_app.services.resident.resident_service import ResidentService

from tests.conftest import actor_for


@pytest.fixture
def residents(db):
    return ResidentService(db)


def _row(rows, student):
    return next(row for row in rows if row["student_id"] == student.id)


def test_students_without_bookings_are_unassigned(residents, admin, student):
    rows = residents.dashboard(actor_for(admin))

    # Staff accounts are not residents
    assert [row["username"] for row in rows] == ["asha"]
    row = rows[0]
    assert row["residency_status"] == ResidencyStatus.UNASSIGNED
    assert row["room"] is None
    assert row["full_name"] is None
    assert row["pending_dues"] == Decimal("0.00")


def test_booked_student_shows_profile_room_and_dues(residents, book, admin, student, other_student, make_room, db):
    room = make_room(capacity=2)
    book(student, room, "pay_A1")
    BillingService(db).create_charge(actor_for(admin), student.id, ChargeType.FINE, "Late entry", Decimal("150"))

    rows = residents.dashboard(actor_for(admin))

    row = _row(rows, student)
    assert row["residency_status"] == ResidencyStatus.PENDING
    assert row["booking_status"] == BookingStatus.PENDING
    assert row["room"].id == room.id
    assert row["full_name"] == "Asha Verma"
    assert row["gender"] == Gender.FEMALE
    assert row["city"] == "Pune"
    assert row["pending_dues"] == Decimal("150.00")
    assert _row(rows, other_student)["residency_status"] == ResidencyStatus.UNASSIGNED


def test_status_follows_check_in_and_check_out(residents, booking_service, book, admin, student, make_room):
    _, result = book(student, make_room(), "pay_A1")
    admin_actor = actor_for(admin)

    booking_service.check_in(admin_actor, result["booking_id"])
    assert _row(residents.dashboard(admin_actor), student)["residency_status"] == ResidencyStatus.ACTIVE

    booking_service.check_out(admin_actor, result["booking_id"])
    row = _row(residents.dashboard(admin_actor), student)
    assert row["residency_status"] == ResidencyStatus.VACATED
    assert row["booking_id"] == result["booking_id"]


def test_status_filter(residents, book, admin, student, other_student, make_room):
    book(student, make_room(), "pay_A1")

    pending = residents.dashboard(actor_for(admin), status=ResidencyStatus.PENDING)
    assert [row["student_id"] for row in pending] == [student.id]


def test_wardens_may_view_students_may_not(residents, make_user, student):
    warden = make_user("warden", UserRole.WARDEN)
    assert len(residents.dashboard(actor_for(warden))) == 1

    with pytest.raises(AuthorizationError):
        residents.dashboard(actor_for(student))
