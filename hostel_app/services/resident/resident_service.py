"""
Resident overview for wardens and admins.

One row per student account, joining the profile, the booking that
currently holds a slot (or the last one that was checked out) with its
room, and the student's outstanding dues.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from hostel_app.core.security import Actor, can_view_residents, require
from hostel_app.models.base.enums import BookingStatus, ResidencyStatus, UserRole
from hostel_app.models.booking import Booking
from hostel_app.repositories.booking import BookingRepository
from hostel_app.repositories.payment import InvoiceRepository
from hostel_app.repositories.user import UserProfileRepository, UserRepository
from hostel_app.services.base.base_service import BaseService, track_performance


def residency_of(bookings: List[Booking]):
    """
    Pick the booking that describes a student, given all of theirs newest
    first, and the residency status it implies.
    """
    for booking in bookings:
        if booking.status in BookingStatus.active_statuses():
            if booking.status == BookingStatus.PENDING:
                return booking, ResidencyStatus.PENDING
            return booking, ResidencyStatus.ACTIVE
    for booking in bookings:
        if booking.status == BookingStatus.CHECKED_OUT:
            return booking, ResidencyStatus.VACATED
    return None, ResidencyStatus.UNASSIGNED


class ResidentService(BaseService):

    def __init__(self, db_session: Session):
        super().__init__(db_session)
        self.users = UserRepository(db_session)
        self.profiles = UserProfileRepository(db_session)
        self.bookings = BookingRepository(db_session)
        self.invoices = InvoiceRepository(db_session)

    @track_performance("resident_dashboard")
    def dashboard(self, actor: Actor, status: Optional[ResidencyStatus] = None) -> List[Dict[str, Any]]:
        require(can_view_residents(actor), "view_residents")

        students = self.users.list_by_role(UserRole.STUDENT)
        ids = [student.id for student in students]
        profiles = {profile.user_id: profile for profile in self.profiles.find_for_users(ids)}
        dues = self.invoices.outstanding_totals(ids)

        bookings_by_student: Dict[str, List[Booking]] = {}
        for booking in self.bookings.list_for_students(ids):
            bookings_by_student.setdefault(booking.student_id, []).append(booking)

        rows = []
        for student in students:
            booking, residency = residency_of(bookings_by_student.get(student.id, []))
            if status is not None and residency != status:
                continue
            profile = profiles.get(student.id)
            rows.append({
                "student_id": student.id,
                "username": student.username,
                "email": student.email,
                "full_name": profile.full_name if profile else None,
                "gender": profile.gender if profile else None,
                "age": profile.age if profile else None,
                "phone_number": profile.phone_number if profile else None,
                "city": profile.address_city if profile else None,
                "residency_status": residency,
                "booking_id": booking.id if booking else None,
                "booking_status": booking.status if booking else None,
                "check_in_date": booking.check_in_date if booking else None,
                "room": booking.room if booking else None,
                "pending_dues": dues.get(student.id, Decimal("0.00")),
            })

        self._log_operation("dashboard", {"students": len(students), "rows": len(rows)}, level="debug")
        return rows
