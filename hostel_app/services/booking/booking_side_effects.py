"""
Post-commit side effects of the booking lifecycle.

Everything here runs after the booking transaction has committed. Each step
is isolated: a failure is logged and swallowed so it can never change the
response of an operation whose state change already happened.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from hostel_app.core.logging import get_logger
from hostel_app.models.base.enums import NotificationType
from hostel_app.models.booking import Booking
from hostel_app.models.payment import Invoice
from hostel_app.models.room import Room
from hostel_app.models.user import User
from hostel_app.services.notification.notification_service import NotificationService
from hostel_app.utils.email import Mailer
from hostel_app.utils.pdf_utils import render_invoice_pdf

logger = get_logger(__name__)


class BookingSideEffects:

    def __init__(self, db_session: Session, mailer: Optional[Mailer] = None):
        self.notifications = NotificationService(db_session)
        self.mailer = mailer

    def booking_committed(self, booking: Booking, invoice: Invoice, student: User, room: Room) -> None:
        pdf = self._render_receipt(booking, invoice, student, room)
        self._send_confirmation(booking, student, room, pdf)
        self.notifications.notify(
            booking.student_id,
            NotificationType.BOOKING,
            f"Your booking for room {room.room_number} ({booking.plan_label}) is confirmed.",
        )

    def checked_in(self, booking: Booking) -> None:
        self.notifications.notify(
            booking.student_id,
            NotificationType.CHECK_IN,
            f"Welcome! You have been checked in to room {booking.room.room_number}.",
        )

    def checked_out(self, booking: Booking) -> None:
        self.notifications.notify(
            booking.student_id,
            NotificationType.CHECK_OUT,
            f"You have been checked out of room {booking.room.room_number}.",
        )

    def cancelled(self, booking: Booking) -> None:
        self.notifications.notify(
            booking.student_id,
            NotificationType.BOOKING,
            f"Your booking for room {booking.room.room_number} was cancelled: "
            f"{booking.cancellation_reason}. Your payment is being reviewed for refund.",
        )

    # ------------------------------------------------------------------

    def _render_receipt(self, booking: Booking, invoice: Invoice, student: User, room: Room) -> Optional[bytes]:
        try:
            return render_invoice_pdf(
                {
                    "invoice_number": invoice.invoice_number,
                    "issued_at": invoice.paid_at,
                    "items": [(item.description, Decimal(item.amount)) for item in invoice.items],
                    "total": Decimal(invoice.total_amount),
                    "currency": booking.currency,
                    "paid": True,
                    "payment_method": f"Online ({booking.payment_id})",
                },
                {
                    "name": student.display_name,
                    "email": student.email,
                    "phone": booking.resident_details.get("phone_number"),
                },
                {
                    "room_number": room.room_number,
                    "room_type": room.room_type.value,
                    "plan_label": booking.plan_label,
                    "check_in_date": booking.check_in_date,
                },
            )
        except Exception:
            logger.exception("Receipt PDF generation failed", extra={"booking_id": booking.id})
            return None

    def _send_confirmation(self, booking: Booking, student: User, room: Room, pdf: Optional[bytes]) -> None:
        if self.mailer is None:
            return
        try:
            self.mailer.send_booking_confirmation(
                student.email,
                student.display_name,
                pdf,
                {
                    "room_number": room.room_number,
                    "plan_label": booking.plan_label,
                    "currency": booking.currency,
                    "amount": f"{Decimal(booking.total_amount):,.2f}",
                },
            )
        except Exception:
            logger.exception("Booking confirmation email failed", extra={"booking_id": booking.id})
