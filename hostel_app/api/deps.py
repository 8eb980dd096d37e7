# hostel_app/api/deps.py
"""
FastAPI dependencies: settings, db session, authenticated actor and services.

Process-wide collaborators (settings, gateway, mailer) are created once in
``create_app`` and read from ``app.state``; services are built per request
around the request-scoped session.

Example usage in a router:
    from fastapi import Depends
    from hostel_app.api import deps

    @router.get("/me")
    def read_me(actor: Actor = Depends(deps.get_current_actor)):
        return actor
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from hostel_app.config.settings import Settings
from hostel_app.core import logging as app_logging
from hostel_app.core.exceptions import AuthenticationError
from hostel_app.core.security import Actor, decode_access_token
from hostel_app.db.session import get_db
from hostel_app.services.billing.billing_service import BillingService
from hostel_app.services.booking.booking_lifecycle_service import BookingLifecycleService
from hostel_app.services.booking.booking_side_effects import BookingSideEffects
from hostel_app.services.notification.notification_service import NotificationService
from hostel_app.services.payment.payment_gateway import RazorpayGateway
from hostel_app.services.payment.reconciliation_service import PaymentReconciliationService
from hostel_app.services.resident.resident_service import ResidentService
from hostel_app.services.room.discount_service import DiscountService
from hostel_app.services.room.room_service import RoomService
from hostel_app.utils.email import Mailer

_bearer = HTTPBearer(auto_error=False)


# --- Process-wide collaborators ----------------------------------------------

def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> RazorpayGateway:
    return request.app.state.gateway


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


# --- Authentication ------------------------------------------------------------

async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    settings: Settings = Depends(get_settings_dep),
) -> Actor:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Not authenticated")

    actor = decode_access_token(credentials.credentials, settings)
    app_logging.user_id.set(actor.user_id)
    return actor


# --- Services ------------------------------------------------------------------

def get_reconciliation_service(
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings_dep),
) -> PaymentReconciliationService:
    return PaymentReconciliationService(db, gateway, settings.PAYMENT_AUTO_REFUND)


def get_booking_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
    gateway: RazorpayGateway = Depends(get_gateway),
    mailer: Mailer = Depends(get_mailer),
) -> BookingLifecycleService:
    return BookingLifecycleService(
        db,
        settings,
        gateway,
        side_effects=BookingSideEffects(db, mailer),
        reconciliation=PaymentReconciliationService(db, gateway, settings.PAYMENT_AUTO_REFUND),
    )


def get_room_service(db: Session = Depends(get_db)) -> RoomService:
    return RoomService(db)


def get_discount_service(db: Session = Depends(get_db)) -> DiscountService:
    return DiscountService(db)


def get_billing_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
    mailer: Mailer = Depends(get_mailer),
) -> BillingService:
    return BillingService(db, mailer, settings.CURRENCY)


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


def get_resident_service(db: Session = Depends(get_db)) -> ResidentService:
    return ResidentService(db)


__all__ = [
    "get_db",
    "get_settings_dep",
    "get_gateway",
    "get_mailer",
    "get_current_actor",
    "get_reconciliation_service",
    "get_booking_service",
    "get_room_service",
    "get_discount_service",
    "get_billing_service",
    "get_notification_service",
    "get_resident_service",
]
