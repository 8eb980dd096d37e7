"""Resident lifecycle endpoints (admin), the resident overview and the resident's own invoices."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from hostel_app.api.deps import (
    get_billing_service,
    get_booking_service,
    get_current_actor,
    get_resident_service,
)
from hostel_app.core.security import Actor
from hostel_app.models.base.enums import ResidencyStatus
from hostel_app.schemas.billing.billing_schemas import InvoiceResponse
from hostel_app.schemas.booking.booking_request import CancelBookingRequest
from hostel_app.schemas.booking.booking_response import BookingResponse
from hostel_app.schemas.resident.resident_schemas import ResidentOverview
from hostel_app.services.billing.billing_service import BillingService
from hostel_app.services.booking.booking_lifecycle_service import BookingLifecycleService
from hostel_app.services.resident.resident_service import ResidentService

router = APIRouter(prefix="/resident", tags=["Resident Management"])


@router.post("/check-in/{booking_id}", response_model=BookingResponse)
def check_in(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BookingLifecycleService = Depends(get_booking_service),
):
    return service.check_in(actor, booking_id)


@router.post("/check-out/{booking_id}", response_model=BookingResponse)
def check_out(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BookingLifecycleService = Depends(get_booking_service),
):
    return service.check_out(actor, booking_id)


@router.post("/cancel/{booking_id}", response_model=BookingResponse)
def cancel(
    booking_id: str,
    payload: CancelBookingRequest,
    actor: Actor = Depends(get_current_actor),
    service: BookingLifecycleService = Depends(get_booking_service),
):
    return service.cancel_booking(actor, booking_id, payload.reason)


@router.get("/my-invoices", response_model=List[InvoiceResponse])
def my_invoices(
    actor: Actor = Depends(get_current_actor),
    service: BillingService = Depends(get_billing_service),
):
    return service.my_invoices(actor)


@router.get("/dashboard-view", response_model=List[ResidentOverview])
def dashboard_view(
    status_filter: Optional[ResidencyStatus] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    service: ResidentService = Depends(get_resident_service),
):
    return service.dashboard(actor, status=status_filter)
