"""Student booking endpoints: checkout, payment verification and booking lookups."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from hostel_app.api.deps import get_booking_service, get_current_actor
from hostel_app.core.security import Actor
from hostel_app.models.base.enums import BookingStatus
from hostel_app.schemas.booking.booking_request import CheckoutRequest, VerifyPaymentRequest
from hostel_app.schemas.booking.booking_response import (
    BookingCommitResponse,
    BookingResponse,
    BookingStatusResponse,
    CheckoutResponse,
)
from hostel_app.services.booking.booking_lifecycle_service import BookingLifecycleService

router = APIRouter(prefix="/bookings", tags=["Booking Management"])


@router.post("/checkout", response_model=CheckoutResponse)
def checkout(
    payload: CheckoutRequest,
    actor: Actor = Depends(get_current_actor),
    service: BookingLifecycleService = Depends(get_booking_service),
):
    """Open a payment order for a room plan. Nothing is reserved yet."""
    return service.initiate_checkout(actor, payload.room_id, payload.plan_id)


@router.post("/verify", response_model=BookingCommitResponse, status_code=status.HTTP_201_CREATED)
def verify_payment(
    payload: VerifyPaymentRequest,
    actor: Actor = Depends(get_current_actor),
    service: BookingLifecycleService = Depends(get_booking_service),
):
    """
    Submit the gateway's payment proof and commit the booking.

    Answers 202 with ``BOOKING_PENDING_CONFIRMATION`` when the payment was
    received but the booking could not be committed.
    """
    return service.verify_and_commit(actor, payload)


@router.get("/status", response_model=BookingStatusResponse)
def booking_status(
    actor: Actor = Depends(get_current_actor),
    service: BookingLifecycleService = Depends(get_booking_service),
):
    return service.booking_status(actor)


@router.get("/my", response_model=BookingResponse)
def my_booking(
    actor: Actor = Depends(get_current_actor),
    service: BookingLifecycleService = Depends(get_booking_service),
):
    return service.my_booking(actor)


@router.get("", response_model=List[BookingResponse])
def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    actor: Actor = Depends(get_current_actor),
    service: BookingLifecycleService = Depends(get_booking_service),
):
    return service.list_bookings(actor, status=status_filter, offset=offset, limit=limit)
