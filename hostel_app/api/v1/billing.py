"""Billing endpoints: admin charges, credits and reminders, invoice status, student balance."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from hostel_app.api.deps import get_billing_service, get_current_actor
from hostel_app.core.security import Actor
from hostel_app.models.base.enums import InvoiceStatus
from hostel_app.schemas.billing.billing_schemas import (
    ChargeCreate,
    CreditCreate,
    DueReminderRequest,
    DueReminderResponse,
    InvoiceResponse,
    InvoiceWithStudentResponse,
    OutstandingInvoicesResponse,
    OverdueSweepResponse,
)
from hostel_app.services.billing.billing_service import BillingService

router = APIRouter(prefix="/billing", tags=["Billing"])


@router.post("/charges", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
def create_charge(
    payload: ChargeCreate,
    actor: Actor = Depends(get_current_actor),
    service: BillingService = Depends(get_billing_service),
):
    return service.create_charge(
        actor,
        payload.student_id,
        payload.charge_type,
        payload.description,
        payload.amount,
        payload.due_date,
    )


@router.post("/credits", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
def apply_credit(
    payload: CreditCreate,
    actor: Actor = Depends(get_current_actor),
    service: BillingService = Depends(get_billing_service),
):
    return service.apply_credit(actor, payload.student_id, payload.description, payload.amount)


@router.post("/invoices/{invoice_id}/mark-paid", response_model=InvoiceResponse)
def mark_paid(
    invoice_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BillingService = Depends(get_billing_service),
):
    return service.mark_paid(actor, invoice_id)


@router.post("/mark-overdue", response_model=OverdueSweepResponse)
def mark_overdue(
    actor: Actor = Depends(get_current_actor),
    service: BillingService = Depends(get_billing_service),
):
    return {"marked_overdue": service.mark_overdue(actor)}


@router.get("/history/{student_id}", response_model=List[InvoiceResponse])
def history(
    student_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BillingService = Depends(get_billing_service),
):
    return service.history(actor, student_id)


@router.get("/my-pending", response_model=OutstandingInvoicesResponse)
def my_pending(
    actor: Actor = Depends(get_current_actor),
    service: BillingService = Depends(get_billing_service),
):
    return service.my_pending(actor)


@router.get("/all-invoices", response_model=List[InvoiceWithStudentResponse])
def all_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    actor: Actor = Depends(get_current_actor),
    service: BillingService = Depends(get_billing_service),
):
    return service.list_all_invoices(actor, status=status_filter, offset=offset, limit=limit)


@router.post("/send-reminder", response_model=DueReminderResponse)
def send_reminder(
    payload: DueReminderRequest,
    actor: Actor = Depends(get_current_actor),
    service: BillingService = Depends(get_billing_service),
):
    return service.send_due_reminder(actor, payload.student_id)
