"""Payment reconciliation queue (admin)."""

from typing import List

from fastapi import APIRouter, Depends

from hostel_app.api.deps import get_current_actor, get_reconciliation_service
from hostel_app.core.security import Actor
from hostel_app.schemas.payment.reconciliation_schemas import PaymentRecordResponse, ResolveRecordRequest
from hostel_app.services.payment.reconciliation_service import PaymentReconciliationService

router = APIRouter(prefix="/payments/reconciliation", tags=["Payment Processing"])


@router.get("", response_model=List[PaymentRecordResponse])
def list_flagged(
    actor: Actor = Depends(get_current_actor),
    service: PaymentReconciliationService = Depends(get_reconciliation_service),
):
    """Payments awaiting a refund or a manual review."""
    return service.list_flagged(actor)


@router.post("/{record_id}/refund", response_model=PaymentRecordResponse)
def refund(
    record_id: str,
    actor: Actor = Depends(get_current_actor),
    service: PaymentReconciliationService = Depends(get_reconciliation_service),
):
    return service.retry_refund(actor, record_id)


@router.post("/{record_id}/resolve", response_model=PaymentRecordResponse)
def resolve(
    record_id: str,
    payload: ResolveRecordRequest,
    actor: Actor = Depends(get_current_actor),
    service: PaymentReconciliationService = Depends(get_reconciliation_service),
):
    return service.resolve(actor, record_id, payload.note)
