from typing import List

from fastapi import APIRouter, Depends, Query, status

from hostel_app.api.deps import get_current_actor, get_discount_service
from hostel_app.core.security import Actor
from hostel_app.schemas.room.room_schemas import DiscountCreate, DiscountResponse
from hostel_app.services.room.discount_service import DiscountService

router = APIRouter(prefix="/discounts", tags=["Discounts"])


@router.post("", response_model=DiscountResponse, status_code=status.HTTP_201_CREATED)
def create_discount(
    payload: DiscountCreate,
    actor: Actor = Depends(get_current_actor),
    service: DiscountService = Depends(get_discount_service),
):
    return service.create_discount(actor, payload)


@router.get("", response_model=List[DiscountResponse])
def list_discounts(
    active_only: bool = Query(False),
    actor: Actor = Depends(get_current_actor),
    service: DiscountService = Depends(get_discount_service),
):
    return service.list_discounts(active_only=active_only)


@router.delete("/{discount_id}", response_model=DiscountResponse)
def deactivate_discount(
    discount_id: str,
    actor: Actor = Depends(get_current_actor),
    service: DiscountService = Depends(get_discount_service),
):
    """Deactivate a discount and unlink it from all rooms."""
    return service.deactivate_discount(actor, discount_id)
