"""Room inventory endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from hostel_app.api.deps import get_current_actor, get_room_service
from hostel_app.core.security import Actor
from hostel_app.schemas.room.room_schemas import (
    PricingPlanCreate,
    RoomCreate,
    RoomDiscountUpdate,
    RoomResponse,
)
from hostel_app.services.room.room_service import RoomService

router = APIRouter(prefix="/rooms", tags=["Room Management"])


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(
    payload: RoomCreate,
    actor: Actor = Depends(get_current_actor),
    service: RoomService = Depends(get_room_service),
):
    return service.create_room(actor, payload)


@router.get("", response_model=List[RoomResponse])
def list_rooms(
    available_only: bool = Query(False, description="Only rooms with a free slot"),
    floor_id: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    service: RoomService = Depends(get_room_service),
):
    return service.list_rooms(available_only=available_only, floor_id=floor_id)


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(
    room_id: str,
    actor: Actor = Depends(get_current_actor),
    service: RoomService = Depends(get_room_service),
):
    return service.get_room(room_id)


@router.post("/{room_id}/plans", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def add_plan(
    room_id: str,
    payload: PricingPlanCreate,
    actor: Actor = Depends(get_current_actor),
    service: RoomService = Depends(get_room_service),
):
    return service.add_pricing_plan(actor, room_id, payload)


@router.delete("/{room_id}/plans/{plan_id}", response_model=RoomResponse)
def remove_plan(
    room_id: str,
    plan_id: str,
    actor: Actor = Depends(get_current_actor),
    service: RoomService = Depends(get_room_service),
):
    return service.remove_pricing_plan(actor, room_id, plan_id)


@router.put("/{room_id}/discount", response_model=RoomResponse)
def set_discount(
    room_id: str,
    payload: RoomDiscountUpdate,
    actor: Actor = Depends(get_current_actor),
    service: RoomService = Depends(get_room_service),
):
    return service.apply_discount(actor, room_id, payload.discount_id)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(
    room_id: str,
    actor: Actor = Depends(get_current_actor),
    service: RoomService = Depends(get_room_service),
):
    service.delete_room(actor, room_id)
