from fastapi import APIRouter, Depends

from hostel_app.api.deps import get_current_actor, get_notification_service
from hostel_app.core.security import Actor
from hostel_app.schemas.notification.notification_schemas import (
    NotificationListResponse,
    NotificationResponse,
)
from hostel_app.services.notification.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
):
    return service.list_mine(actor)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: str,
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
):
    return service.mark_read(actor, notification_id)
