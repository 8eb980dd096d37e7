# --- File: hostel_app/schemas/notification/notification_schemas.py ---
from __future__ import annotations

from typing import List

from hostel_app.models.base.enums import NotificationType
from hostel_app.schemas.common.base import BaseResponseSchema, BaseSchema

__all__ = ["NotificationResponse", "NotificationListResponse"]


class NotificationResponse(BaseResponseSchema):
    notification_type: NotificationType
    message: str
    read: bool


class NotificationListResponse(BaseSchema):
    notifications: List[NotificationResponse]
    unread_count: int
