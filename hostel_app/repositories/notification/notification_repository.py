"""Notification repository."""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hostel_app.models.notification import Notification
from hostel_app.repositories.base.base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):

    def __init__(self, db: Session):
        super().__init__(Notification, db)

    def latest_for_user(self, user_id: str, limit: int = 20) -> List[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id)
            .limit(limit)
        )
        return list(self.db.scalars(stmt))

    def unread_count(self, user_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
        )
        return self.db.scalar(stmt) or 0

    def find_for_user(self, notification_id: str, user_id: str) -> Optional[Notification]:
        return self.db.scalars(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        ).first()
