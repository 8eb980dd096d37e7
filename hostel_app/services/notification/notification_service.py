"""
In-app notification service.

``notify`` is fire-and-forget: it is only called after the business
transaction has committed, commits on its own, and never raises.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hostel_app.core.exceptions import NotificationNotFoundError
from hostel_app.core.security import Actor
from hostel_app.models.base.enums import NotificationType
from hostel_app.models.notification import Notification
from hostel_app.repositories.notification import NotificationRepository
from hostel_app.services.base.base_service import BaseService

RECENT_LIMIT = 20


class NotificationService(BaseService):

    def __init__(self, db_session: Session):
        super().__init__(db_session)
        self.notifications = NotificationRepository(db_session)

    def notify(self, user_id: str, notification_type: NotificationType, message: str) -> bool:
        """Create a notification; returns False (and logs) instead of raising."""
        try:
            with self.transaction():
                self.notifications.add(
                    Notification(user_id=user_id, notification_type=notification_type, message=message)
                )
        except SQLAlchemyError as e:
            self._logger.error(
                "Notification could not be stored",
                extra={
                    "target_user": user_id,
                    "notification_type": notification_type.value,
                    "error": str(e),
                },
            )
            return False
        return True

    def list_mine(self, actor: Actor) -> dict:
        return {
            "notifications": self.notifications.latest_for_user(actor.user_id, RECENT_LIMIT),
            "unread_count": self.notifications.unread_count(actor.user_id),
        }

    def mark_read(self, actor: Actor, notification_id: str) -> Notification:
        notification = self.notifications.find_for_user(notification_id, actor.user_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)

        with self.transaction():
            notification.read = True
        return notification
