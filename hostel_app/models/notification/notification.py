# hostel_app/models/notification/notification.py
"""In-app notifications shown on the resident dashboard."""

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hostel_app.models.base.base_model import TimestampModel, enum_type
from hostel_app.models.base.enums import NotificationType

__all__ = ["Notification"]


class Notification(TimestampModel):
    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    notification_type: Mapped[NotificationType] = mapped_column(
        enum_type(NotificationType),
        nullable=False,
        default=NotificationType.GENERAL,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_notification_user_read", "user_id", "read"),
    )
