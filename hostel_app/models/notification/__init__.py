from hostel_app.models.notification.notification import Notification

__all__ = ["Notification"]
