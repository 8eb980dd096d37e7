"""
SQLAlchemy models.

Importing this package registers every table on ``Base.metadata``.
"""

from hostel_app.models.base import Base, BaseModel, TimestampModel
from hostel_app.models.booking import Booking
from hostel_app.models.notification import Notification
from hostel_app.models.payment import Invoice, InvoiceItem, PaymentRecord
from hostel_app.models.room import Discount, Room, RoomOccupant, RoomPricingPlan
from hostel_app.models.user import User, UserProfile

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "Booking",
    "Discount",
    "Invoice",
    "InvoiceItem",
    "Notification",
    "PaymentRecord",
    "Room",
    "RoomOccupant",
    "RoomPricingPlan",
    "User",
    "UserProfile",
]
