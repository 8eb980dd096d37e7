"""
Database enums shared by models, schemas and services.
"""

import enum


class UserRole(str, enum.Enum):
    """User role enumeration."""
    ADMIN = "admin"
    WARDEN = "warden"
    STUDENT = "student"


class Gender(str, enum.Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class RoomType(str, enum.Enum):
    """Room cooling type; decides the bathroom type."""
    AC = "AC"
    NON_AC = "Non-AC"


class BathroomType(str, enum.Enum):
    ATTACHED = "Attached"
    COMMON = "Common"


class PlanUnit(str, enum.Enum):
    """Billing unit for a room pricing plan."""
    MONTHS = "months"
    YEAR = "year"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "Percentage"
    FIXED = "Fixed"


class DiscountTarget(str, enum.Enum):
    """Which charge category a discount applies to."""
    ROOM = "Room"
    FINE = "Fine"
    SERVICE = "Service"
    ALL = "All"


class BookingStatus(str, enum.Enum):
    """Booking lifecycle status."""
    PENDING = "Pending"
    ACTIVE = "Active"
    CHECKED_IN = "CheckedIn"
    CHECKED_OUT = "CheckedOut"
    CANCELLED = "Cancelled"

    @classmethod
    def active_statuses(cls):
        """Statuses that hold a room slot."""
        return (cls.PENDING, cls.ACTIVE, cls.CHECKED_IN)


class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"


class InvoiceStatus(str, enum.Enum):
    PENDING = "Pending"
    PAID = "Paid"
    OVERDUE = "Overdue"


class ChargeType(str, enum.Enum):
    """Admin-raised charge categories and their invoice number prefixes."""
    FINE = "Fine"
    SERVICE = "Service"
    UTILITY = "Utility"

    @property
    def prefix(self) -> str:
        return {"Fine": "FIN", "Service": "SVC", "Utility": "UTI"}[self.value]


class PaymentRecordStatus(str, enum.Enum):
    """Reconciliation status of a verified gateway payment."""
    RECEIVED = "RECEIVED"
    COMMITTED = "COMMITTED"
    REFUND_REQUIRED = "REFUND_REQUIRED"
    REFUNDED = "REFUNDED"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    RESOLVED = "RESOLVED"

    @classmethod
    def flagged(cls):
        """Statuses that need an operator's attention."""
        return (cls.REFUND_REQUIRED, cls.NEEDS_REVIEW)

    @classmethod
    def uncommitted(cls):
        """Statuses a booking attempt may still move out of."""
        return (cls.RECEIVED, cls.NEEDS_REVIEW)


class NotificationType(str, enum.Enum):
    BOOKING = "Booking"
    PAYMENT = "Payment"
    FINE = "Fine"
    CHECK_IN = "CheckIn"
    CHECK_OUT = "CheckOut"
    GENERAL = "General"


class ResidencyStatus(str, enum.Enum):
    """Where a student stands in the hostel, derived from their bookings."""
    ACTIVE = "Active"
    PENDING = "Pending"
    VACATED = "Vacated"
    UNASSIGNED = "Unassigned"
