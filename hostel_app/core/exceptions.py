"""
Custom Exceptions for the Hostel Booking Service

Every error the services raise derives from ``BaseAppException`` so the API
layer can render one consistent envelope:

    {"error": {"message": ..., "code": ..., "details": {...}, "type": ...}}
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Standard error codes for the application"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # Authentication & Authorization
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    AUTHORIZATION_FAILED = "AUTHORIZATION_FAILED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Inventory
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    PLAN_NOT_FOUND = "PLAN_NOT_FOUND"
    DISCOUNT_NOT_FOUND = "DISCOUNT_NOT_FOUND"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    ROOM_IN_USE = "ROOM_IN_USE"

    # Booking lifecycle
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    ROOM_UNAVAILABLE = "ROOM_UNAVAILABLE"
    ALREADY_BOOKED = "ALREADY_BOOKED"
    INVALID_BOOKING_STATE = "INVALID_BOOKING_STATE"

    # Payments
    INVALID_PAYMENT_SIGNATURE = "INVALID_PAYMENT_SIGNATURE"
    PAYMENT_ORDER_MISMATCH = "PAYMENT_ORDER_MISMATCH"
    PAYMENT_GATEWAY_UNAVAILABLE = "PAYMENT_GATEWAY_UNAVAILABLE"
    PAYMENT_GATEWAY_REJECTED = "PAYMENT_GATEWAY_REJECTED"
    BOOKING_PENDING_CONFIRMATION = "BOOKING_PENDING_CONFIRMATION"
    PAYMENT_RECORD_NOT_FOUND = "PAYMENT_RECORD_NOT_FOUND"

    # Billing
    INVOICE_NOT_FOUND = "INVOICE_NOT_FOUND"
    INVALID_INVOICE_STATE = "INVALID_INVOICE_STATE"

    # Notifications
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the application with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# General Application Exceptions
# ========================================

class ValidationError(BaseAppException):
    """Exception raised when data validation fails"""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, List[str]]] = None,
    ):
        details = {"field_errors": field_errors} if field_errors else {}
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details, 422)


class ResourceNotFoundError(BaseAppException):
    """Exception raised when a requested resource is not found"""

    error_code_for_type = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id:
                message += f" (ID: {resource_id})"

        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, self.error_code_for_type, details, 404)


class DuplicateEntryError(BaseAppException):
    """Exception raised when a unique business key already exists"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.DUPLICATE_ENTRY, details, 409)


# ========================================
# Authentication & Authorization
# ========================================

class AuthenticationError(BaseAppException):
    """Exception raised when the caller cannot be identified"""

    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: ErrorCode = ErrorCode.AUTHENTICATION_FAILED,
    ):
        super().__init__(message, error_code, {}, 401)


class AuthorizationError(BaseAppException):
    """Exception raised when the caller lacks the required capability"""

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        capability: Optional[str] = None,
    ):
        details = {"capability": capability} if capability else {}
        super().__init__(message, ErrorCode.AUTHORIZATION_FAILED, details, 403)


# ========================================
# Inventory
# ========================================

class RoomNotFoundError(ResourceNotFoundError):
    error_code_for_type = ErrorCode.ROOM_NOT_FOUND

    def __init__(self, room_id: Optional[str] = None):
        super().__init__("Room", room_id)


class PlanNotFoundError(ResourceNotFoundError):
    error_code_for_type = ErrorCode.PLAN_NOT_FOUND

    def __init__(self, plan_id: Optional[str] = None, room_id: Optional[str] = None):
        super().__init__("Pricing plan", plan_id)
        self.details["room_id"] = room_id


class DiscountNotFoundError(ResourceNotFoundError):
    error_code_for_type = ErrorCode.DISCOUNT_NOT_FOUND

    def __init__(self, discount_id: Optional[str] = None):
        super().__init__("Discount", discount_id)


class RoomInUseError(BaseAppException):
    """The room still has residents or bookings that reference it"""

    def __init__(self, room_id: str, reason: str):
        super().__init__(
            "Room cannot be deleted while it is in use",
            ErrorCode.ROOM_IN_USE,
            {"room_id": room_id, "reason": reason},
            409,
        )


# ========================================
# Booking lifecycle
# ========================================

class BookingNotFoundError(ResourceNotFoundError):
    error_code_for_type = ErrorCode.BOOKING_NOT_FOUND

    def __init__(self, booking_id: Optional[str] = None):
        super().__init__("Booking", booking_id)


class RoomNoLongerAvailableError(BaseAppException):
    """The last free slot was taken before this request could claim it"""

    def __init__(self, room_id: str, message: str = "Room is no longer available"):
        super().__init__(
            message,
            ErrorCode.ROOM_UNAVAILABLE,
            {"room_id": room_id},
            409,
        )


class AlreadyBookedError(BaseAppException):
    """The student already holds an active booking"""

    def __init__(self, student_id: str, booking_id: Optional[str] = None):
        super().__init__(
            "You already have an active booking",
            ErrorCode.ALREADY_BOOKED,
            {"student_id": student_id, "booking_id": booking_id},
            409,
        )


class InvalidBookingStateError(BaseAppException):
    def __init__(self, booking_id: str, current_status: str, allowed: List[str]):
        super().__init__(
            f"Booking is {current_status}; expected one of {', '.join(allowed)}",
            ErrorCode.INVALID_BOOKING_STATE,
            {
                "booking_id": booking_id,
                "current_status": current_status,
                "allowed_statuses": allowed,
            },
            409,
        )


# ========================================
# Payments
# ========================================

class InvalidPaymentSignatureError(BaseAppException):
    """Payment proof did not verify against the gateway secret"""

    def __init__(self, order_id: str):
        super().__init__(
            "Payment signature verification failed",
            ErrorCode.INVALID_PAYMENT_SIGNATURE,
            {"order_id": order_id},
            400,
        )


class PaymentOrderMismatchError(BaseAppException):
    """The paid order was opened for a different student, room or plan"""

    def __init__(self, order_id: str, field: str):
        super().__init__(
            "Payment order does not match this booking request",
            ErrorCode.PAYMENT_ORDER_MISMATCH,
            {"order_id": order_id, "field": field},
            409,
        )


class GatewayUnavailableError(BaseAppException):
    """The payment processor could not be reached or rejected our credentials"""

    def __init__(self, message: str = "Payment gateway is unavailable, please retry", reason: Optional[str] = None):
        details = {"retryable": True}
        if reason:
            details["reason"] = reason
        super().__init__(message, ErrorCode.PAYMENT_GATEWAY_UNAVAILABLE, details, 503)


class GatewayRejectedError(BaseAppException):
    """The payment processor answered but refused the request"""

    def __init__(self, message: str, gateway_status: int, gateway_error: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            ErrorCode.PAYMENT_GATEWAY_REJECTED,
            {"gateway_status": gateway_status, "gateway_error": gateway_error or {}},
            502,
        )


class PersistenceFailureError(BaseAppException):
    """
    Money was taken but the booking could not be committed.

    Rendered as an accepted response: the client is told the payment was
    received and that the booking awaits confirmation. It must never read as
    a failed payment.
    """

    def __init__(self, order_id: str, payment_id: str, reason: Optional[str] = None):
        details = {
            "payment_received": True,
            "booking_status": "pending_confirmation",
            "order_id": order_id,
            "payment_id": payment_id,
        }
        if reason:
            details["reason"] = reason
        super().__init__(
            "Payment received; your booking is pending confirmation",
            ErrorCode.BOOKING_PENDING_CONFIRMATION,
            details,
            202,
        )


class PaymentRecordNotFoundError(ResourceNotFoundError):
    error_code_for_type = ErrorCode.PAYMENT_RECORD_NOT_FOUND

    def __init__(self, record_id: Optional[str] = None):
        super().__init__("Payment record", record_id)


# ========================================
# Billing & notifications
# ========================================

class InvoiceNotFoundError(ResourceNotFoundError):
    error_code_for_type = ErrorCode.INVOICE_NOT_FOUND

    def __init__(self, invoice_id: Optional[str] = None):
        super().__init__("Invoice", invoice_id)


class InvalidInvoiceStateError(BaseAppException):
    def __init__(self, invoice_id: str, current_status: str):
        super().__init__(
            f"Invoice is {current_status} and cannot be changed",
            ErrorCode.INVALID_INVOICE_STATE,
            {"invoice_id": invoice_id, "current_status": current_status},
            409,
        )


class NotificationNotFoundError(ResourceNotFoundError):
    error_code_for_type = ErrorCode.NOTIFICATION_NOT_FOUND

    def __init__(self, notification_id: Optional[str] = None):
        super().__init__("Notification", notification_id)
