from hostel_app.repositories.booking.booking_repository import BookingRepository

__all__ = ["BookingRepository"]
