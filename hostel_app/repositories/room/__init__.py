from hostel_app.repositories.room.discount_repository import DiscountRepository
from hostel_app.repositories.room.room_repository import RoomRepository

__all__ = ["DiscountRepository", "RoomRepository"]
