from hostel_app.models.room.discount import Discount
from hostel_app.models.room.room import Room, RoomOccupant, RoomPricingPlan

__all__ = ["Discount", "Room", "RoomOccupant", "RoomPricingPlan"]
