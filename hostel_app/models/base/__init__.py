from hostel_app.models.base.base_model import Base, BaseModel, TimestampModel

__all__ = ["Base", "BaseModel", "TimestampModel"]
