# --- File: hostel_app/schemas/common/base.py ---
"""
Base schema classes with common fields and configurations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "BaseSchema",
    "BaseResponseSchema",
    "MessageResponse",
]


class BaseSchema(BaseModel):
    """
    Base schema with common Pydantic configuration.

    All request and response schemas inherit from this so ORM objects can be
    validated directly and enums stay as Enum instances.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=False,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class BaseResponseSchema(BaseSchema):
    """Response schema for persisted entities."""

    id: str = Field(..., description="Unique identifier")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")


class MessageResponse(BaseSchema):
    message: str
