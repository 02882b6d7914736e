"""
Base Schema Classes for Pydantic Models

RULE: All response schemas that read from ORM models MUST inherit from
BaseResponseSchema.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Usage:
        class LocationResponse(BaseResponseSchema):
            id: int
            name: str
    """
    model_config = ConfigDict(
        from_attributes=True,
        json_encoders={
            datetime: lambda v: v.isoformat() if v else None,
        },
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """Base class for create/input schemas."""
    model_config = ConfigDict(
        # Allow extra fields to be ignored (forward compatibility)
        extra='ignore',
    )


class SuccessResponse(BaseModel):
    success: bool = True
