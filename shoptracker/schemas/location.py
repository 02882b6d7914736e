from datetime import datetime

from pydantic import Field

from shoptracker.schemas.base import BaseCreateSchema, BaseResponseSchema


class LocationCreate(BaseCreateSchema):
    """Location creation schema."""
    name: str = Field(..., min_length=1, max_length=100)
    used_order: int
    is_primary: bool = False
    skip_auto_queue: bool = False
    count_multiplier: float = Field(1.0, gt=0)
    no_count: bool = False


class LocationResponse(BaseResponseSchema):
    """Location response schema."""
    id: int
    name: str
    used_order: int
    is_primary: bool
    skip_auto_queue: bool
    count_multiplier: float
    no_count: bool
    created_at: datetime
