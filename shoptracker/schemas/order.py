from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from shoptracker.schemas.base import BaseCreateSchema, BaseResponseSchema


# ==================== ORDER SCHEMAS ====================

class OrderCreate(BaseCreateSchema):
    """Order creation schema."""
    order_number: str = Field(..., min_length=1, max_length=50)
    client: str = ""
    description: Optional[str] = None
    notes: Optional[str] = None
    due_date: Optional[datetime] = None
    total_quantity: int = Field(..., ge=0)
    # Locations to seed; every location when empty
    selected_location_ids: List[int] = Field(default_factory=list)

    @field_validator('selected_location_ids')
    @classmethod
    def unique_location_ids(cls, v):
        # Keep first occurrence order, drop repeats
        return list(dict.fromkeys(v))


class OrderShip(BaseCreateSchema):
    """Shipping request."""
    quantity: int = Field(..., ge=0)


class OrderResponse(BaseResponseSchema):
    """Order response schema."""
    id: int
    order_number: str
    client: str
    description: Optional[str] = None
    notes: Optional[str] = None
    due_date: Optional[datetime] = None
    total_quantity: int
    shipped_quantity: int
    is_finished: bool
    is_shipped: bool
    partially_shipped: bool
    global_queue_position: Optional[int] = None
    rush: bool
    rush_set_at: Optional[datetime] = None
    created_by: Optional[int] = None
    created_at: datetime


class AuditTrailResponse(BaseResponseSchema):
    """Audit trail entry."""
    id: int
    order_id: int
    user_id: Optional[int] = None
    location_id: Optional[int] = None
    action: str
    details: Optional[str] = None
    created_at: datetime
