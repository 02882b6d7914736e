from datetime import datetime
from typing import Optional

from pydantic import Field

from shoptracker.models.order_location import AssignmentStatus
from shoptracker.schemas.base import BaseCreateSchema, BaseResponseSchema
from shoptracker.schemas.order import OrderResponse


# ==================== ASSIGNMENT SCHEMAS ====================

class AssignmentResponse(BaseResponseSchema):
    """Order-location assignment."""
    id: int
    order_id: int
    location_id: int
    status: AssignmentStatus
    queue_position: Optional[int] = None
    completed_quantity: int
    notes: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime


class LocationQueueEntry(AssignmentResponse):
    """Assignment in a location queue together with its order."""
    order: OrderResponse


class AssignmentCreate(BaseCreateSchema):
    """Attach a location to an order."""
    order_id: int
    location_id: int


# ==================== QUEUE REQUESTS ====================

class GlobalPositionUpdate(BaseCreateSchema):
    position: int = Field(..., ge=1)


class EnqueueRequest(BaseCreateSchema):
    order_id: int


class LocationReorderRequest(BaseCreateSchema):
    order_id: int
    position: int = Field(..., ge=1)


class QuantityUpdate(BaseCreateSchema):
    completed_quantity: int = Field(..., ge=0)
