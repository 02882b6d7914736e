"""Queue API endpoints: global ranking, per-location queues, recompute."""
from typing import Tuple

from fastapi import APIRouter, status

from shoptracker.api.deps import DB, ActorId
from shoptracker.models.order import Order
from shoptracker.models.order_location import OrderLocation
from shoptracker.schemas.base import SuccessResponse
from shoptracker.schemas.order import OrderResponse
from shoptracker.schemas.queue import (
    AssignmentResponse,
    EnqueueRequest,
    GlobalPositionUpdate,
    LocationQueueEntry,
    LocationReorderRequest,
)
from shoptracker.services.global_queue_service import GlobalQueueService
from shoptracker.services.local_queue_service import LocalQueueService


router = APIRouter(tags=["Queue"])


def _queue_entry(entry: Tuple[OrderLocation, Order]) -> LocationQueueEntry:
    assignment, order = entry
    return LocationQueueEntry(
        **AssignmentResponse.model_validate(assignment).model_dump(),
        order=OrderResponse.model_validate(order),
    )


# ==================== GLOBAL QUEUE ====================

@router.get("/global", response_model=list[OrderResponse])
async def get_global_queue(db: DB):
    """Active orders in priority order (rush first)."""
    service = GlobalQueueService(db)
    orders = await service.get_ranking()
    return [OrderResponse.model_validate(o) for o in orders]


@router.post("/global/{order_id}", response_model=SuccessResponse)
async def set_global_position(
    order_id: int,
    data: GlobalPositionUpdate,
    db: DB,
    actor_id: ActorId,
):
    """
    Move an order to a global position.

    Non-rush orders cannot be placed above rush orders; the 400 response
    carries min_allowed_position.
    """
    service = GlobalQueueService(db)
    await service.set_global_position(order_id, data.position, actor_id=actor_id)
    return SuccessResponse()


@router.post("/recompute", response_model=SuccessResponse)
async def recompute_all_queues(db: DB):
    """Re-rank the global queue and every location queue."""
    service = LocalQueueService(db)
    await service.recompute_all()
    return SuccessResponse()


# ==================== LOCATION QUEUES ====================

@router.get("/location/{location_id}", response_model=list[LocationQueueEntry])
async def get_location_queue(location_id: int, db: DB):
    """Ordered queue of one location."""
    service = LocalQueueService(db)
    entries = await service.get_location_queue(location_id)
    return [_queue_entry(e) for e in entries]


@router.get("/location/{location_id}/pending", response_model=list[OrderResponse])
async def get_pending_at_location(location_id: int, db: DB):
    """Active orders a primary location has not started yet."""
    service = LocalQueueService(db)
    orders = await service.list_pending_for_primary_location(location_id)
    return [OrderResponse.model_validate(o) for o in orders]


@router.post(
    "/location/{location_id}",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enqueue_at_location(
    location_id: int,
    data: EnqueueRequest,
    db: DB,
    actor_id: ActorId,
):
    """Add an order to the end of a location queue."""
    service = LocalQueueService(db)
    assignment = await service.enqueue_at_location(data.order_id, location_id, actor_id=actor_id)
    return AssignmentResponse.model_validate(assignment)


@router.post("/location/{location_id}/reorder", response_model=SuccessResponse)
async def reorder_location_queue(
    location_id: int,
    data: LocationReorderRequest,
    db: DB,
):
    """Move an order within a location queue."""
    service = LocalQueueService(db)
    await service.reorder_within_location(location_id, data.order_id, data.position)
    return SuccessResponse()


@router.post("/location/{location_id}/recompute", response_model=SuccessResponse)
async def recompute_location_queue(location_id: int, db: DB):
    service = LocalQueueService(db)
    await service.recompute(location_id)
    return SuccessResponse()
