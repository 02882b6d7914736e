"""Order-location (assignment) API endpoints: attach, detach, advance work."""
from fastapi import APIRouter, status

from shoptracker.api.deps import DB, ActorId
from shoptracker.schemas.base import SuccessResponse
from shoptracker.schemas.queue import AssignmentCreate, AssignmentResponse, QuantityUpdate
from shoptracker.services.advancement_service import AdvancementService
from shoptracker.services.order_service import OrderService


router = APIRouter(tags=["Order Locations"])


@router.post("", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def attach_location(
    data: AssignmentCreate,
    db: DB,
    actor_id: ActorId,
):
    """Add a location to an order. Returns 409 if it is already assigned."""
    service = OrderService(db)
    assignment = await service.attach_location(data.order_id, data.location_id, actor_id=actor_id)
    return AssignmentResponse.model_validate(assignment)


@router.delete("/{order_id}/{location_id}", response_model=SuccessResponse)
async def detach_location(
    order_id: int,
    location_id: int,
    db: DB,
    actor_id: ActorId,
):
    service = OrderService(db)
    await service.detach_location(order_id, location_id, actor_id=actor_id)
    return SuccessResponse()


@router.post("/{order_id}/{location_id}/start", response_model=AssignmentResponse)
async def start_work(
    order_id: int,
    location_id: int,
    db: DB,
    actor_id: ActorId,
):
    """Start (or resume) work; the order is queued at the next location."""
    service = AdvancementService(db)
    assignment = await service.start(order_id, location_id, actor_id=actor_id)
    return AssignmentResponse.model_validate(assignment)


@router.post("/{order_id}/{location_id}/finish", response_model=AssignmentResponse)
async def finish_work(
    order_id: int,
    location_id: int,
    data: QuantityUpdate,
    db: DB,
    actor_id: ActorId,
):
    """Finish work at a location. Repeating the call is harmless."""
    service = AdvancementService(db)
    assignment = await service.finish(
        order_id, location_id, data.completed_quantity, actor_id=actor_id
    )
    return AssignmentResponse.model_validate(assignment)


@router.post("/{order_id}/{location_id}/pause", response_model=AssignmentResponse)
async def pause_work(
    order_id: int,
    location_id: int,
    db: DB,
    actor_id: ActorId,
):
    service = AdvancementService(db)
    assignment = await service.pause(order_id, location_id, actor_id=actor_id)
    return AssignmentResponse.model_validate(assignment)


@router.post("/{order_id}/{location_id}/update-quantity", response_model=AssignmentResponse)
async def update_quantity(
    order_id: int,
    location_id: int,
    data: QuantityUpdate,
    db: DB,
    actor_id: ActorId,
):
    """Record a running completed count."""
    service = AdvancementService(db)
    assignment = await service.update_quantity(
        order_id, location_id, data.completed_quantity, actor_id=actor_id
    )
    return AssignmentResponse.model_validate(assignment)
