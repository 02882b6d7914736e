"""Order API endpoints."""
from fastapi import APIRouter, HTTPException, status, Query

from shoptracker.api.deps import DB, ActorId
from shoptracker.schemas.base import SuccessResponse
from shoptracker.schemas.order import (
    AuditTrailResponse,
    OrderCreate,
    OrderResponse,
    OrderShip,
)
from shoptracker.schemas.queue import AssignmentResponse
from shoptracker.services.global_queue_service import GlobalQueueService
from shoptracker.services.order_service import OrderService


router = APIRouter(tags=["Orders"])


@router.get("", response_model=list[OrderResponse])
async def list_orders(
    db: DB,
    include_shipped: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """Orders in global queue order."""
    service = OrderService(db)
    orders = await service.list_orders(include_shipped=include_shipped, skip=skip, limit=limit)
    return [OrderResponse.model_validate(o) for o in orders]


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    data: OrderCreate,
    db: DB,
    actor_id: ActorId,
):
    """
    Create an order.

    One not_started assignment is created per selected location, or per
    location when none are selected.
    """
    service = OrderService(db)
    order = await service.create_order(data, actor_id=actor_id)
    return OrderResponse.model_validate(order)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, db: DB):
    """Get order by ID."""
    service = OrderService(db)
    order = await service.get_order(order_id)

    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )

    return OrderResponse.model_validate(order)


@router.delete("/{order_id}", response_model=SuccessResponse)
async def delete_order(order_id: int, db: DB, actor_id: ActorId):
    service = OrderService(db)
    await service.delete_order(order_id, actor_id=actor_id)
    return SuccessResponse()


@router.post("/{order_id}/ship", response_model=OrderResponse)
async def ship_order(
    order_id: int,
    data: OrderShip,
    db: DB,
    actor_id: ActorId,
):
    """Ship an order. Shipping the full quantity removes it from all queues."""
    service = OrderService(db)
    order = await service.ship_order(order_id, data.quantity, actor_id=actor_id)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/rush", response_model=OrderResponse)
async def set_rush(order_id: int, db: DB, actor_id: ActorId):
    """Mark an order as rush."""
    service = GlobalQueueService(db)
    order = await service.set_rush(order_id, actor_id=actor_id)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/unrush", response_model=OrderResponse)
async def unset_rush(order_id: int, db: DB, actor_id: ActorId):
    """Remove rush; the order moves to the end of the normal queue."""
    service = GlobalQueueService(db)
    order = await service.unset_rush(order_id, actor_id=actor_id)
    return OrderResponse.model_validate(order)


@router.get("/{order_id}/locations", response_model=list[AssignmentResponse])
async def list_order_locations(order_id: int, db: DB):
    """Assignments of an order in location sequence order."""
    service = OrderService(db)
    assignments = await service.list_assignments(order_id)
    return [AssignmentResponse.model_validate(a) for a in assignments]


@router.get("/{order_id}/audit-trail", response_model=list[AuditTrailResponse])
async def get_audit_trail(order_id: int, db: DB):
    """Audit entries for an order, newest first."""
    service = OrderService(db)
    entries = await service.get_audit_trail(order_id)
    return [AuditTrailResponse.model_validate(e) for e in entries]
