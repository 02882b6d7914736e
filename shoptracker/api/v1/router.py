from fastapi import APIRouter

from shoptracker.api.v1.endpoints import (
    # Shop floor setup
    locations,
    # Orders and their locations
    orders,
    order_locations,
    # Queues
    queue,
)


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Locations ====================
api_router.include_router(
    locations.router,
    prefix="/locations",
    tags=["Locations"]
)

# ==================== Orders ====================
api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)
api_router.include_router(
    order_locations.router,
    prefix="/order-locations",
    tags=["Order Locations"]
)

# ==================== Queues ====================
api_router.include_router(
    queue.router,
    prefix="/queue",
    tags=["Queue"]
)
