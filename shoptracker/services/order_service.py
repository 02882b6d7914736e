from typing import List, Optional, Tuple
import logging

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from shoptracker.core.exceptions import ConstraintError, NotFoundError, QueueValidationError
from shoptracker.core.locks import QueueLocks, queue_locks
from shoptracker.database import transaction
from shoptracker.models.audit_log import AuditTrail
from shoptracker.models.location import Location
from shoptracker.models.order import Order
from shoptracker.models.order_location import OrderLocation, AssignmentStatus
from shoptracker.schemas.order import OrderCreate
from shoptracker.services.assignment_store import AssignmentStore
from shoptracker.services.audit_service import AuditService
from shoptracker.services.global_queue_service import GlobalQueueService
from shoptracker.services.local_queue_service import LocalQueueService
from shoptracker.services.location_service import LocationService

logger = logging.getLogger(__name__)


class OrderService:
    """
    Order lifecycle: creation, shipping, deletion and the set of locations
    an order visits. Every change that affects queue membership re-ranks
    the queues it touches before committing.
    """

    def __init__(self, db: AsyncSession, locks: Optional[QueueLocks] = None):
        self.db = db
        self.locks = locks or queue_locks
        self.store = AssignmentStore(db)
        self.locations = LocationService(db, locks=self.locks)
        self.audit = AuditService(db)
        self.global_queue = GlobalQueueService(db, locks=self.locks)
        self.local = LocalQueueService(db, locks=self.locks)

    # ==================== READS ====================

    async def get_order(self, order_id: int) -> Optional[Order]:
        return await self.db.get(Order, order_id)

    async def require_order(self, order_id: int) -> Order:
        order = await self.get_order(order_id)
        if order is None:
            raise NotFoundError(f"Order with id {order_id} not found", "order", order_id)
        return order

    async def list_orders(
        self,
        include_shipped: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Order]:
        """Orders in global queue order; shipped orders (no position) come last."""
        query = select(Order)
        if not include_shipped:
            query = query.where(Order.is_shipped == False)  # noqa: E712
        query = query.order_by(
            Order.global_queue_position.is_(None),
            Order.global_queue_position.asc(),
            Order.created_at.asc(),
            Order.id.asc(),
        ).offset(skip).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_assignments(self, order_id: int) -> List[OrderLocation]:
        await self.require_order(order_id)
        return await self.store.list_for_order(order_id)

    async def get_audit_trail(self, order_id: int) -> List[AuditTrail]:
        await self.require_order(order_id)
        return await self.audit.get_for_order(order_id)

    # ==================== WRITES ====================

    async def create_order(self, data: OrderCreate, actor_id: Optional[int] = None) -> Order:
        """
        Create an order with one not_started assignment per selected
        location (every location when none are selected) and rank it into
        the global queue.
        """
        if data.selected_location_ids:
            locations: List[Location] = [
                await self.locations.require_location(lid) for lid in data.selected_location_ids
            ]
        else:
            locations = await self.locations.list_locations()

        async with self.locks.ranking():
            async with transaction(self.db):
                order = Order(
                    order_number=data.order_number,
                    client=data.client,
                    description=data.description,
                    notes=data.notes,
                    due_date=data.due_date,
                    total_quantity=data.total_quantity,
                    shipped_quantity=0,
                    is_finished=False,
                    is_shipped=False,
                    partially_shipped=False,
                    rush=False,
                    created_by=actor_id,
                )
                self.db.add(order)
                await self.db.flush()

                for location in locations:
                    self.db.add(OrderLocation(
                        order_id=order.id,
                        location_id=location.id,
                        status=AssignmentStatus.NOT_STARTED.value,
                        completed_quantity=0,
                    ))
                await self.db.flush()

                await self.global_queue.apply_ranking()
                await self.audit.log(
                    "created",
                    order.id,
                    user_id=actor_id,
                    details=f"Order created with {len(locations)} locations",
                )

        logger.info(
            f"Created order {order.order_number} at global position {order.global_queue_position}"
        )
        return order

    async def ship_order(
        self,
        order_id: int,
        quantity: int,
        actor_id: Optional[int] = None,
    ) -> Order:
        """
        Record a shipment.

        Shipping at least the total quantity removes the order from every
        queue; a smaller positive quantity only marks it partially shipped.
        """
        if quantity < 0:
            raise QueueValidationError("Shipped quantity cannot be negative", fields=["quantity"])

        async with self.locks.shop(self.locations.list_location_ids):
            async with transaction(self.db):
                order = await self.require_order(order_id)
                fully_shipped = quantity >= order.total_quantity

                order.shipped_quantity = quantity
                order.is_shipped = fully_shipped
                order.partially_shipped = 0 < quantity < order.total_quantity

                if fully_shipped:
                    order.global_queue_position = None
                    for assignment in await self.store.list_for_order(order_id):
                        assignment.queue_position = None

                await self.global_queue.apply_ranking()
                await self.local.rebalance_all_locations()
                await self.audit.log(
                    "shipped",
                    order_id,
                    user_id=actor_id,
                    details=(
                        f"Shipped {quantity} of {order.total_quantity} units"
                        + ("" if fully_shipped else " (partial)")
                    ),
                )

        logger.info(f"Order {order.order_number} shipped {quantity}/{order.total_quantity}")
        return order

    async def delete_order(self, order_id: int, actor_id: Optional[int] = None) -> bool:
        """Delete an order and its assignments, then close the gaps it leaves."""
        async with self.locks.shop(self.locations.list_location_ids):
            async with transaction(self.db):
                order = await self.require_order(order_id)
                order_number = order.order_number
                await self.db.flush()

                await self.db.execute(
                    delete(OrderLocation).where(OrderLocation.order_id == order_id)
                )
                await self.db.execute(delete(Order).where(Order.id == order_id))

                await self.global_queue.apply_ranking()
                await self.local.rebalance_all_locations()
                await self.audit.log(
                    "deleted",
                    order_id,
                    user_id=actor_id,
                    details=f"Order {order_number} deleted",
                )

        logger.info(f"Deleted order {order_number}")
        return True

    async def attach_location(
        self,
        order_id: int,
        location_id: int,
        actor_id: Optional[int] = None,
    ) -> OrderLocation:
        """Add a not_started assignment. The pair must not exist yet."""
        await self.require_order(order_id)
        location = await self.locations.require_location(location_id)

        async with self.locks.locations([location_id]):
            async with transaction(self.db):
                if await self.store.get(order_id, location_id) is not None:
                    raise ConstraintError(
                        f"Order {order_id} is already assigned to location {location_id}"
                    )

                assignment = OrderLocation(
                    order_id=order_id,
                    location_id=location_id,
                    status=AssignmentStatus.NOT_STARTED.value,
                    completed_quantity=0,
                )
                self.db.add(assignment)
                await self.db.flush()
                await self.audit.log(
                    "location_added",
                    order_id,
                    user_id=actor_id,
                    location_id=location_id,
                    details=f"Location {location.name} added",
                )

        return assignment

    async def detach_location(
        self,
        order_id: int,
        location_id: int,
        actor_id: Optional[int] = None,
    ) -> Tuple[int, int]:
        """Remove an assignment and re-rank the location it left."""
        location = await self.locations.require_location(location_id)

        async with self.locks.locations([location_id]):
            async with transaction(self.db):
                assignment = await self.store.require(order_id, location_id)
                await self.store.delete(assignment)
                await self.local.apply_ranking(location_id)
                await self.audit.log(
                    "location_removed",
                    order_id,
                    user_id=actor_id,
                    location_id=location_id,
                    details=f"Location {location.name} removed",
                )

        logger.info(f"Removed location {location_id} from order {order_id}")
        return order_id, location_id
