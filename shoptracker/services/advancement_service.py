"""
Work advancement at a location.

Starting or finishing an order at one station hands it to the next station
in the location sequence; the last assignment to finish marks the order
finished.
"""

from datetime import datetime, timezone
from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from shoptracker.core.enum_utils import is_status
from shoptracker.core.exceptions import QueueValidationError
from shoptracker.core.locks import QueueLocks, queue_locks
from shoptracker.database import transaction
from shoptracker.models.order import Order
from shoptracker.models.order_location import OrderLocation, AssignmentStatus
from shoptracker.services.assignment_store import AssignmentStore
from shoptracker.services.audit_service import AuditService
from shoptracker.services.local_queue_service import LocalQueueService
from shoptracker.services.location_service import LocationService

logger = logging.getLogger(__name__)


class AdvancementService:

    def __init__(self, db: AsyncSession, locks: Optional[QueueLocks] = None):
        self.db = db
        self.locks = locks or queue_locks
        self.store = AssignmentStore(db)
        self.locations = LocationService(db, locks=self.locks)
        self.audit = AuditService(db)
        self.local = LocalQueueService(db, locks=self.locks)

    async def _lock_scope(self, location_id: int):
        """Current and next location ids; the location sequence is fixed at runtime."""
        next_location = await self.locations.next_location(location_id)
        return [location_id, next_location.id if next_location else None]

    async def start(
        self,
        order_id: int,
        location_id: int,
        actor_id: Optional[int] = None,
    ) -> OrderLocation:
        """
        Mark work started and queue the order at the next location.

        A paused assignment resumes; a done one cannot be started again.
        """
        location = await self.locations.require_location(location_id)
        scope = await self._lock_scope(location_id)

        async with self.locks.locations(scope):
            async with transaction(self.db):
                assignment = await self.store.require(order_id, location_id)
                if is_status(assignment.status, AssignmentStatus.DONE):
                    raise QueueValidationError(
                        f"Order {order_id} is already done at {location.name}",
                        fields=["status"],
                    )
                resuming = is_status(assignment.status, AssignmentStatus.PAUSED)

                assignment.status = AssignmentStatus.IN_PROGRESS.value
                assignment.queue_position = None
                if not (resuming and assignment.started_at is not None):
                    assignment.started_at = datetime.now(timezone.utc)

                await self.audit.log(
                    "started",
                    order_id,
                    user_id=actor_id,
                    location_id=location_id,
                    details=f"{'Resumed' if resuming else 'Started'} at {location.name}",
                )
                await self.local.apply_ranking(location_id)
                await self.queue_for_next_location(order_id, location_id)

        logger.info(f"Order {order_id} started at location {location_id}")
        return assignment

    async def finish(
        self,
        order_id: int,
        location_id: int,
        completed_quantity: int,
        actor_id: Optional[int] = None,
    ) -> OrderLocation:
        """
        Mark work done at a location.

        Finishing an assignment that is already done changes nothing, so a
        retried request cannot double-advance the order.
        """
        if completed_quantity < 0:
            raise QueueValidationError(
                "Completed quantity cannot be negative", fields=["completed_quantity"]
            )

        location = await self.locations.require_location(location_id)
        scope = await self._lock_scope(location_id)

        async with self.locks.locations(scope):
            async with transaction(self.db):
                assignment = await self.store.require(order_id, location_id)
                if is_status(assignment.status, AssignmentStatus.DONE):
                    logger.debug(f"Order {order_id} already done at location {location_id}")
                    return assignment

                assignment.status = AssignmentStatus.DONE.value
                assignment.completed_at = datetime.now(timezone.utc)
                assignment.completed_quantity = completed_quantity
                assignment.queue_position = None

                await self.audit.log(
                    "finished",
                    order_id,
                    user_id=actor_id,
                    location_id=location_id,
                    details=f"Completed processing {completed_quantity} units at {location.name}",
                )
                await self.local.apply_ranking(location_id)
                await self.queue_for_next_location(order_id, location_id)
                await self.check_completion(order_id)

        logger.info(f"Order {order_id} finished at location {location_id}")
        return assignment

    async def pause(
        self,
        order_id: int,
        location_id: int,
        actor_id: Optional[int] = None,
    ) -> OrderLocation:
        """Pause in-progress work. Pausing twice is a no-op."""
        location = await self.locations.require_location(location_id)

        async with self.locks.locations([location_id]):
            async with transaction(self.db):
                assignment = await self.store.require(order_id, location_id)
                if is_status(assignment.status, AssignmentStatus.PAUSED):
                    return assignment
                if not is_status(assignment.status, AssignmentStatus.IN_PROGRESS):
                    raise QueueValidationError(
                        f"Only in-progress work can be paused (status is {assignment.status})",
                        fields=["status"],
                    )

                assignment.status = AssignmentStatus.PAUSED.value
                await self.audit.log(
                    "paused",
                    order_id,
                    user_id=actor_id,
                    location_id=location_id,
                    details=f"Paused at {location.name}",
                )

        logger.info(f"Order {order_id} paused at location {location_id}")
        return assignment

    async def update_quantity(
        self,
        order_id: int,
        location_id: int,
        completed_quantity: int,
        actor_id: Optional[int] = None,
    ) -> OrderLocation:
        """Record a running completed count without changing status."""
        if completed_quantity < 0:
            raise QueueValidationError(
                "Completed quantity cannot be negative", fields=["completed_quantity"]
            )

        await self.locations.require_location(location_id)
        async with self.locks.locations([location_id]):
            async with transaction(self.db):
                assignment = await self.store.require(order_id, location_id)
                assignment.completed_quantity = completed_quantity
                await self.audit.log(
                    "updated_quantity",
                    order_id,
                    user_id=actor_id,
                    location_id=location_id,
                    details=f"Completed quantity set to {completed_quantity}",
                )
        return assignment

    # ==================== BUILDING BLOCKS ====================

    async def queue_for_next_location(
        self, order_id: int, current_location_id: int
    ) -> Optional[OrderLocation]:
        """
        Queue the order at the location after current_location_id.

        Creates the assignment when missing. An existing assignment is only
        queued if it has not started; later statuses are left alone.
        Caller holds the next location's lock.
        """
        next_location = await self.locations.next_location(current_location_id)
        if next_location is None:
            return None

        tail = await self.store.max_queue_position(next_location.id) + 1
        assignment, created = await self.store.ensure(
            order_id,
            next_location.id,
            status=AssignmentStatus.IN_QUEUE,
            queue_position=tail,
        )
        if not created:
            if not is_status(assignment.status, AssignmentStatus.NOT_STARTED):
                return assignment
            assignment.status = AssignmentStatus.IN_QUEUE.value
            assignment.queue_position = tail

        await self.local.apply_ranking(next_location.id)
        logger.info(f"Order {order_id} queued at next location '{next_location.name}'")
        return assignment

    async def check_completion(self, order_id: int) -> bool:
        """Set is_finished once every assignment is done. Never clears it."""
        statuses = await self.store.statuses_for_order(order_id)
        if not statuses or any(not is_status(s, AssignmentStatus.DONE) for s in statuses):
            return False

        order = await self.db.get(Order, order_id)
        if order is not None and not order.is_finished:
            order.is_finished = True
            await self.db.flush()
            logger.info(f"Order {order.order_number} finished at all locations")
        return True
