from typing import List, Optional, Tuple
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shoptracker.core.enum_utils import is_status
from shoptracker.core.exceptions import NotFoundError, QueueValidationError
from shoptracker.core.locks import QueueLocks, queue_locks
from shoptracker.database import transaction
from shoptracker.models.location import Location
from shoptracker.models.order import Order
from shoptracker.models.order_location import OrderLocation, AssignmentStatus
from shoptracker.services.assignment_store import AssignmentStore
from shoptracker.services.audit_service import AuditService
from shoptracker.services.location_service import LocationService
from shoptracker.services import ranking

logger = logging.getLogger(__name__)

QueueEntry = Tuple[OrderLocation, Order]


def _entry_is_rush(entry: QueueEntry) -> bool:
    return bool(entry[1].rush)


class LocalQueueService:
    """
    Per-location work queues.

    Public methods take the location lock(s) they need and run as one
    transaction. The lock-free building blocks (apply_ranking,
    promote_eligible, rebalance_all_locations) expect the caller to already
    hold the relevant lock and an open unit of work.
    """

    def __init__(self, db: AsyncSession, locks: Optional[QueueLocks] = None):
        self.db = db
        self.locks = locks or queue_locks
        self.store = AssignmentStore(db)
        self.locations = LocationService(db, locks=self.locks)
        self.audit = AuditService(db)

    # ==================== BUILDING BLOCKS ====================

    async def _queued_entries(self, location_id: int) -> List[QueueEntry]:
        """in_queue assignments of non-shipped orders, in current position order."""
        await self.db.flush()
        result = await self.db.execute(
            select(OrderLocation, Order)
            .join(Order, OrderLocation.order_id == Order.id)
            .where(
                OrderLocation.location_id == location_id,
                OrderLocation.status == AssignmentStatus.IN_QUEUE.value,
                Order.is_shipped == False,  # noqa: E712
            )
            .order_by(
                OrderLocation.queue_position.is_(None),
                OrderLocation.queue_position.asc(),
                OrderLocation.id.asc(),
            )
            .with_for_update(of=OrderLocation)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def _write_positions(self, entries: List[QueueEntry]) -> None:
        for index, (assignment, _) in enumerate(entries, start=1):
            if assignment.queue_position != index:
                assignment.queue_position = index
        await self.db.flush()

    async def apply_ranking(self, location_id: int) -> List[QueueEntry]:
        """Re-rank one location and write positions 1..K. Caller holds the lock."""
        entries = ranking.rank_queue(await self._queued_entries(location_id))
        await self._write_positions(entries)
        return entries

    async def promote_eligible(self, location: Location) -> int:
        """
        Move not_started assignments of globally queued orders into the queue
        of an auto-queueing location, in global order. Returns the count.
        """
        if not location.auto_queues:
            return 0

        await self.db.flush()
        result = await self.db.execute(
            select(OrderLocation)
            .join(Order, OrderLocation.order_id == Order.id)
            .where(
                OrderLocation.location_id == location.id,
                OrderLocation.status == AssignmentStatus.NOT_STARTED.value,
                Order.is_shipped == False,  # noqa: E712
                Order.global_queue_position.is_not(None),
            )
            .order_by(Order.global_queue_position.asc(), OrderLocation.id.asc())
            .with_for_update(of=OrderLocation)
        )
        candidates = list(result.scalars().all())
        if not candidates:
            return 0

        next_position = await self.store.max_queue_position(location.id) + 1
        for assignment in candidates:
            assignment.status = AssignmentStatus.IN_QUEUE.value
            assignment.queue_position = next_position
            next_position += 1

        await self.apply_ranking(location.id)
        logger.info(f"Auto-queued {len(candidates)} orders at location '{location.name}'")
        return len(candidates)

    async def rebalance_all_locations(self) -> int:
        """Promote and re-rank every location in sequence order. Caller holds the shop lock."""
        locations = await self.locations.list_locations()
        for location in locations:
            await self.promote_eligible(location)
            await self.apply_ranking(location.id)
        return len(locations)

    # ==================== OPERATIONS ====================

    async def recompute(self, location_id: int) -> bool:
        """Re-rank one location queue by the local rule."""
        await self.locations.require_location(location_id)
        async with self.locks.locations([location_id]):
            async with transaction(self.db):
                entries = await self.apply_ranking(location_id)
        logger.debug(f"Recomputed location {location_id} queue ({len(entries)} entries)")
        return True

    async def recompute_all(self) -> bool:
        """Global recompute followed by every location, all under the shop lock."""
        from shoptracker.services.global_queue_service import GlobalQueueService

        global_queue = GlobalQueueService(self.db, locks=self.locks)
        async with self.locks.shop(self.locations.list_location_ids):
            async with transaction(self.db):
                ranked = await global_queue.apply_ranking()
                location_count = await self.rebalance_all_locations()
        logger.info(
            f"Recomputed all queues: {len(ranked)} active orders, {location_count} locations"
        )
        return True

    async def get_location_queue(self, location_id: int) -> List[QueueEntry]:
        """
        Ordered queue of a location.

        Auto-queueing locations first pick up any not_started assignments of
        globally queued orders, so the returned list is always current.
        """
        location = await self.locations.require_location(location_id)
        async with self.locks.locations([location_id]):
            async with transaction(self.db):
                await self.promote_eligible(location)
                entries = await self._queued_entries(location_id)
        return entries

    async def reorder_within_location(self, location_id: int, order_id: int, position: int) -> bool:
        """
        Move an order to an absolute position in a location queue.

        Rush orders stay within the rush block. Non-rush orders may not be
        placed above any rush order; positions past the end are clamped.
        """
        if position < 1:
            raise QueueValidationError("Position must be at least 1", fields=["position"])

        await self.locations.require_location(location_id)
        async with self.locks.locations([location_id]):
            async with transaction(self.db):
                entries = await self._queued_entries(location_id)
                target = next((e for e in entries if e[0].order_id == order_id), None)
                if target is None:
                    raise NotFoundError(
                        f"Order {order_id} is not queued at location {location_id}",
                        "order_location",
                        f"{order_id}-{location_id}",
                    )

                if not _entry_is_rush(target):
                    min_allowed = ranking.min_allowed_position(entries, is_rush=_entry_is_rush)
                    if position < min_allowed:
                        raise QueueValidationError(
                            f"Cannot move a non-rush order above rush orders. "
                            f"Minimum allowed position is {min_allowed}",
                            fields=["position"],
                            min_allowed_position=min_allowed,
                        )

                reordered = ranking.move_within_bucket(
                    entries, target, position, is_rush=_entry_is_rush
                )
                await self._write_positions(reordered)

        logger.info(f"Moved order {order_id} to position {position} at location {location_id}")
        return True

    async def enqueue_at_location(
        self,
        order_id: int,
        location_id: int,
        actor_id: Optional[int] = None,
    ) -> OrderLocation:
        """
        Put an order at the tail of a location queue, creating the assignment
        if needed. Assignments past not_started are never moved back.
        """
        location = await self.locations.require_location(location_id)
        order = await self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order with id {order_id} not found", "order", order_id)
        if order.is_shipped:
            raise QueueValidationError(
                f"Order {order.order_number} has shipped and cannot be queued",
                fields=["order_id"],
            )

        async with self.locks.locations([location_id]):
            async with transaction(self.db):
                existing = await self.store.get(order_id, location_id)
                if existing is not None and is_status(existing.status, AssignmentStatus.IN_QUEUE):
                    raise QueueValidationError(
                        f"Order {order.order_number} is already in queue at {location.name}",
                        fields=["order_id"],
                    )
                # only a not_started assignment may enter the queue
                if existing is not None and not is_status(
                    existing.status, AssignmentStatus.NOT_STARTED
                ):
                    raise QueueValidationError(
                        f"Order {order.order_number} is already {existing.status} "
                        f"at {location.name}",
                        fields=["order_id"],
                    )

                assignment, _ = await self.store.ensure(order_id, location_id)
                assignment.status = AssignmentStatus.IN_QUEUE.value
                assignment.queue_position = await self.store.max_queue_position(location_id) + 1
                await self.apply_ranking(location_id)
                await self.audit.log(
                    "queued",
                    order_id,
                    user_id=actor_id,
                    location_id=location_id,
                    details=f"Queued at {location.name}",
                )

        logger.info(f"Queued order {order_id} at location {location_id}")
        return assignment

    async def list_pending_for_primary_location(self, location_id: int) -> List[Order]:
        """
        Active orders that still need a primary location, oldest first.

        An order is pending when it has no assignment at the location or
        only a not_started one. Used by the floor to see what could be
        queued at a station that does not auto-queue.
        """
        location = await self.locations.require_location(location_id)
        if not location.is_primary:
            return []

        already_moving = (
            select(OrderLocation.id)
            .where(
                OrderLocation.order_id == Order.id,
                OrderLocation.location_id == location_id,
                OrderLocation.status != AssignmentStatus.NOT_STARTED.value,
            )
            .exists()
        )
        result = await self.db.execute(
            select(Order)
            .where(
                Order.is_shipped == False,  # noqa: E712
                Order.is_finished == False,  # noqa: E712
                ~already_moving,
            )
            .order_by(Order.created_at.asc(), Order.id.asc())
        )
        return list(result.scalars().all())
