from datetime import datetime, timezone
from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shoptracker.core.exceptions import NotFoundError, QueueValidationError
from shoptracker.core.locks import QueueLocks, queue_locks
from shoptracker.database import transaction
from shoptracker.models.order import Order
from shoptracker.services.audit_service import AuditService
from shoptracker.services.local_queue_service import LocalQueueService
from shoptracker.services.location_service import LocationService
from shoptracker.services import ranking

logger = logging.getLogger(__name__)


class GlobalQueueService:
    """
    Shop-wide priority ranking of active (non-shipped) orders.

    Rush changes and manual moves re-rank the global list and then every
    location queue, because local order follows global position.
    """

    def __init__(self, db: AsyncSession, locks: Optional[QueueLocks] = None):
        self.db = db
        self.locks = locks or queue_locks
        self.locations = LocationService(db, locks=self.locks)
        self.audit = AuditService(db)

    async def _active_orders(self) -> List[Order]:
        await self.db.flush()
        result = await self.db.execute(
            select(Order)
            .where(Order.is_shipped == False)  # noqa: E712
            .with_for_update()
        )
        return list(result.scalars().all())

    async def _require_order(self, order_id: int) -> Order:
        order = await self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order with id {order_id} not found", "order", order_id)
        return order

    async def _write_positions(self, ranked: List[Order]) -> None:
        for index, order in enumerate(ranked, start=1):
            if order.global_queue_position != index:
                order.global_queue_position = index
        await self.db.flush()

    async def _clear_shipped_positions(self) -> None:
        result = await self.db.execute(
            select(Order).where(
                Order.is_shipped == True,  # noqa: E712
                Order.global_queue_position.is_not(None),
            )
        )
        for order in result.scalars().all():
            order.global_queue_position = None
        await self.db.flush()

    async def apply_ranking(self, demoted_order_id: Optional[int] = None) -> List[Order]:
        """Rank active orders and write positions 1..N. Caller holds the global lock."""
        ranked = ranking.rank_orders(await self._active_orders(), demoted_order_id)
        await self._write_positions(ranked)
        await self._clear_shipped_positions()
        return ranked

    async def _rerank_everything(self, demoted_order_id: Optional[int] = None) -> List[Order]:
        ranked = await self.apply_ranking(demoted_order_id)
        await LocalQueueService(self.db, locks=self.locks).rebalance_all_locations()
        return ranked

    # ==================== OPERATIONS ====================

    async def get_ranking(self) -> List[Order]:
        """Active orders in priority order."""
        async with self.locks.ranking():
            await self.db.flush()
            result = await self.db.execute(
                select(Order).where(Order.is_shipped == False)  # noqa: E712
            )
            return ranking.rank_orders(list(result.scalars().all()))

    async def recompute(self) -> bool:
        """Re-rank the global queue by the ranking rule."""
        async with self.locks.ranking():
            async with transaction(self.db):
                ranked = await self.apply_ranking()
        logger.debug(f"Recomputed global queue ({len(ranked)} active orders)")
        return True

    async def set_rush(
        self,
        order_id: int,
        now: Optional[datetime] = None,
        actor_id: Optional[int] = None,
    ) -> Order:
        """
        Flag an order as rush.

        The order joins the rush block behind earlier rush orders. Setting
        rush on an order that already has it is a no-op.
        """
        now = now or datetime.now(timezone.utc)
        async with self.locks.shop(self.locations.list_location_ids):
            async with transaction(self.db):
                order = await self._require_order(order_id)
                if order.rush:
                    return order
                if order.is_shipped:
                    raise QueueValidationError(
                        f"Order {order.order_number} has shipped", fields=["order_id"]
                    )

                order.rush = True
                order.rush_set_at = now
                await self._rerank_everything()
                await self.audit.log(
                    "rush",
                    order_id,
                    user_id=actor_id,
                    details=f"Order marked RUSH at {now.isoformat()}",
                )

        logger.info(f"Order {order.order_number} marked rush")
        return order

    async def unset_rush(self, order_id: int, actor_id: Optional[int] = None) -> Order:
        """Clear rush; the order moves to the end of the non-rush queue."""
        async with self.locks.shop(self.locations.list_location_ids):
            async with transaction(self.db):
                order = await self._require_order(order_id)
                if not order.rush:
                    return order

                order.rush = False
                order.rush_set_at = None
                await self._rerank_everything(demoted_order_id=order.id)
                await self.audit.log(
                    "unrush",
                    order_id,
                    user_id=actor_id,
                    details="Rush removed",
                )

        logger.info(f"Order {order.order_number} rush removed")
        return order

    async def set_global_position(
        self,
        order_id: int,
        position: int,
        actor_id: Optional[int] = None,
    ) -> bool:
        """
        Move an order to an absolute global position within its bucket.

        A non-rush order cannot be placed above the rush block; the error
        carries the smallest position it may take.
        """
        if position < 1:
            raise QueueValidationError("Position must be at least 1", fields=["position"])

        async with self.locks.shop(self.locations.list_location_ids):
            async with transaction(self.db):
                ranked = ranking.rank_orders(await self._active_orders())
                target = next((o for o in ranked if o.id == order_id), None)
                if target is None:
                    raise NotFoundError(
                        f"Order {order_id} is not in the active queue", "order", order_id
                    )

                if not target.rush:
                    min_allowed = ranking.min_allowed_position(ranked)
                    if position < min_allowed:
                        raise QueueValidationError(
                            f"Cannot move a non-rush order above rush orders. "
                            f"Minimum allowed position is {min_allowed}",
                            fields=["position"],
                            min_allowed_position=min_allowed,
                        )

                await self._write_positions(ranking.move_within_bucket(ranked, target, position))
                await LocalQueueService(self.db, locks=self.locks).rebalance_all_locations()
                await self.audit.log(
                    "global_queue_set",
                    order_id,
                    user_id=actor_id,
                    details=f"Global queue position set to {target.global_queue_position}",
                )

        logger.info(f"Order {order_id} moved to global position {target.global_queue_position}")
        return True
