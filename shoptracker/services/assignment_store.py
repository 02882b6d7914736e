from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging

from sqlalchemy import select, func, insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from shoptracker.core.enum_utils import get_enum_value
from shoptracker.core.exceptions import NotFoundError
from shoptracker.models.location import Location
from shoptracker.models.order_location import OrderLocation, AssignmentStatus

logger = logging.getLogger(__name__)


class AssignmentStore:
    """
    Persistence for (order, location) assignments.

    Does not take locks or commit; callers run it inside their own
    transaction while holding the lock of the location being written.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, order_id: int, location_id: int) -> Optional[OrderLocation]:
        result = await self.db.execute(
            select(OrderLocation).where(
                OrderLocation.order_id == order_id,
                OrderLocation.location_id == location_id,
            )
        )
        return result.scalar_one_or_none()

    async def require(self, order_id: int, location_id: int) -> OrderLocation:
        assignment = await self.get(order_id, location_id)
        if assignment is None:
            raise NotFoundError(
                f"Order location with order ID {order_id} and location ID {location_id} not found",
                "order_location",
                f"{order_id}-{location_id}",
            )
        return assignment

    async def list_for_order(self, order_id: int) -> List[OrderLocation]:
        """Assignments of one order in location sequence order."""
        result = await self.db.execute(
            select(OrderLocation)
            .join(Location, OrderLocation.location_id == Location.id)
            .where(OrderLocation.order_id == order_id)
            .order_by(Location.used_order.asc(), OrderLocation.id.asc())
        )
        return list(result.scalars().all())

    async def statuses_for_order(self, order_id: int) -> List[str]:
        await self.db.flush()
        result = await self.db.execute(
            select(OrderLocation.status).where(OrderLocation.order_id == order_id)
        )
        return [row[0] for row in result.all()]

    async def max_queue_position(self, location_id: int) -> int:
        """Highest queue position currently used at a location (0 when empty)."""
        await self.db.flush()
        result = await self.db.execute(
            select(func.max(OrderLocation.queue_position)).where(
                OrderLocation.location_id == location_id,
                OrderLocation.status == AssignmentStatus.IN_QUEUE.value,
            )
        )
        return result.scalar() or 0

    def _insert_ignoring_duplicates(self, values: dict):
        dialect = self.db.bind.dialect.name if self.db.bind is not None else ""
        if dialect == "postgresql":
            return postgresql.insert(OrderLocation).values(**values).on_conflict_do_nothing(
                index_elements=["order_id", "location_id"]
            )
        if dialect == "sqlite":
            return sqlite.insert(OrderLocation).values(**values).on_conflict_do_nothing(
                index_elements=["order_id", "location_id"]
            )
        return insert(OrderLocation).values(**values)

    async def ensure(
        self,
        order_id: int,
        location_id: int,
        status: AssignmentStatus = AssignmentStatus.NOT_STARTED,
        queue_position: Optional[int] = None,
    ) -> Tuple[OrderLocation, bool]:
        """
        Make sure an assignment row exists, inserting it when missing.

        The insert is a single INSERT .. ON CONFLICT DO NOTHING, so two
        writers racing on the same pair end up sharing one row instead of
        tripping the unique constraint. Returns (assignment, created).
        """
        await self.db.flush()
        result = await self.db.execute(
            self._insert_ignoring_duplicates({
                "order_id": order_id,
                "location_id": location_id,
                "status": get_enum_value(status),
                "queue_position": queue_position,
                "completed_quantity": 0,
                "created_at": datetime.now(timezone.utc),
            })
        )
        created = bool(result.rowcount)
        assignment = await self.require(order_id, location_id)
        if created:
            logger.debug(
                f"Created assignment for order {order_id} at location {location_id} ({status.value})"
            )
        return assignment, created

    async def delete(self, assignment: OrderLocation) -> None:
        await self.db.delete(assignment)
        await self.db.flush()
