from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shoptracker.models.audit_log import AuditTrail


class AuditService:
    """
    Audit service for recording order activity.

    Entries are added to the caller's session and committed together with
    the queue change they describe.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: str,
        order_id: int,
        user_id: Optional[int] = None,
        location_id: Optional[int] = None,
        details: Optional[str] = None,
    ) -> AuditTrail:
        """
        Create an audit trail entry.

        Args:
            action: The action performed (started, finished, rush, etc.)
            order_id: Order the action applies to
            user_id: ID of the user performing the action
            location_id: Location the action happened at, if any
            details: Human-readable description

        Returns:
            The created AuditTrail entry
        """
        entry = AuditTrail(
            action=action,
            order_id=order_id,
            user_id=user_id,
            location_id=location_id,
            details=details,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def get_for_order(self, order_id: int) -> List[AuditTrail]:
        """Audit entries for one order, newest first."""
        result = await self.db.execute(
            select(AuditTrail)
            .where(AuditTrail.order_id == order_id)
            .order_by(AuditTrail.created_at.desc(), AuditTrail.id.desc())
        )
        return list(result.scalars().all())

    async def get_recent(self, limit: int = 100, offset: int = 0) -> List[AuditTrail]:
        """Most recent audit entries across all orders."""
        result = await self.db.execute(
            select(AuditTrail)
            .order_by(AuditTrail.created_at.desc(), AuditTrail.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())
