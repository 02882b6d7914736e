from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shoptracker.core.exceptions import NotFoundError
from shoptracker.core.locks import QueueLocks, queue_locks
from shoptracker.database import transaction
from shoptracker.models.location import Location
from shoptracker.schemas.location import LocationCreate

logger = logging.getLogger(__name__)


class LocationService:
    """
    Location sequence lookups.

    Locations are ordered by used_order; the scheduler only ever reads them
    to find the next station after a given one.
    """

    def __init__(self, db: AsyncSession, locks: Optional[QueueLocks] = None):
        self.db = db
        self.locks = locks or queue_locks

    async def get_location(self, location_id: int) -> Optional[Location]:
        result = await self.db.execute(
            select(Location).where(Location.id == location_id)
        )
        return result.scalar_one_or_none()

    async def require_location(self, location_id: int) -> Location:
        location = await self.get_location(location_id)
        if location is None:
            raise NotFoundError(
                f"Location with id {location_id} not found", "location", location_id
            )
        return location

    async def list_locations(self) -> List[Location]:
        """All locations in sequence order."""
        result = await self.db.execute(
            select(Location).order_by(Location.used_order.asc(), Location.id.asc())
        )
        return list(result.scalars().all())

    async def list_location_ids(self) -> List[int]:
        result = await self.db.execute(select(Location.id).order_by(Location.id.asc()))
        return [row[0] for row in result.all()]

    async def next_location(self, location_id: int) -> Optional[Location]:
        """
        The location with the smallest used_order strictly greater than the
        given location's, or None when it is the last station.
        """
        current = await self.require_location(location_id)
        result = await self.db.execute(
            select(Location)
            .where(Location.used_order > current.used_order)
            .order_by(Location.used_order.asc(), Location.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_location(self, data: LocationCreate) -> Location:
        """
        Create a location. Duplicate names raise ConstraintError.

        Waits for any shop-wide writer, which holds the global lock.
        """
        async with self.locks.ranking():
            async with transaction(self.db):
                location = Location(
                    name=data.name,
                    used_order=data.used_order,
                    is_primary=data.is_primary,
                    skip_auto_queue=data.skip_auto_queue,
                    count_multiplier=data.count_multiplier,
                    no_count=data.no_count,
                )
                self.db.add(location)
                await self.db.flush()
        logger.info(f"Created location '{location.name}' (used_order={location.used_order})")
        return location
