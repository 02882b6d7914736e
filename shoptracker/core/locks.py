"""
In-process locks guarding queue recomputes.

Every queue write is a read-modify-write over many rows, so two tasks
recomputing the same scope must never interleave at an await point.

Scopes:
    location scope - one asyncio.Lock per location id
    shop scope     - the global lock plus every location lock
    ranking scope  - the global lock alone (also taken by location creation)

Acquisition order is always: global lock first, then location locks in
ascending id. Any two callers therefore agree on the order and cannot
deadlock each other.
"""

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, Iterable

logger = logging.getLogger(__name__)


class QueueLocks:
    """Registry of the global lock and the per-location locks."""

    def __init__(self):
        self._global = asyncio.Lock()
        self._locations: Dict[int, asyncio.Lock] = {}

    def for_location(self, location_id: int) -> asyncio.Lock:
        lock = self._locations.get(location_id)
        if lock is None:
            lock = self._locations.setdefault(location_id, asyncio.Lock())
        return lock

    @property
    def global_lock(self) -> asyncio.Lock:
        return self._global

    @asynccontextmanager
    async def locations(self, location_ids: Iterable[int]) -> AsyncIterator[None]:
        """Hold the locks of the given locations (duplicates and None ignored)."""
        ordered = sorted({lid for lid in location_ids if lid is not None})
        async with AsyncExitStack() as stack:
            for location_id in ordered:
                await stack.enter_async_context(self.for_location(location_id))
            yield

    @asynccontextmanager
    async def ranking(self) -> AsyncIterator[None]:
        """Hold only the global lock (global ranking reads and order creation)."""
        async with self._global:
            yield

    @asynccontextmanager
    async def shop(
        self, load_location_ids: Callable[[], Awaitable[Iterable[int]]]
    ) -> AsyncIterator[None]:
        """
        Hold the global lock and then every location lock.

        Location ids are loaded once the global lock is held; creating a
        location also takes the global lock, so the set cannot grow
        underneath a shop-wide writer.
        """
        async with self._global:
            location_ids = await load_location_ids()
            async with self.locations(location_ids):
                logger.debug("Acquired shop-wide queue lock")
                yield


# Process-wide registry shared by all services
queue_locks = QueueLocks()
