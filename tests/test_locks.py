"""Tests for the queue lock registry."""
import asyncio

from shoptracker.core.locks import QueueLocks
from shoptracker.schemas.location import LocationCreate
from shoptracker.services.location_service import LocationService


def ids_loader(ids):
    async def load():
        return ids
    return load


class TestQueueLocks:

    async def test_same_location_returns_same_lock(self):
        locks = QueueLocks()
        assert locks.for_location(1) is locks.for_location(1)
        assert locks.for_location(1) is not locks.for_location(2)

    async def test_locations_holds_every_lock(self):
        locks = QueueLocks()
        async with locks.locations([3, 1, None, 3]):
            assert locks.for_location(1).locked()
            assert locks.for_location(3).locked()
            assert not locks.global_lock.locked()
        assert not locks.for_location(1).locked()
        assert not locks.for_location(3).locked()

    async def test_shop_takes_global_then_locations(self):
        locks = QueueLocks()
        async with locks.shop(ids_loader([1, 2])):
            assert locks.global_lock.locked()
            assert locks.for_location(1).locked()
            assert locks.for_location(2).locked()
        assert not locks.global_lock.locked()

    async def test_shop_loads_location_ids_under_global_lock(self):
        locks = QueueLocks()
        seen = []

        async def load_ids():
            seen.append(locks.global_lock.locked())
            return [2, 1]

        async with locks.shop(load_ids):
            assert locks.for_location(1).locked()
            assert locks.for_location(2).locked()
        assert seen == [True]

    async def test_location_writers_are_serialized(self):
        """Two tasks on one location never overlap inside the lock."""
        locks = QueueLocks()
        inside = 0
        overlaps = []

        async def writer():
            nonlocal inside
            async with locks.locations([7]):
                inside += 1
                overlaps.append(inside)
                await asyncio.sleep(0)
                inside -= 1

        await asyncio.gather(*(writer() for _ in range(5)))
        assert overlaps == [1, 1, 1, 1, 1]

    async def test_overlapping_scopes_do_not_deadlock(self):
        """Opposite request orders still acquire in ascending id order."""
        locks = QueueLocks()
        done = []

        async def worker(ids, name):
            async with locks.locations(ids):
                await asyncio.sleep(0)
                done.append(name)

        await asyncio.wait_for(
            asyncio.gather(worker([1, 2], "a"), worker([2, 1], "b"), worker([2], "c")),
            timeout=1,
        )
        assert sorted(done) == ["a", "b", "c"]

    async def test_ranking_blocks_shop(self):
        locks = QueueLocks()
        order = []

        async def reader():
            async with locks.ranking():
                order.append("ranking-in")
                await asyncio.sleep(0)
                order.append("ranking-out")

        async def writer():
            await asyncio.sleep(0)
            async with locks.shop(ids_loader([1])):
                order.append("shop")

        await asyncio.gather(reader(), writer())
        assert order == ["ranking-in", "ranking-out", "shop"]


class TestLocationCreation:

    async def test_create_location_waits_for_shop_writer(self, db, locks):
        """A location cannot appear while a shop-wide writer holds its lock set."""
        service = LocationService(db, locks=locks)
        events = []

        async def shop_writer():
            async with locks.shop(service.list_location_ids):
                events.append("shop-in")
                await asyncio.sleep(0)
                await asyncio.sleep(0)
                events.append("shop-out")

        async def creator():
            await asyncio.sleep(0)
            await service.create_location(LocationCreate(name="Press", used_order=5))
            events.append("created")

        await asyncio.gather(shop_writer(), creator())
        assert events == ["shop-in", "shop-out", "created"]
