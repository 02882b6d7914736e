"""Tests for the global queue."""
from datetime import datetime, timedelta, timezone

import pytest

from shoptracker.core.exceptions import NotFoundError, QueueValidationError
from shoptracker.services import ranking
from shoptracker.services.audit_service import AuditService
from shoptracker.services.global_queue_service import GlobalQueueService
from shoptracker.services.order_service import OrderService

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def service(db, locks):
    return GlobalQueueService(db, locks=locks)


async def numbers(service):
    return [o.order_number for o in await service.get_ranking()]


class TestRanking:

    async def test_creation_order(self, service, shop, make_order):
        """Three plain orders keep creation order with positions 1..3."""
        for n in ("O1", "O2", "O3"):
            await make_order(n)

        ranked = await service.get_ranking()
        assert [o.order_number for o in ranked] == ["O1", "O2", "O3"]
        assert [o.global_queue_position for o in ranked] == [1, 2, 3]

    async def test_rush_fifo(self, service, shop, make_order):
        """Marking O3 then O2 rush, O2 with the earlier time, ranks O2, O3, O1."""
        o1, o2, o3 = [await make_order(n) for n in ("O1", "O2", "O3")]

        await service.set_rush(o3.id, now=T0 + timedelta(seconds=10))
        assert await numbers(service) == ["O3", "O1", "O2"]

        await service.set_rush(o2.id, now=T0 + timedelta(seconds=5))
        assert await numbers(service) == ["O2", "O3", "O1"]
        assert [o.global_queue_position for o in (o2, o3, o1)] == [1, 2, 3]

    async def test_set_rush_twice_keeps_first_time(self, service, shop, make_order):
        o1 = await make_order("O1")
        await service.set_rush(o1.id, now=T0)
        await service.set_rush(o1.id, now=T0 + timedelta(hours=1))
        assert o1.rush_set_at == T0

    async def test_unset_rush_goes_to_end(self, service, shop, make_order):
        o1, o2, o3 = [await make_order(n) for n in ("O1", "O2", "O3")]
        await service.set_rush(o1.id, now=T0)
        assert await numbers(service) == ["O1", "O2", "O3"]

        await service.unset_rush(o1.id)
        assert await numbers(service) == ["O2", "O3", "O1"]
        assert o1.rush_set_at is None

    async def test_rush_is_audited(self, db, service, shop, make_order):
        o1 = await make_order("O1")
        await service.set_rush(o1.id, now=T0, actor_id=7)
        await service.unset_rush(o1.id, actor_id=7)

        actions = [e.action for e in await AuditService(db).get_for_order(o1.id)]
        assert "rush" in actions
        assert "unrush" in actions

    async def test_set_rush_unknown_order(self, service, shop):
        with pytest.raises(NotFoundError):
            await service.set_rush(999)

    async def test_shipped_order_leaves_queue(self, db, locks, service, shop, make_order):
        o1, o2, o3 = [await make_order(n) for n in ("O1", "O2", "O3")]
        await OrderService(db, locks=locks).ship_order(o2.id, o2.total_quantity)

        ranked = await service.get_ranking()
        assert [o.order_number for o in ranked] == ["O1", "O3"]
        assert ranking.is_dense([o.global_queue_position for o in ranked])
        assert o2.global_queue_position is None


class TestSetGlobalPosition:

    async def test_move_non_rush(self, service, shop, make_order):
        orders = [await make_order(n) for n in ("O1", "O2", "O3", "O4")]
        await service.set_global_position(orders[3].id, 2)

        assert await numbers(service) == ["O1", "O4", "O2", "O3"]
        assert ranking.is_dense([o.global_queue_position for o in orders])

    async def test_manual_position_survives_recompute(self, service, shop, make_order):
        orders = [await make_order(n) for n in ("O1", "O2", "O3")]
        await service.set_global_position(orders[2].id, 1)
        await service.recompute()
        assert await numbers(service) == ["O3", "O1", "O2"]

    async def test_non_rush_above_rush_rejected(self, service, shop, make_order):
        o1, o2, o3 = [await make_order(n) for n in ("O1", "O2", "O3")]
        await service.set_rush(o1.id, now=T0)

        with pytest.raises(QueueValidationError) as exc_info:
            await service.set_global_position(o3.id, 1)

        assert exc_info.value.min_allowed_position == 2
        assert await numbers(service) == ["O1", "O2", "O3"]

    async def test_position_past_end_is_clamped(self, service, shop, make_order):
        o1, o2 = [await make_order(n) for n in ("O1", "O2")]
        await service.set_global_position(o1.id, 50)
        assert await numbers(service) == ["O2", "O1"]
        assert o1.global_queue_position == 2

    async def test_position_below_one_rejected(self, service, shop, make_order):
        o1 = await make_order("O1")
        with pytest.raises(QueueValidationError):
            await service.set_global_position(o1.id, 0)

    async def test_unknown_order(self, service, shop):
        with pytest.raises(NotFoundError):
            await service.set_global_position(12345, 1)
