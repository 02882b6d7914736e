"""Tests for starting, pausing and finishing work."""
import pytest
from sqlalchemy import select, func

from shoptracker.core.exceptions import NotFoundError, QueueValidationError
from shoptracker.models.audit_log import AuditTrail
from shoptracker.models.order import Order
from shoptracker.models.order_location import OrderLocation, AssignmentStatus
from shoptracker.schemas.location import LocationCreate
from shoptracker.services import ranking
from shoptracker.services.advancement_service import AdvancementService
from shoptracker.services.local_queue_service import LocalQueueService
from shoptracker.services.location_service import LocationService
from shoptracker.services.order_service import OrderService


@pytest.fixture
def service(db, locks):
    return AdvancementService(db, locks=locks)


@pytest.fixture
async def two_stations(db):
    service = LocationService(db)
    return (
        await service.create_location(LocationCreate(name="Lathe", used_order=1)),
        await service.create_location(LocationCreate(name="Deburr", used_order=2)),
    )


async def count_assignments(db, order_id, location_id):
    result = await db.execute(
        select(func.count(OrderLocation.id)).where(
            OrderLocation.order_id == order_id,
            OrderLocation.location_id == location_id,
        )
    )
    return result.scalar()


async def count_audit(db, order_id, action):
    result = await db.execute(
        select(func.count(AuditTrail.id)).where(
            AuditTrail.order_id == order_id,
            AuditTrail.action == action,
        )
    )
    return result.scalar()


class TestFinish:

    async def test_finish_creates_next_assignment_once(self, db, service, two_stations, make_order):
        """Finishing at L1 queues the order at L2; a second finish changes nothing."""
        l1, l2 = two_stations
        o = await make_order("O1", location_ids=[l1.id])

        first = await service.finish(o.id, l1.id, 10)
        completed_at = first.completed_at
        downstream = await service.store.get(o.id, l2.id)
        assert downstream.status == AssignmentStatus.IN_QUEUE.value
        assert downstream.queue_position == 1

        again = await service.finish(o.id, l1.id, 3)
        assert again.status == AssignmentStatus.DONE.value
        assert again.completed_quantity == 10
        assert again.completed_at == completed_at
        assert await count_assignments(db, o.id, l2.id) == 1
        assert await count_audit(db, o.id, "finished") == 1

    async def test_finish_records_quantity(self, service, two_stations, make_order):
        l1, _ = two_stations
        o = await make_order("O1", location_ids=[l1.id])

        assignment = await service.finish(o.id, l1.id, 8)

        assert assignment.completed_quantity == 8
        assert assignment.completed_at is not None
        assert assignment.queue_position is None

    async def test_finish_negative_quantity_rejected(self, service, two_stations, make_order):
        l1, _ = two_stations
        o = await make_order("O1", location_ids=[l1.id])
        with pytest.raises(QueueValidationError):
            await service.finish(o.id, l1.id, -1)

    async def test_finish_missing_assignment(self, service, two_stations, make_order):
        l1, l2 = two_stations
        o = await make_order("O1", location_ids=[l1.id])
        with pytest.raises(NotFoundError):
            await service.finish(o.id, l2.id, 1)

    async def test_last_finish_marks_order_finished(self, service, shop, make_order):
        o = await make_order("O1")
        for location in shop:
            await service.finish(o.id, location.id, 10)
            assert o.is_finished is (location is shop[-1])

    async def test_completion_is_never_reverted(self, db, locks, service, shop, make_order):
        """A station added after completion leaves the order finished."""
        o = await make_order("O1")
        for location in shop:
            await service.finish(o.id, location.id, 10)
        assert o.is_finished

        assembly = await LocationService(db).create_location(
            LocationCreate(name="Assembly", used_order=40)
        )
        await OrderService(db, locks=locks).attach_location(o.id, assembly.id)
        assert o.is_finished
        assert await service.check_completion(o.id) is False
        assert o.is_finished

    async def test_finish_removes_from_queue_and_keeps_dense(self, db, locks, service, shop, make_order):
        cutting = shop[0]
        orders = [await make_order(n) for n in ("O1", "O2", "O3")]
        local = LocalQueueService(db, locks=locks)
        await local.get_location_queue(cutting.id)

        await service.finish(orders[0].id, cutting.id, 10)

        entries = await local.get_location_queue(cutting.id)
        assert [order.order_number for _, order in entries] == ["O2", "O3"]
        assert ranking.is_dense([a.queue_position for a, _ in entries])


class TestStart:

    async def test_start_queues_next_location(self, db, locks, service, shop, make_order):
        cutting, welding, _ = shop
        o = await make_order("O1")

        assignment = await service.start(o.id, cutting.id, actor_id=2)

        assert assignment.status == AssignmentStatus.IN_PROGRESS.value
        assert assignment.queue_position is None
        assert assignment.started_at is not None
        downstream = await service.store.get(o.id, welding.id)
        assert downstream.status == AssignmentStatus.IN_QUEUE.value
        assert downstream.queue_position == 1

    async def test_started_downstream_is_left_alone(self, service, shop, make_order):
        cutting, welding, _ = shop
        o = await make_order("O1")
        await service.start(o.id, welding.id)

        await service.start(o.id, cutting.id)

        downstream = await service.store.get(o.id, welding.id)
        assert downstream.status == AssignmentStatus.IN_PROGRESS.value

    async def test_start_at_last_location(self, service, shop, make_order):
        paint = shop[2]
        o = await make_order("O1")
        assignment = await service.start(o.id, paint.id)
        assert assignment.status == AssignmentStatus.IN_PROGRESS.value

    async def test_resume_keeps_first_start_time(self, service, shop, make_order):
        cutting = shop[0]
        o = await make_order("O1")
        first = await service.start(o.id, cutting.id)
        started_at = first.started_at

        await service.pause(o.id, cutting.id)
        resumed = await service.start(o.id, cutting.id)

        assert resumed.status == AssignmentStatus.IN_PROGRESS.value
        assert resumed.started_at == started_at

    async def test_start_on_done_rejected(self, db, service, two_stations, make_order):
        """Done is terminal: start is refused and a later finish is still a no-op."""
        _, last = two_stations
        o = await make_order("O1", location_ids=[last.id])
        order_id, last_id = o.id, last.id
        await service.finish(order_id, last_id, 10)

        with pytest.raises(QueueValidationError):
            await service.start(order_id, last_id)

        # the rejected start rolled back and expired the session, reload by id
        assignment = await service.store.get(order_id, last_id)
        assert assignment.status == AssignmentStatus.DONE.value
        order = (await db.execute(select(Order).where(Order.id == order_id))).scalar_one()
        assert order.is_finished

        await service.finish(order_id, last_id, 3)
        assert assignment.completed_quantity == 10
        assert await count_audit(db, order_id, "finished") == 1


class TestPause:

    async def test_pause_in_progress(self, service, shop, make_order):
        cutting = shop[0]
        o = await make_order("O1")
        await service.start(o.id, cutting.id)

        paused = await service.pause(o.id, cutting.id)
        assert paused.status == AssignmentStatus.PAUSED.value

        again = await service.pause(o.id, cutting.id)
        assert again.status == AssignmentStatus.PAUSED.value

    async def test_pause_not_started_rejected(self, service, shop, make_order):
        cutting = shop[0]
        o = await make_order("O1")
        with pytest.raises(QueueValidationError):
            await service.pause(o.id, cutting.id)


class TestUpdateQuantity:

    async def test_update_quantity(self, service, shop, make_order):
        cutting = shop[0]
        o = await make_order("O1")
        assignment = await service.update_quantity(o.id, cutting.id, 4)
        assert assignment.completed_quantity == 4
        assert assignment.status == AssignmentStatus.NOT_STARTED.value

    async def test_negative_quantity_rejected(self, service, shop, make_order):
        cutting = shop[0]
        o = await make_order("O1")
        with pytest.raises(QueueValidationError):
            await service.update_quantity(o.id, cutting.id, -3)
