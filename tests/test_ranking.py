"""Tests for the pure queue ranking rules."""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from shoptracker.services import ranking

T0 = datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)


def order(id, rush=False, rush_at=None, pos=None, created=None):
    return SimpleNamespace(
        id=id,
        rush=rush,
        rush_set_at=T0 + timedelta(seconds=rush_at) if rush_at is not None else None,
        global_queue_position=pos,
        created_at=created or T0 + timedelta(minutes=id),
    )


def entry(assignment_id, queue_position, o):
    return (SimpleNamespace(id=assignment_id, queue_position=queue_position), o)


class TestRankOrders:
    """Global ranking rule."""

    def test_creation_order_without_positions(self):
        """New orders rank by created_at."""
        orders = [order(3), order(1), order(2)]
        assert [o.id for o in ranking.rank_orders(orders)] == [1, 2, 3]

    def test_previous_position_beats_created_at(self):
        orders = [order(1, pos=2), order(2, pos=1)]
        assert [o.id for o in ranking.rank_orders(orders)] == [2, 1]

    def test_unpositioned_orders_go_last(self):
        orders = [order(1), order(2, pos=1), order(3, pos=2)]
        assert [o.id for o in ranking.rank_orders(orders)] == [2, 3, 1]

    def test_rush_precedes_everything(self):
        orders = [order(1, pos=1), order(2, pos=2), order(3, rush=True, rush_at=10, pos=3)]
        assert [o.id for o in ranking.rank_orders(orders)] == [3, 1, 2]

    def test_rush_fifo_by_rush_time(self):
        """Earlier rush_set_at wins regardless of previous position."""
        orders = [
            order(1, pos=3),
            order(2, rush=True, rush_at=5, pos=2),
            order(3, rush=True, rush_at=10, pos=1),
        ]
        assert [o.id for o in ranking.rank_orders(orders)] == [2, 3, 1]

    def test_naive_and_aware_timestamps_compare(self):
        naive = order(1, created=datetime(2026, 1, 1, 7, 0))
        aware = order(2, created=T0)
        assert [o.id for o in ranking.rank_orders([aware, naive])] == [1, 2]

    def test_demoted_order_moves_to_end(self):
        """An order that lost rush re-enters behind every non-rush order."""
        orders = [order(1, pos=1), order(2, pos=2), order(3, pos=3), order(4, rush=True, rush_at=1, pos=1)]
        ranked = ranking.rank_orders(orders, demoted_order_id=1)
        assert [o.id for o in ranked] == [4, 2, 3, 1]

    def test_demoting_rush_order_is_ignored(self):
        orders = [order(1, rush=True, rush_at=1, pos=1), order(2, pos=2)]
        ranked = ranking.rank_orders(orders, demoted_order_id=1)
        assert [o.id for o in ranked] == [1, 2]


class TestRankQueue:
    """Local ranking rule."""

    def test_global_position_orders_queue(self):
        o1, o2 = order(1, pos=2), order(2, pos=1)
        entries = [entry(10, 1, o1), entry(11, 2, o2)]
        assert [e[1].id for e in ranking.rank_queue(entries)] == [2, 1]

    def test_rush_first_in_local_queue(self):
        o1, o2 = order(1, pos=2), order(2, rush=True, rush_at=3, pos=1)
        entries = [entry(10, 1, o1), entry(11, 2, o2)]
        assert [e[1].id for e in ranking.rank_queue(entries)] == [2, 1]

    def test_local_position_breaks_global_tie(self):
        o1, o2 = order(1), order(2)
        entries = [entry(10, 2, o1), entry(11, 1, o2)]
        assert [e[1].id for e in ranking.rank_queue(entries)] == [2, 1]


class TestMoveWithinBucket:
    """Manual moves."""

    def test_non_rush_absolute_position(self):
        items = [order(1, rush=True, rush_at=1), order(2), order(3), order(4)]
        moved = ranking.move_within_bucket(items, items[3], 2 + 1)
        assert [o.id for o in moved] == [1, 2, 4, 3]

    def test_non_rush_clamped_to_end(self):
        items = [order(1), order(2), order(3)]
        moved = ranking.move_within_bucket(items, items[0], 99)
        assert [o.id for o in moved] == [2, 3, 1]

    def test_non_rush_never_enters_rush_block(self):
        items = [order(1, rush=True, rush_at=1), order(2, rush=True, rush_at=2), order(3)]
        moved = ranking.move_within_bucket(items, items[2], 1)
        assert [o.id for o in moved] == [1, 2, 3]

    def test_rush_clamped_to_rush_block(self):
        items = [order(1, rush=True, rush_at=1), order(2, rush=True, rush_at=2), order(3)]
        moved = ranking.move_within_bucket(items, items[0], 10)
        assert [o.id for o in moved] == [2, 1, 3]

    def test_min_allowed_position(self):
        items = [order(1, rush=True, rush_at=1), order(2)]
        assert ranking.rush_block_size(items) == 1
        assert ranking.min_allowed_position(items) == 2
        assert ranking.min_allowed_position([order(1)]) == 1


@pytest.mark.parametrize(
    "positions, expected",
    [
        ([], True),
        ([1, 2, 3], True),
        ([3, 1, 2], True),
        ([1, 3], False),
        ([1, 1, 2], False),
        ([1, None], False),
    ],
)
def test_is_dense(positions, expected):
    assert ranking.is_dense(positions) is expected
