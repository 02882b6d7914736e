"""
Queue ranking rules.

Pure functions over orders and assignments. Nothing here touches the
database: services load rows, call these functions to decide the new order,
and then persist positions 1..N. That keeps the ordering invariants
checkable without a store.

Global rule (all non-shipped orders):
    1. rush before non-rush
    2. rush orders by ascending rush_set_at
    3. previous global_queue_position ascending (None sorts last)
    4. created_at ascending, then id

Local rule (in_queue assignments at one location):
    1. rush before non-rush
    2. rush orders by ascending rush_set_at
    3. order global_queue_position ascending (None sorts last)
    4. previous local queue_position ascending (None sorts last)
    5. order created_at ascending, then assignment id
"""

from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple, TypeVar

INFINITY = float("inf")

T = TypeVar("T")


def _timestamp(value: Optional[datetime]) -> float:
    """Comparable seconds for a datetime; naive values are read as UTC."""
    if value is None:
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _position(value: Optional[int]) -> float:
    return INFINITY if value is None else value


def global_sort_key(order: Any) -> Tuple:
    rush_bucket = 0 if order.rush else 1
    rush_time = _timestamp(order.rush_set_at) if order.rush else 0.0
    return (
        rush_bucket,
        rush_time,
        _position(order.global_queue_position),
        _timestamp(order.created_at),
        order.id or 0,
    )


def local_sort_key(entry: Tuple[Any, Any]) -> Tuple:
    assignment, order = entry
    rush_bucket = 0 if order.rush else 1
    rush_time = _timestamp(order.rush_set_at) if order.rush else 0.0
    return (
        rush_bucket,
        rush_time,
        _position(order.global_queue_position),
        _position(assignment.queue_position),
        _timestamp(order.created_at),
        assignment.id or 0,
    )


def rank_orders(orders: Sequence[T], demoted_order_id: Optional[int] = None) -> List[T]:
    """
    Rank active orders by the global rule.

    demoted_order_id moves that order to the end of the non-rush bucket,
    which is how an order re-enters the normal queue after losing rush.
    """
    ranked = sorted(orders, key=global_sort_key)
    if demoted_order_id is not None:
        for index, order in enumerate(ranked):
            if order.id == demoted_order_id and not order.rush:
                ranked.append(ranked.pop(index))
                break
    return ranked


def rank_queue(entries: Sequence[Tuple[Any, Any]]) -> List[Tuple[Any, Any]]:
    """Rank (assignment, order) pairs of one location by the local rule."""
    return sorted(entries, key=local_sort_key)


def rush_block_size(items: Sequence[Any], is_rush=lambda item: item.rush) -> int:
    """
    Index just past the last rush item (0 when there is none).

    Items are expected in rank order, so this is also the number of
    positions a non-rush item can never occupy.
    """
    last = -1
    for index, item in enumerate(items):
        if is_rush(item):
            last = index
    return last + 1


def min_allowed_position(items: Sequence[Any], is_rush=lambda item: item.rush) -> int:
    """Smallest 1-based position a non-rush item may be moved to."""
    return rush_block_size(items, is_rush) + 1


def move_within_bucket(
    ranked: Sequence[T],
    target: T,
    position: int,
    is_rush=lambda item: item.rush,
) -> List[T]:
    """
    Move target to an absolute 1-based position without leaving its bucket.

    The rush and non-rush buckets keep their relative order. A rush target
    is clamped to [1, rush_count]; a non-rush target has the rush count
    subtracted from the requested position and is clamped to
    [1, normal_count].
    """
    rush_items = [item for item in ranked if is_rush(item) and item is not target]
    normal_items = [item for item in ranked if not is_rush(item) and item is not target]

    if is_rush(target):
        index = max(1, min(position, len(rush_items) + 1))
        rush_items.insert(index - 1, target)
    else:
        relative = max(1, position - len(rush_items))
        index = min(relative, len(normal_items) + 1)
        normal_items.insert(index - 1, target)

    return rush_items + normal_items


def is_dense(positions: Sequence[Optional[int]]) -> bool:
    """True when positions are exactly 1..N with no gaps or duplicates."""
    if any(p is None for p in positions):
        return False
    return sorted(positions) == list(range(1, len(positions) + 1))
