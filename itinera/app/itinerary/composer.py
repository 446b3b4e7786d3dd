"""Itinerary composer - ordering logic over itinerary items.

Every function here is pure: it returns a new ``Itinerary`` (or a new
collection) and never mutates its inputs. Items live in day buckets; the
unscheduled items (``day is None``) form one more bucket. After every
mutating call the ``order`` values inside each bucket are exactly
``0..n-1``.
"""

import uuid
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from itinera.app.errors import InvalidState, NotFound
from itinera.app.models.common import ends_after_start
from itinera.app.models.itinerary import (
    UNASSIGNED_DAY_KEY,
    Itinerary,
    ItineraryItem,
    ReorderMove,
    Stop,
)

UPDATABLE_ITEM_FIELDS = frozenset({"start_time", "end_time", "notes"})


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _item_sort_key(item: ItineraryItem) -> tuple[bool, int, int, str]:
    # Scheduled days ascending, unscheduled bucket last.
    return (item.day is None, item.day or 0, item.order, str(item.id))


def _bucket(items: Iterable[ItineraryItem], day: int | None) -> list[ItineraryItem]:
    """Items of one day bucket, in their current order."""
    return sorted((i for i in items if i.day == day), key=lambda i: (i.order, str(i.id)))


def _renumber(bucket: Sequence[ItineraryItem], now: datetime) -> list[ItineraryItem]:
    """Assign orders 0..n-1 following the bucket's sequence."""
    result: list[ItineraryItem] = []
    for position, item in enumerate(bucket):
        if item.order != position:
            item = item.model_copy(update={"order": position, "updated_at": now})
        result.append(item)
    return result


def _replace_buckets(
    items: Iterable[ItineraryItem], buckets: Mapping[int | None, list[ItineraryItem]]
) -> list[ItineraryItem]:
    kept = [i for i in items if i.day not in buckets]
    for bucket in buckets.values():
        kept.extend(bucket)
    return sorted(kept, key=_item_sort_key)


def _with_items(itinerary: Itinerary, items: list[ItineraryItem], now: datetime) -> Itinerary:
    return itinerary.model_copy(update={"items": items, "updated_at": now})


def _find_item(itinerary: Itinerary, item_id: uuid.UUID) -> ItineraryItem:
    for item in itinerary.items:
        if item.id == item_id:
            return item
    raise NotFound(f"Itinerary item {item_id} not found")


def day_key(day: int | None) -> str:
    """Grouping key for a day: its number, or the unassigned bucket."""
    return UNASSIGNED_DAY_KEY if day is None else str(day)


def _day_key_sort(key: str) -> tuple[int, int, str]:
    if key.isdigit():
        return (0, int(key), "")
    return (1, 0, key)


def add_stop(
    itinerary: Itinerary,
    stop: Stop,
    day: int | None,
    desired_order: int | None = None,
    *,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    notes: str | None = None,
    item_id: uuid.UUID | None = None,
    now: datetime | None = None,
) -> Itinerary:
    """Schedule ``stop`` on ``day``.

    Without ``desired_order`` the item is appended to the day. Otherwise the
    items at or after that position shift up by one, keeping their relative
    order, and the new item takes the position. A position past the end of
    the day is treated as an append.

    Raises:
        InvalidState: Negative day/order or end_time before start_time
    """
    if day is not None and day < 0:
        raise InvalidState(f"Day must be >= 0, got {day}")
    if desired_order is not None and desired_order < 0:
        raise InvalidState(f"Order must be >= 0, got {desired_order}")
    if not ends_after_start(start_time, end_time):
        raise InvalidState("end_time must be >= start_time")

    now = now or _now()
    bucket = _bucket(itinerary.items, day)
    position = len(bucket) if desired_order is None else min(desired_order, len(bucket))

    new_item = ItineraryItem(
        id=item_id or uuid.uuid4(),
        day=day,
        order=position,
        stop=stop,
        start_time=start_time,
        end_time=end_time,
        notes=notes,
        created_at=now,
        updated_at=now,
    )
    bucket.insert(position, new_item)

    items = _replace_buckets(itinerary.items, {day: _renumber(bucket, now)})
    return _with_items(itinerary, items, now)


def remove_stop(
    itinerary: Itinerary, item_id: uuid.UUID, *, now: datetime | None = None
) -> Itinerary:
    """Remove an item and compact its day to orders 0..n-1.

    Raises:
        NotFound: No item with ``item_id``
    """
    target = _find_item(itinerary, item_id)
    now = now or _now()

    bucket = [i for i in _bucket(itinerary.items, target.day) if i.id != item_id]
    remaining = [i for i in itinerary.items if i.id != item_id]

    items = _replace_buckets(remaining, {target.day: _renumber(bucket, now)})
    return _with_items(itinerary, items, now)


def reorder_items(
    itinerary: Itinerary, moves: Sequence[ReorderMove], *, now: datetime | None = None
) -> Itinerary:
    """Move items to explicit (day, order) positions.

    Moved items land exactly on their target positions in the resulting day;
    the items that were not moved fill the remaining positions in their
    previous relative order.

    Raises:
        NotFound: A move references an unknown item
        InvalidState: An item is moved twice, two moves share a target, or a
            target lies past the end of the resulting day
    """
    by_id = {item.id: item for item in itinerary.items}
    moved_ids: set[uuid.UUID] = set()
    targets: set[tuple[int | None, int]] = set()

    for move in moves:
        if move.item_id not in by_id:
            raise NotFound(f"Itinerary item {move.item_id} not found")
        if move.item_id in moved_ids:
            raise InvalidState(f"Item {move.item_id} is moved more than once")
        if (move.day, move.order) in targets:
            raise InvalidState(
                f"More than one item targets day {day_key(move.day)} order {move.order}"
            )
        moved_ids.add(move.item_id)
        targets.add((move.day, move.order))

    now = now or _now()
    affected_days = {by_id[m.item_id].day for m in moves} | {m.day for m in moves}
    buckets: dict[int | None, list[ItineraryItem]] = {}

    for day in affected_days:
        remaining = iter([i for i in _bucket(itinerary.items, day) if i.id not in moved_ids])
        incoming = [m for m in moves if m.day == day]
        size = len(_bucket(itinerary.items, day)) - sum(
            1 for m in moves if by_id[m.item_id].day == day
        ) + len(incoming)

        slots: list[ItineraryItem | None] = [None] * size
        for move in incoming:
            if move.order >= size:
                raise InvalidState(
                    f"Order {move.order} is past the end of day {day_key(day)} "
                    f"({size} item(s) after the move)"
                )
            item = by_id[move.item_id]
            if item.day != day:
                item = item.model_copy(update={"day": day, "updated_at": now})
            slots[move.order] = item

        bucket = [slot if slot is not None else next(remaining) for slot in slots]
        buckets[day] = _renumber(bucket, now)

    items = _replace_buckets(itinerary.items, buckets)
    return _with_items(itinerary, items, now)


def update_item(
    itinerary: Itinerary,
    item_id: uuid.UUID,
    changes: Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> Itinerary:
    """Apply notes/time changes to one item. Day and order go through reorder.

    Raises:
        NotFound: No item with ``item_id``
        InvalidState: Unsupported field or end_time before start_time
    """
    target = _find_item(itinerary, item_id)

    unsupported = set(changes) - UPDATABLE_ITEM_FIELDS
    if unsupported:
        raise InvalidState(f"Cannot update field(s): {', '.join(sorted(unsupported))}")

    now = now or _now()
    updated = target.model_copy(update={**changes, "updated_at": now})
    if not ends_after_start(updated.start_time, updated.end_time):
        raise InvalidState("end_time must be >= start_time")

    items = [updated if i.id == item_id else i for i in itinerary.items]
    return _with_items(itinerary, items, now)


def normalize_items(
    items: Iterable[ItineraryItem], *, now: datetime | None = None
) -> list[ItineraryItem]:
    """Compact every bucket to orders 0..n-1.

    Ties on order are broken by creation time, then id.
    """
    now = now or _now()
    grouped: dict[int | None, list[ItineraryItem]] = defaultdict(list)
    for item in items:
        grouped[item.day].append(item)

    result: list[ItineraryItem] = []
    for bucket in grouped.values():
        bucket.sort(key=lambda i: (i.order, i.created_at, str(i.id)))
        result.extend(_renumber(bucket, now))
    return sorted(result, key=_item_sort_key)


def group_by_day(items: Iterable[ItineraryItem]) -> dict[str, list[ItineraryItem]]:
    """Group items by day key.

    Keys come out ordered by day number, with non-numeric keys (the
    unassigned bucket) last in lexicographic order. Items within a key are
    sorted by order, then id, so the result does not depend on input order.
    """
    groups: dict[str, list[ItineraryItem]] = defaultdict(list)
    for item in items:
        groups[day_key(item.day)].append(item)

    return {
        key: sorted(groups[key], key=lambda i: (i.order, str(i.id)))
        for key in sorted(groups, key=_day_key_sort)
    }


def filter_by_keyword(
    items: Sequence[ItineraryItem], keyword: str | None
) -> list[ItineraryItem]:
    """Keep items whose display name or city contains ``keyword``.

    Matching is case-insensitive and keeps the input order. A blank keyword
    returns all items.
    """
    needle = (keyword or "").strip().lower()
    if not needle:
        return list(items)

    return [
        item
        for item in items
        if needle in item.display_name.lower() or needle in item.city.lower()
    ]


def day_cost_total(items: Iterable[ItineraryItem]) -> float:
    """Sum of the estimated stop costs for a set of items."""
    return sum(item.stop.estimated_cost or 0.0 for item in items)
