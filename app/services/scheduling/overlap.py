# app/services/scheduling/overlap.py
"""
The one overlap predicate. Bookings, breaks and cross-order market checks
all go through ranges_overlap so the semantics cannot drift.
"""
from typing import Any, Iterable, List, Tuple, TypeVar

from app.services.scheduling.time_utils import TimeRange, to_minutes

T = TypeVar("T")


def ranges_overlap(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Half-open ranges: [09:00, 10:00) and [10:00, 11:00) do not overlap"""
    return to_minutes(start_a) < to_minutes(end_b) and to_minutes(end_a) > to_minutes(start_b)


def range_of(item: Any) -> Tuple[str, str]:
    """Bounds of a TimeRange, a {start, end} dict, or a booking-like object"""
    if isinstance(item, TimeRange):
        return item.start, item.end
    if isinstance(item, dict):
        return item["start"], item["end"]
    return item.start_time, item.end_time


def find_overlapping(start: str, end: str, items: Iterable[T]) -> List[T]:
    overlapping = []
    for item in items:
        item_start, item_end = range_of(item)
        if ranges_overlap(start, end, item_start, item_end):
            overlapping.append(item)
    return overlapping


def has_overlap(start: str, end: str, items: Iterable[Any]) -> bool:
    return len(find_overlapping(start, end, items)) > 0
