# app/services/scheduling/capacity.py
"""
Resource booking modes as a small tagged variant.

select and auto only differ in how the specialist is shown to the client;
both admit exactly one booking per overlapping range. multi admits up to
required_resource_count overlapping bookings. Counting always goes through
the overlap predicate: two disjoint bookings on the same day never share a
capacity slot.
"""
import enum
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from app.core.exceptions import (
    BookingConflictError,
    CapacityConfigurationError,
    CapacityExceededError,
)
from app.services.scheduling.lifecycle import BookingStatus
from app.services.scheduling.overlap import find_overlapping


class BookingMode(str, enum.Enum):
    SELECT = "select"  # client picks one specific specialist
    AUTO = "auto"      # any one specialist
    MULTI = "multi"    # N specialists at once


class CapacityPolicy(ABC):
    mode: BookingMode

    @property
    @abstractmethod
    def max_concurrent(self) -> int:
        ...

    @staticmethod
    def _live(existing: Iterable[Any]) -> List[Any]:
        return [b for b in existing if getattr(b, "status", None) != BookingStatus.CANCELLED.value]

    def overlapping(self, start: str, end: str, existing: Iterable[Any]) -> List[Any]:
        return find_overlapping(start, end, self._live(existing))

    @abstractmethod
    def ensure_admissible(self, start: str, end: str, existing: Iterable[Any]) -> None:
        """Raise a conflict error when the candidate range does not fit"""

    def is_admissible(self, start: str, end: str, existing: Iterable[Any]) -> bool:
        try:
            self.ensure_admissible(start, end, existing)
        except BookingConflictError:
            return False
        return True

    def day_capacity(self, day_bookings: List[Any]) -> Optional[Dict[str, int]]:
        """Capacity summary shown with available slots; None when not meaningful"""
        return None


class ExclusivePolicy(CapacityPolicy):
    """select / auto: strict mutual exclusion"""

    def __init__(self, mode: BookingMode = BookingMode.SELECT):
        self.mode = mode

    @property
    def max_concurrent(self) -> int:
        return 1

    def ensure_admissible(self, start, end, existing):
        if self.overlapping(start, end, existing):
            raise BookingConflictError("Time range conflicts with an existing booking")


class MultiResourcePolicy(CapacityPolicy):
    mode = BookingMode.MULTI

    def __init__(self, required_resource_count: Optional[int]):
        if not required_resource_count or required_resource_count <= 0:
            raise CapacityConfigurationError(
                "Multi-resource booking requires a positive required resource count"
            )
        self.required_resource_count = required_resource_count

    @property
    def max_concurrent(self) -> int:
        return self.required_resource_count

    def ensure_admissible(self, start, end, existing):
        if len(self.overlapping(start, end, existing)) >= self.required_resource_count:
            raise CapacityExceededError(self.required_resource_count)

    def day_capacity(self, day_bookings):
        booked = len(self._live(day_bookings))
        return {
            "total": self.required_resource_count,
            "booked": booked,
            "available": max(0, self.required_resource_count - booked),
        }


def policy_for(mode: Optional[str], required_resource_count: Optional[int] = None) -> CapacityPolicy:
    """Build the policy for a stored mode; an unset mode behaves like select"""
    if mode is None:
        return ExclusivePolicy(BookingMode.SELECT)
    try:
        booking_mode = BookingMode(mode)
    except ValueError:
        raise CapacityConfigurationError(f"Unknown resource booking mode '{mode}'")

    if booking_mode is BookingMode.MULTI:
        return MultiResourcePolicy(required_resource_count)
    return ExclusivePolicy(booking_mode)


def policy_for_order(order) -> CapacityPolicy:
    return policy_for(order.resource_booking_mode, order.required_resource_count)
