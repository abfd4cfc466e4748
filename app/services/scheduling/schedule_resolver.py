# app/services/scheduling/schedule_resolver.py
"""
Weekly schedule resolution.

An order's effective schedule is the first one present in:
    order.weekly_schedule -> each owning market's weekly_schedule (attachment order) -> DEFAULT
Call sites never coalesce schedules themselves; they go through resolve_weekly_schedule.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.core.exceptions import DayUnavailableError
from app.services.scheduling.time_utils import TimeRange

# Indexed by date.weekday(): Monday == 0
DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

BREAK_EXCLUSIONS_KEY = "breakExclusions"

DEFAULT_WORK_HOURS = TimeRange(start="00:00", end="23:59")


class ScheduleSource(str, Enum):
    ORDER = "order"
    MARKET = "market"
    DEFAULT = "default"


def day_name_for(on_date: date) -> str:
    return DAY_NAMES[on_date.weekday()]


def default_weekly_schedule() -> Dict[str, Any]:
    """Every day open 00:00-23:59, no breaks"""
    return {
        day: {"enabled": True, "workHours": DEFAULT_WORK_HOURS.to_dict(), "breaks": []}
        for day in DAY_NAMES
    }


def _parse_ranges(raw: Optional[Iterable[Dict[str, str]]]) -> Tuple[TimeRange, ...]:
    if not raw:
        return ()
    return tuple(TimeRange.from_dict(item) for item in raw if item)


@dataclass(frozen=True)
class DaySchedule:
    day_name: str
    enabled: bool = False
    work_hours: Optional[TimeRange] = None
    breaks: Tuple[TimeRange, ...] = ()
    # ISO date -> breaks waived on that date only
    break_exclusions: Dict[str, Tuple[TimeRange, ...]] = field(default_factory=dict)

    @property
    def is_bookable(self) -> bool:
        return self.enabled and self.work_hours is not None

    def active_breaks(self, on_date: date) -> List[TimeRange]:
        """Breaks still in force on a date. Waivers match on exact (start, end)."""
        waived = set(self.break_exclusions.get(on_date.isoformat(), ()))
        return [b for b in self.breaks if b not in waived]

    @classmethod
    def from_weekly(cls, weekly: Dict[str, Any], day_name: str) -> "DaySchedule":
        raw_day = weekly.get(day_name) or {}
        raw_work_hours = raw_day.get("workHours")

        # Waivers may be declared schedule-wide or on the day itself
        exclusions: Dict[str, Tuple[TimeRange, ...]] = {}
        for source in (weekly.get(BREAK_EXCLUSIONS_KEY) or {}, raw_day.get(BREAK_EXCLUSIONS_KEY) or {}):
            for iso_date, ranges in source.items():
                exclusions[iso_date] = exclusions.get(iso_date, ()) + _parse_ranges(ranges)

        return cls(
            day_name=day_name,
            enabled=raw_day.get("enabled") is True,
            work_hours=TimeRange.from_dict(raw_work_hours) if raw_work_hours else None,
            breaks=_parse_ranges(raw_day.get("breaks")),
            break_exclusions=exclusions,
        )


@dataclass(frozen=True)
class ResolvedSchedule:
    weekly: Dict[str, Any]
    source: ScheduleSource
    market_id: Optional[int] = None

    def day(self, on_date: date) -> DaySchedule:
        """The day schedule for a date. Never raises; a missing day is disabled."""
        return DaySchedule.from_weekly(self.weekly, day_name_for(on_date))

    def bookable_day(self, on_date: date) -> DaySchedule:
        """Like day(), but rejects dates the schedule explicitly closes"""
        day_schedule = self.day(on_date)
        if not day_schedule.enabled:
            raise DayUnavailableError(day_schedule.day_name)
        if day_schedule.work_hours is None:
            raise DayUnavailableError(day_schedule.day_name, reason="Work hours not configured")
        return day_schedule


def resolve_weekly_schedule(
        order_schedule: Optional[Dict[str, Any]],
        markets: Iterable[Any] = (),
) -> ResolvedSchedule:
    """First present schedule wins: order, then markets in attachment order, then default"""
    if order_schedule is not None:
        return ResolvedSchedule(weekly=order_schedule, source=ScheduleSource.ORDER)

    for market in markets:
        market_schedule = getattr(market, "weekly_schedule", None)
        if market_schedule is not None:
            return ResolvedSchedule(
                weekly=market_schedule,
                source=ScheduleSource.MARKET,
                market_id=getattr(market, "id", None),
            )

    return ResolvedSchedule(weekly=default_weekly_schedule(), source=ScheduleSource.DEFAULT)


def resolve_order_schedule(order) -> ResolvedSchedule:
    return resolve_weekly_schedule(order.weekly_schedule, order.markets)
