# app/services/scheduling/schedule_impact.py
"""
What a schedule edit does to bookings that already exist.

Three outcomes, decided here and applied by OrderScheduleService:
  * past/current booking no longer fits  -> the whole edit is rejected
  * future booking no longer fits        -> booking is cancelled, client notified
  * future booking now sits in a break   -> booking kept, client notified
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.services.scheduling.overlap import find_overlapping
from app.services.scheduling.schedule_resolver import DAY_NAMES, ResolvedSchedule
from app.services.scheduling.time_utils import TimeRange, within_window

logger = logging.getLogger(__name__)


def schedules_equal(old: Any, new: Any) -> bool:
    """Deep equality on the JSON values (dict key order does not matter)"""
    return old == new


def legacy_slot_label(booking) -> str:
    return f"{booking.start_time}-{booking.end_time}"


def parse_legacy_entry(raw: str) -> Tuple[Optional[str], List[str]]:
    """
    Legacy available-dates entries are JSON strings {"date": ..., "times": [...]}.
    Very old rows hold a bare date string, returned with no times.
    """
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return raw, []
    if not isinstance(parsed, dict):
        return raw, []
    return parsed.get("date"), list(parsed.get("times") or [])


def _still_in_legacy_dates(booking, available_dates: Sequence[str]) -> bool:
    booking_date = booking.scheduled_date.isoformat()
    for raw in available_dates or []:
        entry_date, times = parse_legacy_entry(raw)
        if entry_date != booking_date:
            continue
        # A bare date string keeps every slot on that date
        if not times and entry_date == raw:
            return True
        if legacy_slot_label(booking) in times:
            return True
    return False


def _still_fits_weekly(booking, old: ResolvedSchedule, new: ResolvedSchedule) -> bool:
    old_day = old.day(booking.scheduled_date)
    new_day = new.day(booking.scheduled_date)

    if old_day.is_bookable and not new_day.is_bookable:
        return False
    if new_day.is_bookable and not within_window(booking.start_time, booking.end_time, new_day.work_hours):
        return False
    return True


def is_booking_affected(
        booking,
        old: ResolvedSchedule,
        new: ResolvedSchedule,
        old_dates: Optional[Sequence[str]] = None,
        new_dates: Optional[Sequence[str]] = None,
        schedule_changed: bool = False,
        dates_changed: bool = False,
) -> bool:
    """Whether an edit removes the time a booking occupies"""
    if schedule_changed and not _still_fits_weekly(booking, old, new):
        return True
    if dates_changed and not _still_in_legacy_dates(booking, new_dates):
        return True
    return False


def overlapping_breaks(booking, schedule: ResolvedSchedule) -> List[TimeRange]:
    """Active breaks (waivers removed) that intersect a booking"""
    day = schedule.day(booking.scheduled_date)
    if not day.enabled or not day.breaks:
        return []
    return find_overlapping(booking.start_time, booking.end_time, day.active_breaks(booking.scheduled_date))


def breaks_changed(old: ResolvedSchedule, new: ResolvedSchedule) -> bool:
    """Whether an edit adds, removes or moves any break or break waiver"""
    old_weekly, new_weekly = old.weekly or {}, new.weekly or {}
    if old_weekly.get("breakExclusions") != new_weekly.get("breakExclusions"):
        return True
    for day_name in DAY_NAMES:
        old_day = old_weekly.get(day_name) or {}
        new_day = new_weekly.get(day_name) or {}
        if (old_day.get("breaks") or []) != (new_day.get("breaks") or []):
            return True
        if old_day.get("breakExclusions") != new_day.get("breakExclusions"):
            return True
    return False


@dataclass
class ScheduleImpact:
    schedule_changed: bool = False
    dates_changed: bool = False
    past_conflicts: List[Any] = field(default_factory=list)
    future_cancellations: List[Any] = field(default_factory=list)
    break_overlaps: List[Tuple[Any, List[TimeRange]]] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.schedule_changed or self.dates_changed

    @property
    def blocked(self) -> bool:
        return len(self.past_conflicts) > 0

    def summary(self) -> Dict[str, int]:
        return {
            "past_conflicts": len(self.past_conflicts),
            "future_cancellations": len(self.future_cancellations),
            "break_overlaps": len(self.break_overlaps),
        }


def assess_schedule_change(
        bookings: Sequence[Any],
        old: ResolvedSchedule,
        new: ResolvedSchedule,
        today: date,
        old_dates: Optional[Sequence[str]] = None,
        new_dates: Optional[Sequence[str]] = None,
        schedule_changed: bool = False,
        dates_changed: bool = False,
) -> ScheduleImpact:
    """
    Classify live bookings against an edit. `bookings` should already be
    limited to statuses a schedule edit can invalidate (confirmed, pending).
    """
    impact = ScheduleImpact(schedule_changed=schedule_changed, dates_changed=dates_changed)
    if not impact.changed:
        return impact

    for booking in bookings:
        if not is_booking_affected(
                booking, old, new,
                old_dates=old_dates, new_dates=new_dates,
                schedule_changed=schedule_changed, dates_changed=dates_changed,
        ):
            continue
        if booking.scheduled_date <= today:
            impact.past_conflicts.append(booking)
        else:
            impact.future_cancellations.append(booking)

    if schedule_changed and breaks_changed(old, new):
        cancelled_ids = {id(b) for b in impact.future_cancellations}
        for booking in bookings:
            if booking.scheduled_date <= today or id(booking) in cancelled_ids:
                continue
            hits = overlapping_breaks(booking, new)
            if hits:
                impact.break_overlaps.append((booking, hits))

    logger.debug(f"Schedule impact assessed: {impact.summary()}")
    return impact
