import pytest
from datetime import date
from types import SimpleNamespace

from app.core.exceptions import DayUnavailableError
from app.services.scheduling.schedule_resolver import (
    ScheduleSource,
    TimeRange,
    day_name_for,
    resolve_weekly_schedule,
)
from tests.factories import weekly_schedule

MONDAY = date(2024, 6, 3)
SUNDAY = date(2024, 6, 2)


def market(market_id, weekly):
    return SimpleNamespace(id=market_id, weekly_schedule=weekly)


def test_day_names_follow_the_calendar():
    assert day_name_for(MONDAY) == "monday"
    assert day_name_for(SUNDAY) == "sunday"


def test_order_schedule_wins():
    own = weekly_schedule(start="10:00", end="12:00")
    resolved = resolve_weekly_schedule(own, [market(1, weekly_schedule())])

    assert resolved.source is ScheduleSource.ORDER
    assert resolved.day(MONDAY).work_hours == TimeRange("10:00", "12:00")


def test_first_market_with_a_schedule_is_used():
    markets = [market(1, None), market(2, weekly_schedule(start="08:00")), market(3, weekly_schedule(start="11:00"))]
    resolved = resolve_weekly_schedule(None, markets)

    assert resolved.source is ScheduleSource.MARKET
    assert resolved.market_id == 2
    assert resolved.day(MONDAY).work_hours.start == "08:00"


def test_default_schedule_is_always_open():
    resolved = resolve_weekly_schedule(None, [market(1, None)])

    assert resolved.source is ScheduleSource.DEFAULT
    day = resolved.day(SUNDAY)
    assert day.is_bookable
    assert day.work_hours == TimeRange("00:00", "23:59")
    assert day.breaks == ()


def test_empty_order_schedule_counts_as_present():
    resolved = resolve_weekly_schedule({}, [market(1, weekly_schedule())])

    assert resolved.source is ScheduleSource.ORDER
    assert not resolved.day(MONDAY).is_bookable


def test_disabled_day_is_rejected_by_bookable_day():
    resolved = resolve_weekly_schedule(weekly_schedule(), [])

    assert resolved.day(SUNDAY).enabled is False
    with pytest.raises(DayUnavailableError, match="No work hours available for sunday"):
        resolved.bookable_day(SUNDAY)


def test_enabled_day_without_hours_is_rejected():
    schedule = weekly_schedule()
    schedule["monday"]["workHours"] = None
    resolved = resolve_weekly_schedule(schedule, [])

    with pytest.raises(DayUnavailableError, match="Work hours not configured for monday"):
        resolved.bookable_day(MONDAY)


def test_break_exclusions_waive_exact_breaks_on_that_date_only():
    lunch = {"start": "12:00", "end": "13:00"}
    schedule = weekly_schedule(
        breaks=[lunch, {"start": "15:00", "end": "15:30"}],
        breakExclusions={MONDAY.isoformat(): [lunch]},
    )
    day = resolve_weekly_schedule(schedule, []).day(MONDAY)

    assert day.active_breaks(MONDAY) == [TimeRange("15:00", "15:30")]
    assert len(day.active_breaks(date(2024, 6, 10))) == 2


def test_partial_exclusion_does_not_waive_a_break():
    schedule = weekly_schedule(
        breaks=[{"start": "12:00", "end": "13:00"}],
        breakExclusions={MONDAY.isoformat(): [{"start": "12:00", "end": "12:30"}]},
    )
    day = resolve_weekly_schedule(schedule, []).day(MONDAY)

    assert day.active_breaks(MONDAY) == [TimeRange("12:00", "13:00")]


def test_day_level_exclusions_are_honoured():
    schedule = weekly_schedule(breaks=[{"start": "12:00", "end": "13:00"}])
    schedule["monday"]["breakExclusions"] = {MONDAY.isoformat(): [{"start": "12:00", "end": "13:00"}]}
    day = resolve_weekly_schedule(schedule, []).day(MONDAY)

    assert day.active_breaks(MONDAY) == []
