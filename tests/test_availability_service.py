import pytest
from datetime import date

from app.core.exceptions import BookingValidationError, ResourceNotFoundError
from app.services.availability.availability_service import AvailabilityService
from tests.conftest import TODAY
from tests.factories import (
    attach,
    legacy_entry,
    make_booking,
    make_market,
    make_member,
    make_order,
    make_user,
    weekly_schedule,
)

MONDAY = date(2024, 6, 3)


@pytest.fixture
def owner(db):
    return make_user(db, "Sam Specialist")


@pytest.fixture
def client(db):
    return make_user(db, "Alex Client")


def slots(db, order, **kwargs):
    kwargs.setdefault("today", TODAY)
    return AvailabilityService.get_available_slots(db, order.id, **kwargs)


def test_weekly_days_skip_closed_days(db, owner):
    order = make_order(db, owner, weekly_schedule=weekly_schedule(breaks=[{"start": "12:00", "end": "13:00"}]))

    result = slots(db, order, start_date=TODAY, end_date=date(2024, 6, 9))

    assert result["mode"] == "weekly"
    assert result["schedule_source"] == "order"
    assert [d["date"] for d in result["available_days"]] == [
        "2024-06-03", "2024-06-04", "2024-06-05", "2024-06-06", "2024-06-07",
    ]
    monday = result["available_days"][0]
    assert monday["day_name"] == "monday"
    assert monday["work_hours"] == {"start": "09:00", "end": "17:00"}
    assert monday["breaks"] == [{"start": "12:00", "end": "13:00"}]
    assert monday["bookings"] == []
    assert "capacity" not in monday


def test_past_dates_are_never_listed(db, owner):
    order = make_order(db, owner)

    result = slots(db, order, start_date=date(2024, 5, 27), end_date=MONDAY)

    assert [d["date"] for d in result["available_days"]] == ["2024-06-03"]


def test_default_range_starts_today(db, owner):
    order = make_order(db, owner)

    days = slots(db, order)["available_days"]

    assert days[0]["date"] == "2024-06-03"
    assert all(d["day_name"] not in ("saturday", "sunday") for d in days)


def test_end_before_start_is_rejected(db, owner):
    order = make_order(db, owner)

    with pytest.raises(BookingValidationError):
        slots(db, order, start_date=date(2024, 6, 10), end_date=MONDAY)


def test_bookings_listed_per_day(db, owner, client):
    order = make_order(db, owner)
    make_booking(db, order, client, MONDAY, "10:00", "11:00")
    make_booking(db, order, client, MONDAY, "11:00", "12:00", status="pending")
    make_booking(db, order, client, MONDAY, "13:00", "14:00", status="cancelled")

    monday = slots(db, order, start_date=MONDAY, end_date=MONDAY)["available_days"][0]

    assert [(b["start_time"], b["client_id"]) for b in monday["bookings"]] == [
        ("10:00", client.id),
        ("11:00", client.id),
    ]


def test_break_waiver_hides_break_on_that_date(db, owner):
    lunch = {"start": "12:00", "end": "13:00"}
    order = make_order(db, owner, weekly_schedule=weekly_schedule(
        breaks=[lunch], breakExclusions={MONDAY.isoformat(): [lunch]}
    ))

    days = slots(db, order, start_date=MONDAY, end_date=date(2024, 6, 4))["available_days"]

    assert days[0]["breaks"] == []
    assert days[1]["breaks"] == [lunch]


def test_multi_mode_reports_capacity(db, owner, client):
    order = make_order(db, owner, resource_booking_mode="multi", required_resource_count=3)
    make_booking(db, order, client, MONDAY, "10:00", "11:00")
    make_booking(db, order, make_user(db, "Other"), MONDAY, "10:00", "11:00")

    monday = slots(db, order, start_date=MONDAY, end_date=MONDAY)["available_days"][0]

    assert monday["capacity"] == {"total": 3, "booked": 2, "available": 1}


def test_misconfigured_multi_mode_omits_capacity(db, owner):
    order = make_order(db, owner, resource_booking_mode="multi", required_resource_count=None)

    monday = slots(db, order, start_date=MONDAY, end_date=MONDAY)["available_days"][0]

    assert "capacity" not in monday


def test_filter_by_market_member(db, owner, client):
    market = make_market(db, owner)
    order = make_order(db, owner)
    attach(db, market, order)
    dana = make_member(db, market, make_user(db, "Dana"))
    make_booking(db, order, client, MONDAY, "10:00", "11:00", market_member=dana)
    make_booking(db, order, client, MONDAY, "12:00", "13:00")

    monday = slots(db, order, start_date=MONDAY, end_date=MONDAY, market_member_id=dana.id)["available_days"][0]

    assert [b["market_member_id"] for b in monday["bookings"]] == [dana.id]


def test_market_schedule_source(db, owner):
    order = make_order(db, owner, weekly_schedule=None)
    market = make_market(db, owner, weekly=weekly_schedule(days=("saturday",), start="08:00", end="12:00"))
    attach(db, market, order)

    result = slots(db, order, start_date=TODAY, end_date=date(2024, 6, 8))

    assert result["schedule_source"] == "market"
    assert [d["date"] for d in result["available_days"]] == ["2024-06-01", "2024-06-08"]


def test_default_schedule_opens_every_day(db, owner):
    order = make_order(db, owner, weekly_schedule=None)

    result = slots(db, order, start_date=TODAY, end_date=date(2024, 6, 7))

    assert result["schedule_source"] == "default"
    assert len(result["available_days"]) == 7
    assert result["available_days"][0]["work_hours"] == {"start": "00:00", "end": "23:59"}


def test_legacy_dates_minus_booked_slots(db, owner, client):
    order = make_order(db, owner, weekly_schedule=None, available_dates=[
        legacy_entry(date(2024, 5, 30), "10:00-11:00"),
        legacy_entry(MONDAY, "10:00-11:00", "11:00-12:00"),
        legacy_entry(date(2024, 6, 4), "10:00-11:00"),
        "not a date",
    ])
    make_booking(db, order, client, MONDAY, "10:00", "11:00")
    make_booking(db, order, client, date(2024, 6, 4), "10:00", "11:00")

    result = slots(db, order)

    assert result["mode"] == "legacy"
    assert result["available_slots"] == [{"date": "2024-06-03", "times": ["11:00-12:00"]}]


def test_weekly_schedule_wins_over_legacy_dates(db, owner):
    order = make_order(db, owner, available_dates=[legacy_entry(MONDAY, "10:00-11:00")])

    assert slots(db, order, start_date=MONDAY, end_date=MONDAY)["mode"] == "weekly"


def test_only_live_permanent_orders(db, owner):
    one_time = make_order(db, owner, order_type="one_time")

    with pytest.raises(BookingValidationError):
        slots(db, one_time)
    with pytest.raises(ResourceNotFoundError):
        AvailabilityService.get_available_slots(db, 12345, today=TODAY)


def test_range_is_capped(db, owner):
    order = make_order(db, owner)

    with pytest.raises(BookingValidationError, match="366 days"):
        slots(db, order, start_date=TODAY, end_date=date(2300, 1, 1))


def test_longest_allowed_range(db, owner):
    order = make_order(db, owner, weekly_schedule=weekly_schedule(days=("saturday",)))

    days = slots(db, order, start_date=TODAY, end_date=date(2025, 6, 1))["available_days"]

    assert days[0]["date"] == "2024-06-01"
    assert days[-1]["date"] == "2025-05-31"
    with pytest.raises(BookingValidationError):
        slots(db, order, start_date=TODAY, end_date=date(2025, 6, 2))


def test_cap_counts_from_today(db, owner):
    order = make_order(db, owner)

    days = slots(db, order, start_date=date(2020, 1, 1), end_date=date(2024, 6, 7))["available_days"]

    assert [d["date"] for d in days][0] == "2024-06-03"
