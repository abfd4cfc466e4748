import pytest
from datetime import date

from sqlalchemy.dialects import postgresql

from app.core.exceptions import BookingConflictError
from app.services.scheduling import market_conflicts
from app.services.scheduling.market_conflicts import lock_order_markets, market_lock_query
from tests.factories import attach, make_market, make_order, make_user

MONDAY = date(2024, 6, 3)


@pytest.fixture
def owner(db):
    return make_user(db, "Sam Specialist")


@pytest.fixture
def client(db):
    return make_user(db, "Alex Client")


def test_lock_query_orders_by_id_and_locks_markets(db):
    sql = str(market_lock_query(db, [3, 1]).statement.compile(dialect=postgresql.dialect()))

    assert "ORDER BY markets.id" in sql
    assert sql.rstrip().endswith("FOR UPDATE OF markets")


def test_locks_every_market_of_the_order(db, owner):
    order = make_order(db, owner)
    second, first = make_market(db, owner, name="Second"), make_market(db, owner, name="First")
    attach(db, second, order)
    attach(db, first, order)

    assert lock_order_markets(db, order) == sorted([first.id, second.id])
    assert lock_order_markets(db, make_order(db, owner)) == []


def test_markets_locked_before_sibling_bookings_are_read(booking_service, db, owner, client, monkeypatch):
    market = make_market(db, owner)
    first, second = make_order(db, owner), make_order(db, owner)
    attach(db, market, first)
    attach(db, market, second)

    calls = []
    real_lock, real_find = market_conflicts.lock_order_markets, market_conflicts.find_market_conflicts

    def lock(db_, order):
        calls.append(("lock", order.id))
        return real_lock(db_, order)

    def find(db_, order, *args):
        calls.append(("find", order.id))
        return real_find(db_, order, *args)

    monkeypatch.setattr(market_conflicts, "lock_order_markets", lock)
    monkeypatch.setattr(market_conflicts, "find_market_conflicts", find)

    booking_service.create_booking(first.id, client.id, MONDAY.isoformat(), "10:00", "11:00")
    with pytest.raises(BookingConflictError):
        booking_service.create_booking(second.id, client.id, MONDAY.isoformat(), "10:30", "11:30")

    assert calls == [("lock", first.id), ("find", first.id), ("lock", second.id), ("find", second.id)]
