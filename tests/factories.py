# tests/factories.py
"""Small builders for test data. Each one commits so services see the rows."""
import json
from datetime import date, datetime, timedelta, timezone
from itertools import count

from app.models import Booking, Market, MarketMember, MarketOrder, Order, User
from app.services.scheduling.schedule_resolver import DAY_NAMES

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday")

_emails = count(1)


def weekly_schedule(days=WEEKDAYS, start="09:00", end="17:00", breaks=None, **extra):
    schedule = {}
    for day in DAY_NAMES:
        enabled = day in days
        schedule[day] = {
            "enabled": enabled,
            "workHours": {"start": start, "end": end} if enabled else None,
            "breaks": list(breaks or []) if enabled else [],
        }
    schedule.update(extra)
    return schedule


def make_user(db, name="Client"):
    user = User(email=f"user{next(_emails)}@example.com", full_name=name)
    db.add(user)
    db.commit()
    return user


def make_order(db, owner, **fields):
    fields.setdefault("title", "Haircut")
    fields.setdefault("order_type", "permanent")
    fields.setdefault("status", "open")
    fields.setdefault("weekly_schedule", weekly_schedule())
    fields.setdefault("available_dates", [])
    fields.setdefault("resource_booking_mode", "select")
    fields.setdefault("checkin_requires_approval", False)

    order = Order(owner_id=owner.id, **fields)
    db.add(order)
    db.commit()
    return order


def make_market(db, owner, weekly=None, name="Old Town Market"):
    market = Market(name=name, status="active", created_by=owner.id, weekly_schedule=weekly)
    db.add(market)
    db.commit()
    return market


def attach(db, market, order, added_at=None):
    link = MarketOrder(
        market_id=market.id,
        order_id=order.id,
        added_at=added_at or datetime.now(timezone.utc),
    )
    db.add(link)
    db.commit()
    db.expire(order)
    return link


def make_member(db, market, user, status="accepted", is_active=True):
    member = MarketMember(market_id=market.id, user_id=user.id, status=status, is_active=is_active)
    db.add(member)
    db.commit()
    return member


def make_booking(db, order, client, on, start, end, status="confirmed", market_member=None):
    booking = Booking(
        order_id=order.id,
        client_id=client.id,
        scheduled_date=on,
        start_time=start,
        end_time=end,
        status=status,
        market_member_id=market_member.id if market_member else None,
    )
    db.add(booking)
    db.commit()
    return booking


def legacy_entry(on: date, *times):
    return json.dumps({"date": on.isoformat(), "times": list(times)})


def days_after(on: date, n: int) -> date:
    return on + timedelta(days=n)
