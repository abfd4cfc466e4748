# app/services/scheduling/market_conflicts.py
"""A client may not hold overlapping bookings across orders of the same market"""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import BookingConflictError
from app.models.booking import Booking
from app.models.market import Market, MarketOrder
from app.services.scheduling.lifecycle import BookingStatus
from app.services.scheduling.overlap import find_overlapping

logger = logging.getLogger(__name__)


def market_lock_query(db: Session, market_ids: List[int]):
    """Row locks on markets, always taken in ascending id order"""
    return db.query(Market).filter(
        Market.id.in_(market_ids)
    ).order_by(Market.id).with_for_update(of=Market)


def lock_order_markets(db: Session, order) -> List[int]:
    """
    Lock every market the order belongs to. Sibling orders each hold their own
    order lock, so the market rows are what serialize one client's bookings
    across them.
    """
    market_ids = sorted({link.market_id for link in order.market_links})
    if market_ids:
        market_lock_query(db, market_ids).all()
    return market_ids


def sibling_order_ids(db: Session, order) -> List[int]:
    """Other orders attached to any market this order belongs to"""
    market_ids = [link.market_id for link in order.market_links]
    if not market_ids:
        return []

    rows = db.query(MarketOrder.order_id).filter(
        MarketOrder.market_id.in_(market_ids),
        MarketOrder.order_id != order.id,
    ).distinct().all()
    return [row[0] for row in rows]


def find_market_conflicts(
        db: Session,
        order,
        client_id: int,
        scheduled_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[int] = None,
) -> List[Booking]:
    siblings = sibling_order_ids(db, order)
    if not siblings:
        return []

    query = db.query(Booking).filter(
        Booking.order_id.in_(siblings),
        Booking.client_id == client_id,
        Booking.scheduled_date == scheduled_date,
        Booking.status != BookingStatus.CANCELLED.value,
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)

    return find_overlapping(start_time, end_time, query.all())


def ensure_no_market_conflict(db: Session, order, client_id: int, scheduled_date: date,
                              start_time: str, end_time: str,
                              exclude_booking_id: Optional[int] = None) -> None:
    if not lock_order_markets(db, order):
        return

    conflicts = find_market_conflicts(
        db, order, client_id, scheduled_date, start_time, end_time, exclude_booking_id
    )
    if conflicts:
        clash = conflicts[0]
        logger.info(
            f"Market conflict for client {client_id}: order {order.id} vs order {clash.order_id} "
            f"on {scheduled_date} {start_time}-{end_time}"
        )
        raise BookingConflictError(
            f"You already have a booking from {clash.start_time} to {clash.end_time} on "
            f"{scheduled_date.isoformat()} for another order in the same market"
        )
