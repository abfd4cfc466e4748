# ===== app/services/availability/availability_service.py =====
from typing import List, Dict, Optional, Any
from datetime import date, timedelta
from sqlalchemy.orm import Session
from app.config.settings import get_settings
from app.core.exceptions import BookingValidationError, CapacityConfigurationError, ResourceNotFoundError
from app.models.booking import Booking
from app.models.order import Order, ORDER_TYPE_PERMANENT
from app.services.scheduling.capacity import policy_for_order
from app.services.scheduling.lifecycle import OCCUPYING_STATUSES
from app.services.scheduling.schedule_impact import legacy_slot_label, parse_legacy_entry
from app.services.scheduling.schedule_resolver import (
    ResolvedSchedule,
    ScheduleSource,
    resolve_order_schedule,
)
from app.services.scheduling.time_utils import parse_iso_date
import logging

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Bookable days of a permanent order, from its weekly schedule or legacy date list"""

    @staticmethod
    def get_available_slots(
            db: Session,
            order_id: int,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            market_member_id: Optional[int] = None,
            today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Pick the source of availability:
        1. Weekly schedule of the order or one of its markets
        2. Legacy available-dates strings (orders created before weekly schedules)
        3. Default always-open weekly schedule
        """
        order = db.query(Order).filter(Order.id == order_id).first()
        if not order or order.is_deleted:
            raise ResourceNotFoundError(f"Order with ID {order_id} not found")

        if order.order_type != ORDER_TYPE_PERMANENT:
            raise BookingValidationError("Available slots can only be retrieved for permanent orders")

        today = today or date.today()
        resolved = resolve_order_schedule(order)
        bookings = AvailabilityService._occupying_bookings(db, order.id, market_member_id)

        if resolved.source is ScheduleSource.DEFAULT and order.available_dates:
            logger.info(f"Order {order_id} has no weekly schedule, using legacy available dates")
            return {
                "order_id": order.id,
                "mode": "legacy",
                "available_slots": AvailabilityService._legacy_slots(
                    order.available_dates, bookings, today
                ),
                "work_duration_per_client": order.work_duration_per_client,
            }

        start = parse_iso_date(start_date) if start_date else today
        end = (
            parse_iso_date(end_date)
            if end_date
            else today + timedelta(days=get_settings().AVAILABILITY_DEFAULT_DAYS)
        )
        if end < start:
            raise BookingValidationError("End date must not be before start date")
        max_days = get_settings().AVAILABILITY_MAX_DAYS
        if (end - max(start, today)).days >= max_days:
            raise BookingValidationError(f"Date range must not exceed {max_days} days")

        available_days = AvailabilityService._weekly_days(order, resolved, bookings, start, end, today)
        logger.debug(
            f"Order {order_id}: {len(available_days)} bookable days between {start} and {end} "
            f"(schedule from {resolved.source.value})"
        )

        return {
            "order_id": order.id,
            "mode": "weekly",
            "schedule_source": resolved.source.value,
            "available_days": available_days,
            "work_duration_per_client": order.work_duration_per_client,
        }

    @staticmethod
    def _occupying_bookings(db: Session, order_id: int, market_member_id: Optional[int]) -> List[Booking]:
        query = db.query(Booking).filter(
            Booking.order_id == order_id,
            Booking.status.in_(OCCUPYING_STATUSES)
        )
        if market_member_id is not None:
            query = query.filter(Booking.market_member_id == market_member_id)
        return query.order_by(Booking.scheduled_date, Booking.start_time).all()

    @staticmethod
    def _weekly_days(
            order: Order,
            resolved: ResolvedSchedule,
            bookings: List[Booking],
            start: date,
            end: date,
            today: date
    ) -> List[Dict[str, Any]]:
        """One entry per bookable date in [start, end], past dates skipped"""
        try:
            policy = policy_for_order(order)
        except CapacityConfigurationError as e:
            logger.warning(f"Order {order.id}: {e.message}, capacity omitted")
            policy = None

        by_date: Dict[date, List[Booking]] = {}
        for booking in bookings:
            by_date.setdefault(booking.scheduled_date, []).append(booking)

        days = []
        current = max(start, today)
        while current <= end:
            day = resolved.day(current)
            if day.is_bookable:
                day_bookings = by_date.get(current, [])
                entry = {
                    "date": current.isoformat(),
                    "day_name": day.day_name,
                    "work_hours": day.work_hours.to_dict(),
                    "breaks": [b.to_dict() for b in day.active_breaks(current)],
                    "bookings": [
                        {
                            "start_time": b.start_time,
                            "end_time": b.end_time,
                            "client_id": b.client_id,
                            "market_member_id": b.market_member_id,
                        }
                        for b in day_bookings
                    ],
                }

                capacity = policy.day_capacity(day_bookings) if policy else None
                if capacity is not None:
                    entry["capacity"] = capacity

                days.append(entry)

            current += timedelta(days=1)

        return days

    @staticmethod
    def _legacy_slots(available_dates: List[str], bookings: List[Booking], today: date) -> List[Dict]:
        """Legacy date entries minus slots already taken"""
        booked: Dict[str, set] = {}
        for booking in bookings:
            booked.setdefault(booking.scheduled_date.isoformat(), set()).add(legacy_slot_label(booking))

        slots = []
        for raw in available_dates:
            entry_date, times = parse_legacy_entry(raw)
            try:
                parsed_date = parse_iso_date(entry_date)
            except BookingValidationError:
                logger.warning(f"Skipping unparsable legacy date entry: {raw}")
                continue

            if parsed_date < today:
                continue

            free = [t for t in times if t not in booked.get(entry_date, set())]
            if free:
                slots.append({"date": entry_date, "times": free})

        return slots
