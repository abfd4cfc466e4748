# ============================================================================
# app/services/order/order_schedule_service.py
# ============================================================================
"""Schedule edits on orders, and what they do to existing bookings"""
import json
import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import BookingConflictError, BookingPermissionError, BookingValidationError
from app.core.retry import RetryPolicy
from app.models.booking import Booking
from app.models.order import ORDER_TYPE_PERMANENT, Order
from app.models.order_change_history import OrderChangeHistory
from app.schemas.schedule import validate_available_dates, validate_weekly_schedule
from app.services.base_service import TransactionalService
from app.services.notification.notifier import Notifier
from app.services.scheduling.capacity import BookingMode
from app.services.scheduling.lifecycle import SCHEDULE_SENSITIVE_STATUSES, BookingStatus
from app.services.scheduling.schedule_impact import ScheduleImpact, assess_schedule_change, schedules_equal
from app.services.scheduling.schedule_resolver import resolve_weekly_schedule

logger = logging.getLogger(__name__)

# Marks a field the caller did not send (None is a real value: "clear the schedule")
UNSET: Any = object()

SCHEDULE_REMOVED_REASON = "schedule_removed"


class OrderScheduleService(TransactionalService):

    def __init__(
            self,
            db: Session,
            notifier: Optional[Notifier] = None,
            retry_policy: Optional[RetryPolicy] = None,
            today: Optional[Callable[[], date]] = None
    ):
        super().__init__(db, notifier=notifier, retry_policy=retry_policy, today=today)

    def update_order_schedule(
            self,
            order_id: int,
            actor_id: int,
            weekly_schedule: Any = UNSET,
            available_dates: Any = UNSET
    ) -> Order:
        """
        Replace an order's weekly schedule and/or legacy available dates.

        Bookings that lose their time are cancelled when they are in the future.
        If any of them is today or earlier, nothing is changed and the edit fails.
        Future bookings that now sit inside a break are kept and their clients told.
        """
        if weekly_schedule is not UNSET and weekly_schedule is not None:
            validate_weekly_schedule(weekly_schedule)
        if available_dates is not UNSET:
            validate_available_dates(available_dates)

        changes = []

        def operation() -> Order:
            changes.clear()
            order = self._lock_order(order_id)
            if order.owner_id != actor_id:
                raise BookingPermissionError("You do not have permission to update this order")
            if order.is_deleted:
                raise BookingValidationError("Cannot update the schedule of a deleted order")

            old_weekly = order.weekly_schedule
            old_dates = list(order.available_dates or [])
            new_weekly = old_weekly if weekly_schedule is UNSET else weekly_schedule
            new_dates = old_dates if available_dates is UNSET else list(available_dates or [])

            schedule_changed = not schedules_equal(old_weekly, new_weekly)
            dates_changed = not schedules_equal(old_dates, new_dates)
            if not schedule_changed and not dates_changed:
                logger.debug(f"Order {order_id} schedule unchanged, nothing to do")
                return order

            if order.order_type == ORDER_TYPE_PERMANENT:
                impact = self._assess(order, old_weekly, new_weekly, old_dates, new_dates,
                                      schedule_changed, dates_changed)
                if impact.blocked:
                    raise BookingConflictError(
                        f"Cannot remove dates with past or current bookings. "
                        f"{len(impact.past_conflicts)} booking(s) would be affected. "
                        f"Please contact support if you need to modify past bookings."
                    )
                self._cancel_affected(order, impact.future_cancellations)
                self._notify_break_overlaps(order, impact)

            if schedule_changed:
                order.weekly_schedule = new_weekly
                changes.append(("weekly_schedule", old_weekly, new_weekly))
            if dates_changed:
                order.available_dates = new_dates
                changes.append(("available_dates", old_dates, new_dates))
            return order

        order = self._run_in_transaction(operation, description=f"update schedule of order {order_id}")
        if changes:
            logger.info(f"Schedule of order {order_id} updated by user {actor_id}: {[c[0] for c in changes]}")
            self._record_history(order_id, actor_id, changes)
        return order

    def _assess(self, order, old_weekly, new_weekly, old_dates, new_dates,
                schedule_changed, dates_changed) -> ScheduleImpact:
        markets = order.markets
        bookings = self.db.query(Booking).filter(
            Booking.order_id == order.id,
            Booking.status.in_(SCHEDULE_SENSITIVE_STATUSES)
        ).order_by(Booking.scheduled_date, Booking.start_time).all()

        if not bookings:
            return ScheduleImpact(schedule_changed=schedule_changed, dates_changed=dates_changed)

        return assess_schedule_change(
            bookings,
            old=resolve_weekly_schedule(old_weekly, markets),
            new=resolve_weekly_schedule(new_weekly, markets),
            today=self.today(),
            old_dates=old_dates,
            new_dates=new_dates,
            schedule_changed=schedule_changed,
            dates_changed=dates_changed,
        )

    def _cancel_affected(self, order: Order, bookings: List[Booking]) -> None:
        if not bookings:
            return

        cancelled_at = datetime.now(timezone.utc)
        for booking in bookings:
            booking.status = BookingStatus.CANCELLED.value
            booking.cancelled_at = cancelled_at
            booking.cancellation_reason = SCHEDULE_REMOVED_REASON

            payload = self._payload(booking)
            payload["reason"] = SCHEDULE_REMOVED_REASON
            self._queue_notification(
                booking.client_id,
                "booking_cancelled",
                "Booking Cancelled",
                f"Your booking on {booking.scheduled_date.isoformat()} from {booking.start_time} "
                f"to {booking.end_time} has been cancelled because the specialist removed that availability.",
                payload,
            )

        logger.info(
            f"Auto-cancelled {len(bookings)} future booking(s) for order {order.id} due to schedule change"
        )

    def _notify_break_overlaps(self, order: Order, impact: ScheduleImpact) -> None:
        if not impact.break_overlaps:
            return

        title = order.title or "Untitled"
        for booking, breaks in impact.break_overlaps:
            break_times = ", ".join(b.label for b in breaks)
            payload = self._payload(booking)
            payload["reason"] = "break_overlap"
            payload["breakTimes"] = break_times

            specialist_info = ""
            specialist = self._specialist(order, booking)
            if specialist is not None:
                specialist_info = f" with {specialist.display_name}"
                payload["specialistId"] = specialist.id
                payload["specialistName"] = specialist.display_name

            self._queue_notification(
                booking.client_id,
                "booking_break_overlap",
                "Booking Overlaps with Break",
                f"Your booking{specialist_info} on {booking.scheduled_date.isoformat()} from "
                f"{booking.start_time} to {booking.end_time} for \"{title}\" now overlaps with a "
                f"break period ({break_times}). Please contact the specialist if you need to reschedule.",
                payload,
            )

        logger.info(
            f"Notified {len(impact.break_overlaps)} client(s) of break overlaps on order {order.id}"
        )

    @staticmethod
    def _specialist(order: Order, booking: Booking):
        """The specialist named in select-mode notifications"""
        if order.resource_booking_mode != BookingMode.SELECT.value:
            return None
        if booking.market_member is None:
            return None
        return booking.market_member.user

    def _record_history(self, order_id: int, actor_id: int, changes) -> None:
        """Audit trail for the edit. Written after commit and never fails the edit."""
        try:
            for field_name, old_value, new_value in changes:
                self.db.add(OrderChangeHistory(
                    order_id=order_id,
                    field_changed=field_name,
                    old_value=json.dumps(old_value),
                    new_value=json.dumps(new_value),
                    changed_by=actor_id,
                    reason="Schedule updated",
                ))
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to record schedule history for order {order_id}: {e}", exc_info=True)

    @staticmethod
    def _payload(booking: Booking) -> dict:
        return {
            "bookingId": booking.id,
            "orderId": booking.order_id,
            "scheduledDate": booking.scheduled_date.isoformat(),
            "startTime": booking.start_time,
            "endTime": booking.end_time,
        }
