# ============================================================================
# app/services/booking/booking_service.py
# ============================================================================
"""Client bookings against permanent orders"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.core.exceptions import (
    BookingEngineError,
    BookingPermissionError,
    BookingValidationError,
    FeatureUnavailableError,
    ResourceNotFoundError,
)
from app.core.retry import RetryPolicy
from app.models.booking import Booking
from app.models.market import MarketMember
from app.models.order import BOOKABLE_ORDER_STATUSES, ORDER_TYPE_PERMANENT, Order
from app.models.user import User
from app.services.base_service import TransactionalService
from app.services.notification.notifier import Notifier
from app.services.scheduling.capacity import policy_for_order
from app.services.scheduling.lifecycle import (
    OCCUPYING_STATUSES,
    ActorRole,
    BookingStatus,
    actor_roles,
    ensure_transition_allowed,
    initial_status,
)
from app.services.scheduling.market_conflicts import ensure_no_market_conflict
from app.services.scheduling.overlap import find_overlapping
from app.services.scheduling.schedule_resolver import resolve_order_schedule
from app.services.scheduling.time_utils import parse_iso_date, validate_time_range, within_window
from app.services.subscription.subscription_checker import SubscriptionChecker

logger = logging.getLogger(__name__)


class BookingService(TransactionalService):
    """Create, move, cancel and transition bookings"""

    def __init__(
            self,
            db: Session,
            notifier: Optional[Notifier] = None,
            subscription_checker: Optional[SubscriptionChecker] = None,
            retry_policy: Optional[RetryPolicy] = None,
            today: Optional[Callable[[], date]] = None
    ):
        super().__init__(db, notifier=notifier, retry_policy=retry_policy, today=today)
        self.subscription_checker = subscription_checker
        self.required_feature = get_settings().BOOKING_REQUIRED_FEATURE

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_booking(
            self,
            order_id: int,
            client_id: int,
            scheduled_date,
            start_time: str,
            end_time: str,
            market_member_id: Optional[int] = None,
            message: Optional[str] = None
    ) -> Booking:
        validate_time_range(start_time, end_time)
        booking_date = parse_iso_date(scheduled_date)

        def operation() -> Booking:
            order = self._lock_order(order_id)
            self._ensure_accepts_bookings(order)
            self._ensure_placement(
                order, client_id, booking_date, start_time, end_time,
                market_member_id=market_member_id,
            )

            status = initial_status(order.checkin_requires_approval)
            booking = Booking(
                order_id=order.id,
                client_id=client_id,
                market_member_id=market_member_id,
                scheduled_date=booking_date,
                start_time=start_time,
                end_time=end_time,
                status=status.value,
                message=message,
            )
            self.db.add(booking)
            self.db.flush()

            self._queue_new_booking_notification(order, booking)
            return booking

        booking = self._run_in_transaction(operation, description=f"create booking for order {order_id}")
        logger.info(
            f"Booking {booking.id} created: order {order_id}, client {client_id}, "
            f"{booking_date} {start_time}-{end_time} ({booking.status})"
        )
        return booking

    def create_multiple_bookings(
            self,
            order_id: int,
            client_id: int,
            slots: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Best effort: each slot is its own transaction and reports its own outcome"""
        bookings = []
        errors = []

        for slot in slots:
            try:
                booking = self.create_booking(
                    order_id=order_id,
                    client_id=client_id,
                    scheduled_date=slot.get("date"),
                    start_time=slot.get("start_time"),
                    end_time=slot.get("end_time"),
                    market_member_id=slot.get("market_member_id"),
                    message=slot.get("message"),
                )
                bookings.append(booking)
            except BookingEngineError as e:
                errors.append({"slot": slot, "error": e.message})

        logger.info(
            f"Batch booking for order {order_id}: {len(bookings)} created, {len(errors)} failed"
        )
        return {
            "bookings": bookings,
            "errors": errors,
            "success": len(bookings) > 0,
        }

    # ------------------------------------------------------------------
    # Changes to existing bookings
    # ------------------------------------------------------------------

    def update_booking(
            self,
            booking_id: int,
            actor_id: int,
            scheduled_date=None,
            start_time: Optional[str] = None,
            end_time: Optional[str] = None
    ) -> Booking:
        """Move a booking. Only the order owner may do this."""

        def operation() -> Booking:
            booking, order = self._lock_booking(booking_id)

            if order.owner_id != actor_id:
                raise BookingPermissionError("You do not have permission to update this booking")
            if booking.status == BookingStatus.CANCELLED.value:
                raise BookingValidationError("Cannot update a cancelled booking")
            if booking.status == BookingStatus.COMPLETED.value:
                raise BookingValidationError("Cannot update a completed booking")

            new_date = parse_iso_date(scheduled_date) if scheduled_date else booking.scheduled_date
            new_start = start_time or booking.start_time
            new_end = end_time or booking.end_time
            validate_time_range(new_start, new_end)

            moved = (
                new_date != booking.scheduled_date
                or new_start != booking.start_time
                or new_end != booking.end_time
            )
            if not moved:
                return booking

            self._ensure_accepts_bookings(order)
            self._ensure_placement(
                order, booking.client_id, new_date, new_start, new_end,
                market_member_id=booking.market_member_id,
                exclude_booking_id=booking.id,
            )

            booking.scheduled_date = new_date
            booking.start_time = new_start
            booking.end_time = new_end

            self._queue_notification(
                booking.client_id,
                "booking_updated",
                "Booking Updated",
                f"Your booking has been moved to {new_date.isoformat()} from {new_start} to {new_end}",
                self._booking_payload(booking),
            )
            return booking

        booking = self._run_in_transaction(operation, description=f"update booking {booking_id}")
        logger.info(
            f"Booking {booking_id} updated by {actor_id}: "
            f"{booking.scheduled_date} {booking.start_time}-{booking.end_time}"
        )
        return booking

    def cancel_booking(self, booking_id: int, actor_id: int, reason: Optional[str] = None) -> Booking:
        def operation() -> Booking:
            booking, order = self._lock_booking(booking_id)
            roles = actor_roles(actor_id, booking.client_id, order.owner_id)
            if not roles:
                raise BookingPermissionError("You do not have permission to cancel this booking")

            ensure_transition_allowed(booking.status, BookingStatus.CANCELLED, roles)
            self._apply_cancellation(booking, order, actor_id, roles, reason, was_pending=False)
            return booking

        booking = self._run_in_transaction(operation, description=f"cancel booking {booking_id}")
        logger.info(f"Booking {booking_id} cancelled by user {actor_id}")
        return booking

    def update_booking_status(self, booking_id: int, actor_id: int, new_status: str) -> Booking:
        def operation() -> Booking:
            booking, order = self._lock_booking(booking_id)
            roles = actor_roles(actor_id, booking.client_id, order.owner_id)
            if not roles:
                raise BookingPermissionError("You do not have permission to update this booking")

            previous = booking.status
            target = ensure_transition_allowed(previous, new_status, roles)

            if target is BookingStatus.CANCELLED:
                self._apply_cancellation(
                    booking, order, actor_id, roles, reason=None,
                    was_pending=previous == BookingStatus.PENDING.value,
                )
                return booking

            booking.status = target.value
            if target is BookingStatus.CONFIRMED:
                self._queue_notification(
                    booking.client_id,
                    "booking_approved",
                    "Booking Approved",
                    f"Your booking for {self._describe(booking, order)} has been approved",
                    self._booking_payload(booking),
                )
            elif target is BookingStatus.COMPLETED:
                self._queue_notification(
                    booking.client_id,
                    "booking_completed",
                    "Booking Completed",
                    f"Your booking for {self._describe(booking, order)} has been marked as completed",
                    self._booking_payload(booking),
                )
            return booking

        booking = self._run_in_transaction(operation, description=f"update status of booking {booking_id}")
        logger.info(f"Booking {booking_id} status changed to {booking.status} by user {actor_id}")
        return booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise ResourceNotFoundError(f"Booking with ID {booking_id} not found")
        return booking

    def get_order_bookings(self, order_id: int) -> List[Booking]:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise ResourceNotFoundError(f"Order with ID {order_id} not found")

        return self.db.query(Booking).filter(
            Booking.order_id == order_id
        ).order_by(Booking.scheduled_date, Booking.start_time, Booking.id).all()

    def get_client_bookings(self, user_id: int) -> List[Booking]:
        """Bookings the user made plus bookings on orders the user owns"""
        return self.db.query(Booking).join(
            Order, Booking.order_id == Order.id
        ).filter(
            or_(Booking.client_id == user_id, Order.owner_id == user_id)
        ).order_by(Booking.scheduled_date, Booking.start_time, Booking.id).all()

    # ------------------------------------------------------------------
    # Validation pipeline
    # ------------------------------------------------------------------

    def _ensure_accepts_bookings(self, order: Order) -> None:
        if order.is_deleted:
            raise ResourceNotFoundError(f"Order with ID {order.id} not found")
        if order.order_type != ORDER_TYPE_PERMANENT:
            raise BookingValidationError("Bookings can only be created for permanent orders")
        if order.status not in BOOKABLE_ORDER_STATUSES:
            raise BookingValidationError("Bookings can only be created for active permanent orders")

        if self.subscription_checker is None:
            return
        subscription = self.subscription_checker.get_active_subscription(order.owner_id)
        if not self.subscription_checker.has_feature(subscription, self.required_feature):
            raise FeatureUnavailableError(
                "The order owner's subscription does not allow bookings on permanent orders"
            )

    def _ensure_placement(
            self,
            order: Order,
            client_id: int,
            booking_date: date,
            start_time: str,
            end_time: str,
            market_member_id: Optional[int] = None,
            exclude_booking_id: Optional[int] = None
    ) -> None:
        """Everything after the order-level checks, in order; the first failure aborts"""
        if market_member_id is not None:
            self._ensure_market_member(order, market_member_id)

        ensure_no_market_conflict(
            self.db, order, client_id, booking_date, start_time, end_time,
            exclude_booking_id=exclude_booking_id,
        )

        day = resolve_order_schedule(order).bookable_day(booking_date)
        if not within_window(start_time, end_time, day.work_hours):
            raise BookingValidationError(
                f"Time range must be within work hours: {day.work_hours.start} - {day.work_hours.end}"
            )

        breaks_hit = find_overlapping(start_time, end_time, day.active_breaks(booking_date))
        if breaks_hit:
            labels = ", ".join(b.label for b in breaks_hit)
            raise BookingValidationError(f"Time range overlaps with a break ({labels})")

        policy = policy_for_order(order)
        policy.ensure_admissible(
            start_time, end_time,
            self._occupying_bookings(order.id, booking_date, exclude_booking_id),
        )

    def _ensure_market_member(self, order: Order, market_member_id: int) -> MarketMember:
        market_ids = [link.market_id for link in order.market_links]
        member = self.db.query(MarketMember).filter(
            MarketMember.id == market_member_id,
            MarketMember.is_active == True,
            MarketMember.status == "accepted"
        ).first()

        if not member or member.market_id not in market_ids:
            raise ResourceNotFoundError(
                f"Market member with ID {market_member_id} not found in this order's markets"
            )
        return member

    def _occupying_bookings(
            self,
            order_id: int,
            booking_date: date,
            exclude_booking_id: Optional[int] = None
    ) -> List[Booking]:
        query = self.db.query(Booking).filter(
            Booking.order_id == order_id,
            Booking.scheduled_date == booking_date,
            Booking.status.in_(OCCUPYING_STATUSES)
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.all()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock_booking(self, booking_id: int):
        """Lock the owning order first, then read the booking fresh under that lock"""
        row = self.db.query(Booking.order_id).filter(Booking.id == booking_id).first()
        if not row:
            raise ResourceNotFoundError(f"Booking with ID {booking_id} not found")

        order = self._lock_order(row[0])
        booking = self.db.query(Booking).filter(
            Booking.id == booking_id
        ).populate_existing().first()
        return booking, order

    def _apply_cancellation(
            self,
            booking: Booking,
            order: Order,
            actor_id: int,
            roles,
            reason: Optional[str],
            was_pending: bool
    ) -> None:
        acting_as_client = ActorRole.CLIENT in roles and actor_id != order.owner_id

        booking.status = BookingStatus.CANCELLED.value
        booking.cancelled_at = datetime.now(timezone.utc)
        booking.cancellation_reason = reason or (
            "cancelled_by_client" if acting_as_client else "cancelled_by_owner"
        )

        if was_pending and not acting_as_client:
            self._queue_notification(
                booking.client_id,
                "booking_rejected",
                "Booking Rejected",
                f"Your booking request for {self._describe(booking, order)} was rejected",
                self._booking_payload(booking),
            )
            return

        notify_user_id = order.owner_id if acting_as_client else booking.client_id
        if notify_user_id == actor_id:
            return

        self._queue_notification(
            notify_user_id,
            "booking_cancelled",
            "Booking Cancelled",
            f"{self._user_name(actor_id)} cancelled booking for {booking.scheduled_date.isoformat()} "
            f"from {booking.start_time} to {booking.end_time}",
            self._booking_payload(booking),
        )

    def _queue_new_booking_notification(self, order: Order, booking: Booking) -> None:
        client_name = self._user_name(booking.client_id)
        when = f"{booking.scheduled_date.isoformat()} from {booking.start_time} to {booking.end_time}"

        if booking.status == BookingStatus.PENDING.value:
            title = "New Booking Request"
            text = f"{client_name} has requested a booking for {when}"
        else:
            title = "New Booking"
            text = f"{client_name} has checked in for {when}"
        if booking.message:
            text += f'. Message: "{booking.message}"'
        if booking.status == BookingStatus.PENDING.value:
            text += ". Approval required."

        payload = self._booking_payload(booking)
        payload["clientId"] = booking.client_id
        payload["status"] = booking.status
        self._queue_notification(order.owner_id, "new_booking", title, text, payload)

    def _user_name(self, user_id: int) -> str:
        user = self.db.query(User).filter(User.id == user_id).first()
        return user.display_name if user else f"User {user_id}"

    @staticmethod
    def _describe(booking: Booking, order: Order) -> str:
        title = f'"{order.title}" ' if order.title else ""
        return f"{title}on {booking.scheduled_date.isoformat()} from {booking.start_time} to {booking.end_time}"

    @staticmethod
    def _booking_payload(booking: Booking) -> Dict[str, Any]:
        return {
            "bookingId": booking.id,
            "orderId": booking.order_id,
            "scheduledDate": booking.scheduled_date.isoformat(),
            "startTime": booking.start_time,
            "endTime": booking.end_time,
        }
