# ============================================================================
# app/services/base_service.py
# Shared transaction + notification plumbing for booking-affecting services
# ============================================================================
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy.orm import Session

from app.core.exceptions import ResourceNotFoundError
from app.core.retry import RetryPolicy
from app.models.order import Order
from app.services.notification.notifier import Notifier, PendingNotification, dispatch_notification

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionalService:
    """
    Every booking-affecting operation is one retried transaction:
    lock the order row, read, decide, write, commit. Notifications
    queued during the transaction go out only after the commit.
    """

    def __init__(
            self,
            db: Session,
            notifier: Optional[Notifier] = None,
            retry_policy: Optional[RetryPolicy] = None,
            today: Optional[Callable[[], date]] = None
    ):
        self.db = db
        self.notifier = notifier
        self.retry_policy = retry_policy or RetryPolicy()
        self._today = today or date.today
        self._outbox: List[PendingNotification] = []

    def today(self) -> date:
        return self._today()

    def _run_in_transaction(self, operation: Callable[[], T], description: str) -> T:
        def attempt() -> T:
            self._outbox = []
            try:
                result = operation()
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            return result

        result = self.retry_policy.run(attempt, description=description)
        self._flush_notifications()
        return result

    def _lock_order(self, order_id: int) -> Order:
        """Load an order with a row lock held until commit. Serializes all booking writes per order."""
        order = self.db.query(Order).filter(
            Order.id == order_id
        ).with_for_update(of=Order).first()

        if not order:
            raise ResourceNotFoundError(f"Order with ID {order_id} not found")
        return order

    def _queue_notification(
            self,
            user_id: int,
            kind: str,
            title: str,
            message: str,
            payload: Optional[Dict[str, Any]] = None
    ) -> None:
        self._outbox.append(PendingNotification(user_id, kind, title, message, payload or {}))

    def _flush_notifications(self) -> int:
        outbox, self._outbox = self._outbox, []
        sent = 0
        for notification in outbox:
            if dispatch_notification(self.notifier, notification):
                sent += 1
        if outbox:
            logger.debug(f"Dispatched {sent}/{len(outbox)} notifications")
        return sent
