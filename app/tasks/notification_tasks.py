# ===== app/tasks/notification_tasks.py =====
from typing import Optional
import logging

from app.config.celery_config import celery_app
from app.config.database import get_db
from app.models.notification import Notification

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def deliver_notification(
        self,
        user_id: int,
        kind: str,
        title: str,
        message: str,
        payload: Optional[dict] = None
):
    """
    Persist an in-app notification for a user

    Args:
        user_id: Recipient
        kind: Event type (new_booking, booking_cancelled, booking_break_overlap, ...)
        title: Short headline
        message: Full text shown to the user
        payload: JSON-safe booking details
    """
    db = next(get_db())
    try:
        notification = Notification(
            user_id=user_id,
            kind=kind,
            title=title,
            message=message,
            payload=payload or {},
        )
        db.add(notification)
        db.commit()

        logger.info(f"Delivered {kind} notification {notification.id} to user {user_id}")
        return {"status": "success", "notification_id": notification.id}

    except Exception as exc:
        db.rollback()
        logger.error(f"Failed to deliver {kind} notification to user {user_id}: {exc}")

        # Retry with exponential backoff: 1min, 2min, 4min
        raise self.retry(
            exc=exc,
            countdown=60 * (2 ** self.request.retries)
        )
    finally:
        db.close()
