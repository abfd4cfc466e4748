# ===== app/services/notification/notifier.py =====
"""
Notification collaborator used by the booking services.

Services never talk to Celery directly: they hold a Notifier and every
call goes through dispatch_notification, which never raises.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from app.config.settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class PendingNotification:
    user_id: int
    kind: str
    title: str
    message: str
    payload: Dict[str, Any] = field(default_factory=dict)


class Notifier(ABC):

    @abstractmethod
    def notify(
            self,
            user_id: int,
            kind: str,
            title: str,
            message: str,
            payload: Optional[Dict[str, Any]] = None
    ) -> None:
        ...


class CeleryNotifier(Notifier):
    """Queues deliver_notification on the notifications queue"""

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = get_settings().NOTIFICATIONS_ENABLED if enabled is None else enabled

    def notify(self, user_id, kind, title, message, payload=None):
        if not self.enabled:
            logger.info(f"Notifications disabled, dropping {kind} for user {user_id}")
            return

        from app.tasks.notification_tasks import deliver_notification

        deliver_notification.delay(
            user_id=user_id,
            kind=kind,
            title=title,
            message=message,
            payload=payload or {},
        )
        logger.debug(f"Queued {kind} notification for user {user_id}")


def dispatch_notification(notifier: Optional[Notifier], notification: PendingNotification) -> bool:
    """Send one notification. Failures are logged and swallowed; returns whether it went out."""
    if notifier is None:
        return False

    try:
        notifier.notify(
            notification.user_id,
            notification.kind,
            notification.title,
            notification.message,
            notification.payload,
        )
        return True
    except Exception as e:
        logger.error(
            f"Failed to send {notification.kind} notification to user {notification.user_id}: {e}",
            exc_info=True
        )
        return False
