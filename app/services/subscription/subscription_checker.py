# ===== app/services/subscription/subscription_checker.py =====
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.models.subscription import Subscription

logger = logging.getLogger(__name__)


class SubscriptionChecker(ABC):
    """Read-only view of a user's plan used to gate booking features"""

    @abstractmethod
    def get_active_subscription(self, user_id: int) -> Optional[Subscription]:
        ...

    def has_feature(self, subscription: Optional[Subscription], feature_key: str) -> bool:
        if subscription is None:
            return False
        features = subscription.features or {}
        return features.get(feature_key) is True


class DatabaseSubscriptionChecker(SubscriptionChecker):

    def __init__(self, db: Session):
        self.db = db

    def get_active_subscription(self, user_id):
        now = datetime.now(timezone.utc)
        subscription = self.db.query(Subscription).filter(
            Subscription.user_id == user_id,
            Subscription.status == "active",
            Subscription.end_date > now
        ).order_by(Subscription.end_date.desc()).first()

        if not subscription:
            logger.debug(f"No active subscription for user {user_id}")
        return subscription
