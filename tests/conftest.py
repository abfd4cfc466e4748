# tests/conftest.py
import pytest
from datetime import date
from types import SimpleNamespace

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.retry import RetryPolicy
from app.models import Base
from app.services.booking.booking_service import BookingService
from app.services.notification.notifier import Notifier
from app.services.order.order_schedule_service import OrderScheduleService
from app.services.subscription.subscription_checker import SubscriptionChecker

# Saturday; the Monday after is 2024-06-03
TODAY = date(2024, 6, 1)


class FakeNotifier(Notifier):
    """Records notifications instead of queueing them"""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def notify(self, user_id, kind, title, message, payload=None):
        if self.fail:
            raise RuntimeError("notification transport unavailable")
        self.sent.append({
            "user_id": user_id,
            "kind": kind,
            "title": title,
            "message": message,
            "payload": payload or {},
        })

    def kinds(self):
        return [n["kind"] for n in self.sent]

    def for_user(self, user_id):
        return [n for n in self.sent if n["user_id"] == user_id]


class FakeSubscriptionChecker(SubscriptionChecker):
    def __init__(self, features=None):
        self.features = {"publishPermanentOrders": True} if features is None else features

    def get_active_subscription(self, user_id):
        return SimpleNamespace(user_id=user_id, features=self.features)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def subscriptions():
    return FakeSubscriptionChecker()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def retry_policy(sleeps):
    return RetryPolicy(max_attempts=3, backoff_seconds=1.0, sleep=sleeps.append)


@pytest.fixture
def booking_service(db, notifier, subscriptions, retry_policy):
    return BookingService(
        db,
        notifier=notifier,
        subscription_checker=subscriptions,
        retry_policy=retry_policy,
        today=lambda: TODAY,
    )


@pytest.fixture
def schedule_service(db, notifier, retry_policy):
    return OrderScheduleService(
        db,
        notifier=notifier,
        retry_policy=retry_policy,
        today=lambda: TODAY,
    )
