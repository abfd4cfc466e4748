# app/models/subscription.py
from sqlalchemy import Column, String, Integer, DateTime, JSON, ForeignKey
from sqlalchemy.sql import func
from app.models.base import Base


class Subscription(Base):
    """
    A user's plan subscription. Billing lives elsewhere; the booking engine
    only reads status, end_date and the features map.
    """
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_name = Column(String(100), nullable=False)
    status = Column(String(20), default="active", nullable=False)  # active, cancelled, expired
    start_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)

    # {"publishPermanentOrders": true, "publishMarkets": false, ...}
    features = Column(JSON, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
