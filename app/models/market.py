# app/models/market.py
"""
Markets group specialists and permanent orders under one listing.
A market's weekly_schedule is the fallback for orders without their own.
"""
from sqlalchemy import Column, String, Boolean, DateTime, JSON, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.models.base import Base


class Market(Base):
    __tablename__ = "markets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    status = Column(String(30), default="draft", nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Same JSON shape as Order.weekly_schedule
    weekly_schedule = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    members = relationship("MarketMember", back_populates="market")
    order_links = relationship("MarketOrder", back_populates="market")

    def __repr__(self):
        return f"<Market(id={self.id}, name={self.name})>"


class MarketMember(Base):
    """A specialist working inside a market (the unit chosen in select mode)"""
    __tablename__ = "market_members"
    __table_args__ = (UniqueConstraint("market_id", "user_id", name="uq_market_members_market_user"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    market_id = Column(Integer, ForeignKey("markets.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(30), default="member", nullable=False)
    status = Column(String(30), default="pending", nullable=False)  # pending, accepted, rejected
    is_active = Column(Boolean, default=True, nullable=False)

    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    market = relationship("Market", back_populates="members")
    user = relationship("User", lazy="joined")


class MarketOrder(Base):
    """Attachment of an order to a market. Attachment order = added_at, then id."""
    __tablename__ = "market_orders"
    __table_args__ = (UniqueConstraint("market_id", "order_id", name="uq_market_orders_market_order"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    market_id = Column(Integer, ForeignKey("markets.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    market = relationship("Market", back_populates="order_links", lazy="joined")
    order = relationship("Order", back_populates="market_links")
