# app/models/order.py
"""
Order model - scheduling-relevant subset.
Permanent orders are recurring, bookable listings; one_time orders are job posts.
"""
from sqlalchemy import Column, String, Boolean, DateTime, JSON, Integer, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.models.base import Base

ORDER_TYPE_ONE_TIME = "one_time"
ORDER_TYPE_PERMANENT = "permanent"

# Statuses in which a permanent order accepts bookings
BOOKABLE_ORDER_STATUSES = ("open", "active")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    order_type = Column(String(20), default=ORDER_TYPE_ONE_TIME, nullable=False, index=True)
    status = Column(String(30), default="draft", nullable=False)

    # {"monday": {"enabled": true, "workHours": {...}, "breaks": [...]}, ..., "breakExclusions": {...}}
    weekly_schedule = Column(JSON, nullable=True)

    # DEPRECATED: legacy '{"date": "...", "times": ["HH:MM-HH:MM"]}' strings
    # Kept for orders created before weekly schedules existed
    available_dates = Column(JSON, default=list)

    resource_booking_mode = Column(String(10), nullable=True)  # select, auto, multi
    required_resource_count = Column(Integer, nullable=True)  # multi mode only
    checkin_requires_approval = Column(Boolean, default=False, nullable=False)
    work_duration_per_client = Column(Integer, nullable=True)  # minutes

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)  # soft delete only

    owner = relationship("User")
    market_links = relationship(
        "MarketOrder",
        back_populates="order",
        order_by="[MarketOrder.added_at, MarketOrder.id]",
    )
    bookings = relationship("Booking", back_populates="order")

    @property
    def markets(self):
        """Owning markets in attachment order"""
        return [link.market for link in self.market_links if link.market is not None]

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self):
        return f"<Order(id={self.id}, type={self.order_type}, status={self.status})>"
