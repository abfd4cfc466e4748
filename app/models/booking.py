# app/models/booking.py
from sqlalchemy import Column, String, Integer, Text, Date, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.models.base import Base


class Booking(Base):
    """One requested or committed occupation of an order's time. Never deleted."""
    __tablename__ = "bookings"
    __table_args__ = (
        Index("idx_bookings_order_date", "order_id", "scheduled_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    # References
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)  # orders are soft-deleted only
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    market_member_id = Column(Integer, ForeignKey("market_members.id"), nullable=True)

    # Same-day half-open range [start_time, end_time), HH:MM
    scheduled_date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)

    status = Column(String(20), default="confirmed", nullable=False, index=True)  # pending, confirmed, completed, cancelled
    message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    order = relationship("Order", back_populates="bookings")
    client = relationship("User", lazy="joined")
    market_member = relationship("MarketMember")

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, order_id={self.order_id}, "
            f"{self.scheduled_date} {self.start_time}-{self.end_time}, status={self.status})>"
        )
