# app/models/__init__.py
from .base import Base
from .user import User
from .market import Market, MarketMember, MarketOrder
from .order import Order
from .booking import Booking
from .subscription import Subscription
from .notification import Notification
from .order_change_history import OrderChangeHistory

__all__ = [
    "Base",
    "User",
    "Market",
    "MarketMember",
    "MarketOrder",
    "Order",
    "Booking",
    "Subscription",
    "Notification",
    "OrderChangeHistory",
]
