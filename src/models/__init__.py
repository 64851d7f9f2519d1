"""Database model type definitions."""

from src.models.notification import Notification, NotificationKind, OrderEvent
from src.models.order import Order, OrderLineItem, PaymentResult, ShippingAddress
from src.models.product import Product

__all__ = [
    "Notification",
    "NotificationKind",
    "Order",
    "OrderEvent",
    "OrderLineItem",
    "PaymentResult",
    "Product",
    "ShippingAddress",
]
