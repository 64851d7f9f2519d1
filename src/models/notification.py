"""Notification model type definitions."""

from datetime import datetime
from enum import Enum
from typing import Literal, TypedDict
from uuid import UUID


NotificationScope = Literal["single", "global"]


class NotificationKind(str, Enum):
    """Category shown by clients next to a notification."""

    ORDER = "order"
    DISCOUNT = "discount"
    SYSTEM = "system"
    REPORT = "report"
    PROMO = "promo"
    CART = "cart"
    LIKE = "like"
    REVIEW = "review"
    REPLY = "reply"


class OrderEvent(str, Enum):
    """Order lifecycle events that produce notifications."""

    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_STATUS_CHANGED = "payment_status_changed"
    DELIVERY_STATUS_CHANGED = "delivery_status_changed"


class Notification(TypedDict):
    """Notifications table row representation.

    A null ``user_id`` with ``scope == "global"`` addresses every user.
    """

    id: UUID
    user_id: UUID | None
    title: str
    message: str
    kind: str
    event: str | None
    order_id: UUID | None
    scope: NotificationScope
    image: str | None
    is_read: bool
    created_at: datetime


class NotificationCreate(TypedDict, total=False):
    """Data inserted when a notification is emitted."""

    user_id: str | None
    title: str
    message: str
    kind: str
    event: str | None
    order_id: str | None
    scope: NotificationScope
    image: str | None
    is_read: bool
