"""Order model type definitions for database operations."""

from datetime import datetime
from typing import Literal, TypedDict
from uuid import UUID


# Provider-side payment progress mirrored on the order
PaymentState = Literal["pending", "authorized", "paid"]

# Fulfillment progress, changed only by staff
DeliveryState = Literal["processing", "shipped", "in_transit", "delivered", "cancelled"]

# Lifecycle view derived from payment x delivery state
OrderStatus = Literal[
    "created",
    "payment_pending",
    "paid",
    "delivery_processing",
    "shipped",
    "in_transit",
    "delivered",
    "cancelled",
]

PAYMENT_STATES: tuple[str, ...] = ("pending", "authorized", "paid")
DELIVERY_STATES: tuple[str, ...] = ("processing", "shipped", "in_transit", "delivered", "cancelled")


class OrderLineItem(TypedDict):
    """A single line item stored in the line_items JSONB array.

    ``price`` is the unit price snapshot taken when the order was priced;
    later catalog changes never touch it.
    """

    product_id: str
    name: str | None
    price: float
    quantity: int
    size: str | None
    color: str | None


class ShippingAddress(TypedDict):
    """Delivery destination captured at order creation."""

    street: str
    city: str
    postal_code: str
    country: str


class PaymentResult(TypedDict, total=False):
    """Last known provider-side payment details."""

    paypal_order_id: str
    transaction_id: str
    status: str
    email: str


class Order(TypedDict):
    """Orders table row representation."""

    id: UUID
    user_id: UUID
    line_items: list[OrderLineItem]
    total_price: float
    shipping_address: ShippingAddress
    is_paid: bool
    paid_at: datetime | None
    paypal_order_id: str | None
    payment_state: PaymentState
    payment_result: PaymentResult
    delivery: DeliveryState
    version: int
    created_at: datetime
    updated_at: datetime


class OrderCreate(TypedDict):
    """Data inserted when a new order is created."""

    user_id: str
    line_items: list[OrderLineItem]
    total_price: float
    shipping_address: ShippingAddress
    is_paid: bool
    payment_state: PaymentState
    payment_result: PaymentResult
    delivery: DeliveryState
    version: int


class OrderUpdate(TypedDict, total=False):
    """Fields the payment and delivery transitions may change."""

    is_paid: bool
    paid_at: str
    paypal_order_id: str
    payment_state: PaymentState
    payment_result: PaymentResult
    delivery: DeliveryState
