"""Order Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OrderSort(str, Enum):
    """Available sort options for the administrative order listing."""

    NEWEST = "newest"
    OLDEST = "oldest"
    PRICE_DESC = "price_desc"
    PRICE_ASC = "price_asc"


class LineItemRequest(BaseModel):
    """A requested line item. Prices are never taken from the client."""

    product_id: str = Field(min_length=1, description="Product identifier")
    quantity: int = Field(ge=1, description="Quantity ordered")
    size: str | None = Field(default=None, description="Selected size variant")
    color: str | None = Field(default=None, description="Selected color variant")


class ShippingAddressSchema(BaseModel):
    """Delivery destination captured with the order."""

    model_config = ConfigDict(from_attributes=True)

    street: str = Field(min_length=1, description="Street and number")
    city: str = Field(min_length=1, description="City")
    postal_code: str = Field(min_length=1, description="Postal code")
    country: str = Field(min_length=1, description="Country")


class OrderCreateRequest(BaseModel):
    """Schema for creating an order via POST /order."""

    line_items: list[LineItemRequest] = Field(description="Cart contents")
    shipping_address: ShippingAddressSchema = Field(description="Delivery destination")
    total_price: Decimal | None = Field(
        default=None,
        ge=0,
        description="Total the client displayed. Advisory only; the server computes the stored total.",
    )


class OrderLineItemSchema(BaseModel):
    """A stored line item with its unit price snapshot."""

    model_config = ConfigDict(from_attributes=True)

    product_id: str = Field(description="Product identifier")
    name: str | None = Field(default=None, description="Product name at pricing time")
    price: float = Field(description="Unit price snapshot")
    quantity: int = Field(description="Quantity ordered")
    size: str | None = Field(default=None, description="Selected size variant")
    color: str | None = Field(default=None, description="Selected color variant")


class PaymentResultSchema(BaseModel):
    """Last known provider-side payment details."""

    model_config = ConfigDict(from_attributes=True)

    paypal_order_id: str | None = Field(default=None, description="PayPal order ID")
    transaction_id: str | None = Field(default=None, description="PayPal capture ID")
    status: str | None = Field(default=None, description="Payment status")
    email: str | None = Field(default=None, description="Payer email")


class OrderResponse(BaseModel):
    """Schema for order API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Order unique identifier")
    user_id: UUID = Field(description="Owner of the order")
    line_items: list[OrderLineItemSchema] = Field(description="Order line items")
    total_price: float = Field(description="Order total")
    shipping_address: ShippingAddressSchema | None = Field(default=None, description="Delivery destination")
    is_paid: bool = Field(default=False, description="Whether funds were captured or marked paid")
    paid_at: datetime | None = Field(default=None, description="Payment timestamp")
    paypal_order_id: str | None = Field(default=None, description="PayPal order ID")
    payment_state: Literal["pending", "authorized", "paid"] = Field(default="pending", description="Payment state")
    payment_result: PaymentResultSchema | None = Field(default=None, description="Provider payment details")
    delivery: Literal["processing", "shipped", "in_transit", "delivered", "cancelled"] = Field(
        default="processing", description="Delivery state"
    )
    status: str = Field(default="created", description="Lifecycle status derived from payment and delivery")
    version: int = Field(default=1, description="Write version")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")

    @classmethod
    def from_order(cls, order: dict[str, Any]) -> "OrderResponse":
        """Build a response from a stored order, adding the derived status."""
        from src.services.order_state_machine import derive_status

        return cls(**{**order, "status": derive_status(order)})


class OrderCreateResponse(BaseModel):
    """Schema for the order creation response."""

    success: bool = Field(default=True)
    message: str = Field(default="Order created, awaiting PayPal payment")
    order: OrderResponse
    skipped_product_ids: list[str] = Field(
        default_factory=list,
        description="Requested products that could not be found and were left out",
    )


class OrderListResponse(BaseModel):
    """Schema for order list API responses."""

    items: list[OrderResponse] = Field(description="List of orders")


class OrderFilters(BaseModel):
    """Query parameters for the administrative order listing."""

    model_config = ConfigDict(from_attributes=True)

    # Payment status recorded in payment_result
    status: str | None = Field(default=None, description="Payment status filter")

    # Payer email search
    search: str | None = Field(default=None, description="Search in payer email")

    # Inclusive date range, day granularity
    start_date: date | None = Field(default=None, description="Created on or after")
    end_date: date | None = Field(default=None, description="Created on or before")

    delivery: Literal["processing", "shipped", "in_transit", "delivered", "cancelled"] | None = Field(
        default=None, description="Delivery state filter"
    )

    sort: OrderSort = Field(default=OrderSort.NEWEST, description="Sort order for results")

    page: int = Field(default=1, ge=1, description="Page number")
    limit: int = Field(default=10, ge=1, le=100, description="Page size")

    @model_validator(mode="after")
    def check_date_range(self) -> "OrderFilters":
        """Reject an end date before the start date."""
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class PaginatedOrdersResponse(BaseModel):
    """Schema for the administrative order listing."""

    items: list[OrderResponse] = Field(description="Orders on this page")
    current_page: int = Field(description="Current page number")
    total_pages: int = Field(description="Number of pages")
    total_orders: int = Field(description="Number of matching orders")


class PayPalConfigResponse(BaseModel):
    """Public PayPal settings for the storefront."""

    client_id: str = Field(description="PayPal client ID")
    currency: str = Field(description="Currency code")
    sandbox: bool = Field(description="Whether the sandbox API is in use")


class PayPalCreateResponse(BaseModel):
    """Schema for the PayPal order creation response."""

    id: str = Field(description="PayPal order ID to approve")
    order: OrderResponse


class PayPalCaptureRequest(BaseModel):
    """Schema for capturing an approved PayPal order."""

    orderID: str | None = Field(
        default=None,
        min_length=1,
        description="PayPal order ID. Defaults to the one stored on the order.",
    )


class PayPalCaptureResponse(BaseModel):
    """Schema for the PayPal capture response."""

    success: bool = Field(default=True)
    order: OrderResponse


class OrderStatusResponse(BaseModel):
    """Schema for manual status changes."""

    message: str = Field(description="What happened")
    changed: bool = Field(default=True, description="Whether the order was modified")
    order: OrderResponse
