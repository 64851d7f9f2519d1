"""Order analytics Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ChartSeries(BaseModel):
    """Parallel labels and values for a dashboard chart."""

    labels: list[str] = Field(default_factory=list, description="Month (YYYY-MM) or status labels")
    values: list[float] = Field(default_factory=list, description="Value for each label")


class OrderTotals(BaseModel):
    """Headline order figures."""

    orders: int = Field(description="Orders placed")
    paid_orders: int = Field(description="Orders with a settled payment")
    revenue: float = Field(description="Settled revenue")
    average_order_value: float = Field(description="Settled revenue per paid order")


class CustomerSpend(BaseModel):
    """One customer's settled spend."""

    user_id: UUID
    total_spent: float
    orders_count: int = Field(description="Paid orders")
    last_order: datetime | None = None


class OrderAnalyticsResponse(BaseModel):
    """Schema for the admin order dashboard."""

    totals: OrderTotals
    revenue: ChartSeries = Field(description="Settled revenue per month")
    orders: ChartSeries = Field(description="Orders placed per month")
    average_order_value: ChartSeries = Field(description="Average paid order value per month")
    payment_status: ChartSeries = Field(description="Orders by recorded payment status")
    delivery_status: ChartSeries = Field(description="Orders by delivery state")
    best_customers: list[CustomerSpend] = Field(default_factory=list, description="Highest spending customers")
