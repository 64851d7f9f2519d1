"""Order analytics API routes."""

from typing import Annotated

from fastapi import APIRouter, Query

from src.api.deps import AdminUser
from src.schemas.analytics import OrderAnalyticsResponse
from src.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get(
    "/orders",
    response_model=OrderAnalyticsResponse,
    summary="Order analytics",
    description="Revenue, order counts, status distributions and best customers. Requires administrator role.",
)
async def order_analytics(
    admin: AdminUser,
    customers: Annotated[int, Query(ge=1, le=50, description="Number of best customers")] = 5,
) -> OrderAnalyticsResponse:
    """Dashboard figures across every order.

    Args:
        admin: The authenticated administrator.
        customers: How many customers to rank by spend.

    Returns:
        OrderAnalyticsResponse: Totals, monthly series and distributions.
    """
    service = AnalyticsService()
    analytics = await service.order_analytics(top_customers=customers)
    return OrderAnalyticsResponse(**analytics)
