"""Order and PayPal settlement API routes."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import ValidationError as PydanticValidationError

from src.api.deps import AdminUser, CurrentUser, is_admin
from src.api.middleware.error_handler import ValidationError
from src.models.order import DeliveryState
from src.schemas.order import (
    OrderCreateRequest,
    OrderCreateResponse,
    OrderFilters,
    OrderListResponse,
    OrderResponse,
    OrderSort,
    OrderStatusResponse,
    PaginatedOrdersResponse,
    PayPalCaptureRequest,
    PayPalCaptureResponse,
    PayPalConfigResponse,
    PayPalCreateResponse,
)
from src.services.order_service import OrderService
from src.services.order_state_machine import OrderStateMachine
from src.services.settlement_service import SettlementService

router = APIRouter(prefix="/order", tags=["orders"])


@router.get(
    "/paypal/config",
    response_model=PayPalConfigResponse,
    summary="Get PayPal client configuration",
    description="Returns the public PayPal client ID used by the storefront. No authentication required.",
)
async def get_paypal_config() -> PayPalConfigResponse:
    """Return public PayPal settings."""
    service = SettlementService()
    return PayPalConfigResponse(**service.get_paypal_config())


@router.post(
    "",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an order",
    description="Creates an unpaid order. Line item prices and the total are computed from the catalog.",
)
async def create_order(data: OrderCreateRequest, user: CurrentUser) -> OrderCreateResponse:
    """Create a pending, unpaid order from cart contents.

    Args:
        data: Line items, shipping address and the advisory client total.
        user: The authenticated user.

    Returns:
        OrderCreateResponse: The stored order and any skipped products.
    """
    service = OrderService()
    order, skipped = await service.create_order(
        user_id=user.user_id,
        line_items=[item.model_dump() for item in data.line_items],
        shipping_address=data.shipping_address.model_dump(),
        client_total=data.total_price,
    )
    return OrderCreateResponse(order=OrderResponse.from_order(order), skipped_product_ids=skipped)


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List my orders",
    description="Returns the authenticated user's orders, newest first.",
)
async def list_my_orders(user: CurrentUser) -> OrderListResponse:
    """List orders owned by the current user."""
    service = OrderService()
    orders = await service.list_orders_for_user(user.user_id)
    return OrderListResponse(items=[OrderResponse.from_order(order) for order in orders])


@router.get(
    "/all",
    response_model=PaginatedOrdersResponse,
    summary="List all orders",
    description="Paginated, filterable listing of every order. Requires administrator role.",
)
async def list_all_orders(
    admin: AdminUser,
    order_status: Annotated[
        str | None,
        Query(alias="status", description="Payment status recorded on the order"),
    ] = None,
    search: Annotated[
        str | None,
        Query(description="Search in payer email"),
    ] = None,
    start_date: Annotated[
        date | None,
        Query(description="Created on or after (YYYY-MM-DD)"),
    ] = None,
    end_date: Annotated[
        date | None,
        Query(description="Created on or before (YYYY-MM-DD)"),
    ] = None,
    delivery: Annotated[
        DeliveryState | None,
        Query(description="Delivery state filter"),
    ] = None,
    sort: Annotated[
        OrderSort,
        Query(description="Sort order for results"),
    ] = OrderSort.NEWEST,
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    limit: Annotated[int, Query(ge=1, le=100, description="Page size")] = 10,
) -> PaginatedOrdersResponse:
    """List every order for administrators.

    Args:
        admin: The authenticated administrator.
        order_status: Payment status filter.
        search: Payer email search.
        start_date: Inclusive start of the creation date range.
        end_date: Inclusive end of the creation date range.
        delivery: Delivery state filter.
        sort: Sort order.
        page: Page number.
        limit: Page size.

    Returns:
        PaginatedOrdersResponse: One page of orders with paging totals.
    """
    try:
        filters = OrderFilters(
            status=order_status,
            search=search,
            start_date=start_date,
            end_date=end_date,
            delivery=delivery,
            sort=sort,
            page=page,
            limit=limit,
        )
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid order filters",
            details=[{"loc": ["query"], "msg": err["msg"], "type": err["type"]} for err in e.errors()],
        ) from e

    service = OrderService()
    result = await service.list_all_orders(filters)

    return PaginatedOrdersResponse(
        items=[OrderResponse.from_order(order) for order in result["items"]],
        current_page=result["current_page"],
        total_pages=result["total_pages"],
        total_orders=result["total_orders"],
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get an order",
    description="Returns an order owned by the caller, or any order for administrators.",
)
async def get_order(order_id: UUID, user: CurrentUser) -> OrderResponse:
    """Get a single order.

    Raises:
        NotFoundError: 404 if the order does not exist.
        AuthorizationError: 403 if it belongs to someone else.
    """
    service = OrderService()
    order = await service.get_order_for(order_id, user, is_admin=is_admin(user))
    return OrderResponse.from_order(order)


@router.post(
    "/{order_id}/paypal/create",
    response_model=PayPalCreateResponse,
    summary="Create PayPal order",
    description="Creates a PayPal order for the stored total after checking it against the line items.",
)
async def create_paypal_order(order_id: UUID, user: CurrentUser) -> PayPalCreateResponse:
    """Start settlement for an order.

    Returns:
        PayPalCreateResponse: The PayPal order ID to approve and the order.

    Raises:
        PriceMismatchError: 400 if the stored total is inconsistent.
        GatewayError: If PayPal rejects the request.
    """
    service = SettlementService()
    paypal_order_id, order = await service.create_intent(order_id, user, is_admin=is_admin(user))
    return PayPalCreateResponse(id=paypal_order_id, order=OrderResponse.from_order(order))


@router.post(
    "/{order_id}/paypal/capture",
    response_model=PayPalCaptureResponse,
    summary="Capture PayPal order",
    description="Captures an approved PayPal order and marks the order paid.",
)
async def capture_paypal_order(
    order_id: UUID,
    user: CurrentUser,
    data: PayPalCaptureRequest | None = None,
) -> PayPalCaptureResponse:
    """Capture funds for an approved PayPal order.

    Raises:
        CaptureMissingError: 400 if PayPal returned no capture record.
        GatewayError: If PayPal rejects the capture.
    """
    service = SettlementService()
    order = await service.capture_intent(
        order_id,
        data.orderID if data else None,
        user,
        is_admin=is_admin(user),
    )
    return PayPalCaptureResponse(success=True, order=OrderResponse.from_order(order))


@router.put(
    "/delivery/{order_id}/{delivery_status}",
    response_model=OrderStatusResponse,
    summary="Update delivery status",
    description="Moves an order's delivery state. Requires administrator role.",
)
async def update_delivery_status(
    order_id: UUID,
    delivery_status: str,
    admin: AdminUser,
) -> OrderStatusResponse:
    """Advance delivery and notify the owner.

    Raises:
        ValidationError: 400 for an unknown delivery state.
        ConflictError: 409 for a disallowed transition.
    """
    state_machine = OrderStateMachine()
    order, changed = await state_machine.advance_delivery(order_id, delivery_status)
    message = "Delivery status updated" if changed else "Delivery status unchanged"
    return OrderStatusResponse(message=message, changed=changed, order=OrderResponse.from_order(order))


@router.put(
    "/{order_id}/{payment_status}",
    response_model=OrderStatusResponse,
    summary="Update payment status",
    description="Manually overrides an order's payment status. Requires administrator role.",
)
async def update_payment_status(
    order_id: UUID,
    payment_status: str,
    admin: AdminUser,
) -> OrderStatusResponse:
    """Set the payment status and notify the owner."""
    state_machine = OrderStateMachine()
    order = await state_machine.mark_payment_status(order_id, payment_status)
    return OrderStatusResponse(message="Payment status updated", order=OrderResponse.from_order(order))
