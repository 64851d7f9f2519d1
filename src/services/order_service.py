"""Order creation, lookup and versioned persistence."""

import logging
import math
from datetime import datetime, time, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from supabase import Client

from src.api.middleware.error_handler import (
    APIError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.core.money import round_money, to_json_number
from src.core.supabase import get_supabase_client
from src.models.order import Order, OrderCreate, OrderUpdate, ShippingAddress
from src.schemas.auth import UserContext
from src.schemas.order import OrderFilters, OrderSort
from src.services.pricing_service import PricingService

logger = logging.getLogger(__name__)

SORT_COLUMNS: dict[OrderSort, tuple[str, bool]] = {
    OrderSort.NEWEST: ("created_at", True),
    OrderSort.OLDEST: ("created_at", False),
    OrderSort.PRICE_DESC: ("total_price", True),
    OrderSort.PRICE_ASC: ("total_price", False),
}


class OrderService:
    """Service for order records.

    Every update goes through ``apply_changes``, which compares and swaps on
    the order's ``version`` so a concurrent writer cannot be silently
    overwritten.
    """

    def __init__(
        self,
        supabase_client: Client | None = None,
        pricing: PricingService | None = None,
    ) -> None:
        self._supabase_client = supabase_client
        self.pricing = pricing or PricingService()

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def create_order(
        self,
        user_id: UUID,
        line_items: list[dict[str, Any]],
        shipping_address: ShippingAddress,
        client_total: Decimal | None = None,
    ) -> tuple[Order, list[str]]:
        """Price and store a new unpaid order.

        The client-supplied total is advisory: the stored total always comes
        from the pricing engine, and a disagreement is only logged.

        Args:
            user_id: Owner of the order.
            line_items: Requested items (product_id, quantity, size, color).
            shipping_address: Delivery destination snapshot.
            client_total: Total the client believes it is paying.

        Returns:
            tuple: The stored order and product ids that were skipped.

        Raises:
            ValidationError: If no items were given or none could be priced.
        """
        if not line_items:
            raise ValidationError("Order items required")

        priced = await self.pricing.compute_order(line_items)
        if not priced.line_items:
            raise ValidationError(
                "None of the requested products could be found",
                details=[
                    {"loc": ["body", "line_items"], "msg": f"Unknown product {product_id}", "type": "not_found"}
                    for product_id in priced.skipped
                ],
            )

        if client_total is not None and round_money(client_total) != priced.total_price:
            logger.warning(
                "Client total %s differs from computed total %s for user %s",
                client_total,
                priced.total_price,
                user_id,
            )

        data = OrderCreate(
            user_id=str(user_id),
            line_items=priced.line_items,
            total_price=to_json_number(priced.total_price),
            shipping_address=shipping_address,
            is_paid=False,
            payment_state="pending",
            payment_result={"status": "pending"},
            delivery="processing",
            version=1,
        )

        result = self.supabase.table("orders").insert(dict(data)).execute()
        if not result.data:
            raise APIError("Failed to create order")

        order = result.data[0]
        logger.info("Order %s created for user %s (total %s)", order["id"], user_id, priced.total_price)
        return order, priced.skipped

    async def get_order(self, order_id: UUID | str) -> Order | None:
        """Get an order by ID.

        Returns:
            Order | None: The order data or None if not found.
        """
        response = (
            self.supabase.table("orders")
            .select("*")
            .eq("id", str(order_id))
            .maybe_single()
            .execute()
        )
        return response.data if response and response.data else None

    async def require_order(self, order_id: UUID | str) -> Order:
        """Get an order or raise NotFoundError."""
        order = await self.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def get_order_for(self, order_id: UUID, principal: UserContext, is_admin: bool = False) -> Order:
        """Get an order the principal owns (or any order for administrators).

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the principal may not see it.
        """
        order = await self.require_order(order_id)
        if not is_admin and order.get("user_id") != str(principal.user_id):
            raise AuthorizationError("Not authorized to access this order")
        return order

    async def apply_changes(self, order: Order, changes: OrderUpdate) -> Order:
        """Write ``changes`` if the stored order still has ``order``'s version.

        Raises:
            ConflictError: If another write landed first.
        """
        version = int(order.get("version") or 1)
        payload = {
            **changes,
            "version": version + 1,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        response = (
            self.supabase.table("orders")
            .update(payload)
            .eq("id", str(order["id"]))
            .eq("version", version)
            .execute()
        )
        if not response.data:
            logger.warning("Version conflict updating order %s at version %d", order["id"], version)
            raise ConflictError("Order was modified concurrently. Reload it and retry.")
        return response.data[0]

    async def list_orders_for_user(self, user_id: UUID) -> list[Order]:
        """Orders owned by a user, newest first."""
        response = (
            self.supabase.table("orders")
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    async def list_all_orders(self, filters: OrderFilters) -> dict[str, Any]:
        """Administrative paginated listing.

        Returns:
            dict: items, current_page, total_pages and total_orders.
        """
        query = self.supabase.table("orders").select("*", count="exact")

        if filters.status:
            query = query.eq("payment_result->>status", filters.status)
        if filters.search:
            query = query.ilike("payment_result->>email", f"%{filters.search}%")
        if filters.delivery:
            query = query.eq("delivery", filters.delivery)
        if filters.start_date:
            start = datetime.combine(filters.start_date, time.min, tzinfo=timezone.utc)
            query = query.gte("created_at", start.isoformat())
        if filters.end_date:
            end = datetime.combine(filters.end_date, time.max, tzinfo=timezone.utc)
            query = query.lte("created_at", end.isoformat())

        column, descending = SORT_COLUMNS[filters.sort]
        skip = (filters.page - 1) * filters.limit

        response = (
            query.order(column, desc=descending)
            .range(skip, skip + filters.limit - 1)
            .execute()
        )

        total_orders = response.count or 0
        return {
            "items": response.data or [],
            "current_page": filters.page,
            "total_pages": math.ceil(total_orders / filters.limit),
            "total_orders": total_orders,
        }
