"""Order analytics for the admin dashboard."""

import logging
from collections import Counter, defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Any

from supabase import Client

from src.core.money import ZERO, round_money, to_decimal, to_json_number
from src.core.supabase import get_supabase_client
from src.models.order import Order

logger = logging.getLogger(__name__)

ANALYTICS_COLUMNS = "user_id, total_price, payment_state, payment_result, delivery, created_at"

# PostgREST caps a single response, so orders are read in pages
PAGE_SIZE = 1000

UNKNOWN_STATUS = "Unknown"


def _month(order: Order) -> str | None:
    created_at = order.get("created_at")
    if not created_at:
        return None
    try:
        return datetime.fromisoformat(str(created_at)).strftime("%Y-%m")
    except ValueError:
        return None


def _is_settled(order: Order) -> bool:
    return order.get("payment_state") == "paid"


def _series(points: dict[str, Any]) -> dict[str, list]:
    labels = sorted(points)
    return {"labels": labels, "values": [points[label] for label in labels]}


def _distribution(counts: Counter) -> dict[str, list]:
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return {"labels": [label for label, _ in ranked], "values": [count for _, count in ranked]}


def monthly_revenue(orders: list[Order]) -> dict[str, list]:
    """Settled revenue per calendar month."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for order in orders:
        month = _month(order)
        if month and _is_settled(order):
            totals[month] += to_decimal(order["total_price"])
    return _series({month: to_json_number(total) for month, total in totals.items()})


def monthly_order_counts(orders: list[Order]) -> dict[str, list]:
    """Orders created per calendar month, paid or not."""
    counts: Counter = Counter(month for month in map(_month, orders) if month)
    return _series(dict(counts))


def monthly_average_order_value(orders: list[Order]) -> dict[str, list]:
    """Settled revenue divided by settled orders, per month."""
    revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: Counter = Counter()
    for order in orders:
        month = _month(order)
        if month and _is_settled(order):
            revenue[month] += to_decimal(order["total_price"])
            counts[month] += 1
    return _series({month: to_json_number(revenue[month] / counts[month]) for month in counts})


def payment_status_distribution(orders: list[Order]) -> dict[str, list]:
    """Order count by the payment status recorded on each order."""
    counts = Counter((order.get("payment_result") or {}).get("status") or UNKNOWN_STATUS for order in orders)
    return _distribution(counts)


def delivery_distribution(orders: list[Order]) -> dict[str, list]:
    """Order count by delivery state."""
    return _distribution(Counter(order.get("delivery") or "processing" for order in orders))


def order_totals(orders: list[Order]) -> dict[str, Any]:
    """Headline figures across every order."""
    settled = [order for order in orders if _is_settled(order)]
    revenue = sum((to_decimal(order["total_price"]) for order in settled), ZERO)
    average = revenue / len(settled) if settled else ZERO
    return {
        "orders": len(orders),
        "paid_orders": len(settled),
        "revenue": to_json_number(revenue),
        "average_order_value": to_json_number(average),
    }


def best_customers(orders: list[Order], limit: int = 5) -> list[dict[str, Any]]:
    """Customers ranked by settled spend.

    Args:
        orders: Order rows.
        limit: Number of customers to return.

    Returns:
        list: ``user_id``, ``total_spent``, ``orders_count`` and
            ``last_order`` per customer, highest spend first.
    """
    spent: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: Counter = Counter()
    last_order: dict[str, str] = {}

    for order in orders:
        if not _is_settled(order) or not order.get("user_id"):
            continue
        user_id = str(order["user_id"])
        spent[user_id] += to_decimal(order["total_price"])
        counts[user_id] += 1
        created_at = order.get("created_at")
        if created_at and created_at > last_order.get(user_id, ""):
            last_order[user_id] = created_at

    ranked = sorted(spent, key=lambda user_id: (-spent[user_id], user_id))[:limit]
    return [
        {
            "user_id": user_id,
            "total_spent": to_json_number(round_money(spent[user_id])),
            "orders_count": counts[user_id],
            "last_order": last_order.get(user_id),
        }
        for user_id in ranked
    ]


class AnalyticsService:
    """Aggregates the orders table for administrators.

    Revenue, averages and customer spend only count orders whose payment
    state is ``paid``. An order flagged ``is_paid`` by an operator without a
    settled payment is left out.
    """

    def __init__(self, supabase_client: Client | None = None) -> None:
        self._supabase_client = supabase_client

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def _fetch_orders(self) -> list[Order]:
        orders: list[Order] = []
        start = 0
        while True:
            response = (
                self.supabase.table("orders")
                .select(ANALYTICS_COLUMNS)
                .order("created_at")
                .range(start, start + PAGE_SIZE - 1)
                .execute()
            )
            batch = response.data or []
            orders.extend(batch)
            if len(batch) < PAGE_SIZE:
                return orders
            start += PAGE_SIZE

    async def order_analytics(self, top_customers: int = 5) -> dict[str, Any]:
        """Dashboard figures derived from every order.

        Args:
            top_customers: How many customers to rank by spend.

        Returns:
            dict: totals, monthly revenue/order/average series, payment and
                delivery distributions, and the best customers.
        """
        orders = await self._fetch_orders()
        logger.info("Computing order analytics over %d orders", len(orders))

        return {
            "totals": order_totals(orders),
            "revenue": monthly_revenue(orders),
            "orders": monthly_order_counts(orders),
            "average_order_value": monthly_average_order_value(orders),
            "payment_status": payment_status_distribution(orders),
            "delivery_status": delivery_distribution(orders),
            "best_customers": best_customers(orders, top_customers),
        }
