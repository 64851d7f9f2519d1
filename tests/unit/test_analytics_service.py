"""Unit tests for order analytics."""

from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from src.services.analytics_service import (
    AnalyticsService,
    best_customers,
    delivery_distribution,
    monthly_average_order_value,
    monthly_order_counts,
    monthly_revenue,
    order_totals,
    payment_status_distribution,
)

ALICE = "550e8400-e29b-41d4-a716-446655440000"
BOB = "550e8400-e29b-41d4-a716-446655440001"
CAROL = "550e8400-e29b-41d4-a716-446655440002"


def order(user_id: str, total: float, created_at: str, **fields: Any) -> dict[str, Any]:
    """An order row as the analytics query selects it."""
    row = {
        "user_id": user_id,
        "total_price": total,
        "payment_state": "paid",
        "payment_result": {"status": "COMPLETED"},
        "delivery": "processing",
        "created_at": created_at,
    }
    row.update(fields)
    return row


@pytest.fixture
def orders() -> list[dict[str, Any]]:
    """Five orders over three months; three settled."""
    return [
        order(ALICE, 100.0, "2026-01-10T09:00:00+00:00", delivery="delivered"),
        order(ALICE, 50.5, "2026-02-03T09:00:00+00:00", delivery="shipped"),
        order(BOB, 200.0, "2026-02-20T09:00:00+00:00"),
        # Operator flagged it paid; no settled payment
        order(BOB, 30.0, "2026-02-21T09:00:00+00:00", payment_state="pending", is_paid=True, payment_result=None),
        order(
            CAROL,
            10.0,
            "2026-03-01T09:00:00+00:00",
            payment_state="unpaid",
            payment_result={"status": "PENDING"},
            delivery="cancelled",
        ),
    ]


class TestTotals:
    """Tests for order_totals."""

    def test_only_settled_orders_count_as_revenue(self, orders: list) -> None:
        totals = order_totals(orders)

        assert totals == {"orders": 5, "paid_orders": 3, "revenue": 350.5, "average_order_value": 116.83}

    def test_no_orders(self) -> None:
        assert order_totals([]) == {"orders": 0, "paid_orders": 0, "revenue": 0.0, "average_order_value": 0.0}


class TestMonthlySeries:
    """Tests for the per-month series."""

    def test_revenue_per_month(self, orders: list) -> None:
        assert monthly_revenue(orders) == {"labels": ["2026-01", "2026-02"], "values": [100.0, 250.5]}

    def test_orders_per_month_include_unpaid(self, orders: list) -> None:
        assert monthly_order_counts(orders) == {"labels": ["2026-01", "2026-02", "2026-03"], "values": [1, 3, 1]}

    def test_average_order_value_per_month(self, orders: list) -> None:
        assert monthly_average_order_value(orders) == {"labels": ["2026-01", "2026-02"], "values": [100.0, 125.25]}

    def test_rows_without_a_readable_date_are_left_out(self, orders: list) -> None:
        orders.append(order(CAROL, 999.0, "not a date"))
        orders.append(order(CAROL, 999.0, None))

        assert monthly_revenue(orders)["values"] == [100.0, 250.5]
        assert order_totals(orders)["paid_orders"] == 5


class TestDistributions:
    """Tests for the status distributions."""

    def test_payment_status(self, orders: list) -> None:
        result = payment_status_distribution(orders)

        assert result["labels"][0] == "COMPLETED"
        assert dict(zip(result["labels"], result["values"])) == {"COMPLETED": 3, "PENDING": 1, "Unknown": 1}

    def test_delivery_ranked_by_count(self, orders: list) -> None:
        assert delivery_distribution(orders) == {
            "labels": ["processing", "cancelled", "delivered", "shipped"],
            "values": [2, 1, 1, 1],
        }


class TestBestCustomers:
    """Tests for best_customers."""

    def test_ranked_by_settled_spend(self, orders: list) -> None:
        result = best_customers(orders)

        assert [customer["user_id"] for customer in result] == [BOB, ALICE]
        assert result[0] == {
            "user_id": BOB,
            "total_spent": 200.0,
            "orders_count": 1,
            "last_order": "2026-02-20T09:00:00+00:00",
        }
        assert result[1]["total_spent"] == 150.5
        assert result[1]["orders_count"] == 2
        assert result[1]["last_order"] == "2026-02-03T09:00:00+00:00"

    def test_limit(self, orders: list) -> None:
        assert [customer["user_id"] for customer in best_customers(orders, limit=1)] == [BOB]

    def test_customers_without_paid_orders_are_omitted(self, orders: list) -> None:
        assert CAROL not in {customer["user_id"] for customer in best_customers(orders)}


class TestAnalyticsService:
    """Tests for AnalyticsService."""

    @staticmethod
    def _serve(mock_supabase: MagicMock, rows: list) -> MagicMock:
        def page(start: int, end: int) -> MagicMock:
            query = MagicMock()
            query.execute.return_value = MagicMock(data=rows[start : end + 1])
            return query

        ranged = mock_supabase.table.return_value.select.return_value.order.return_value.range
        ranged.side_effect = page
        return ranged

    @pytest.mark.asyncio
    async def test_reads_every_page(self, orders: list) -> None:
        mock_supabase = MagicMock()
        ranged = self._serve(mock_supabase, orders)

        with patch("src.services.analytics_service.PAGE_SIZE", 2):
            result = await AnalyticsService(supabase_client=mock_supabase).order_analytics()

        assert [call.args for call in ranged.call_args_list] == [(0, 1), (2, 3), (4, 5)]
        assert result["totals"]["orders"] == 5
        mock_supabase.table.assert_called_with("orders")

    @pytest.mark.asyncio
    async def test_dashboard_sections(self, orders: list) -> None:
        mock_supabase = MagicMock()
        self._serve(mock_supabase, orders)

        result = await AnalyticsService(supabase_client=mock_supabase).order_analytics(top_customers=1)

        assert set(result) == {
            "totals",
            "revenue",
            "orders",
            "average_order_value",
            "payment_status",
            "delivery_status",
            "best_customers",
        }
        assert len(result["best_customers"]) == 1

    @pytest.mark.asyncio
    async def test_empty_table(self) -> None:
        mock_supabase = MagicMock()
        self._serve(mock_supabase, [])

        result = await AnalyticsService(supabase_client=mock_supabase).order_analytics()

        assert result["revenue"] == {"labels": [], "values": []}
        assert result["best_customers"] == []
