"""Fixtures shared by service unit tests."""

import asyncio
import copy
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.api.middleware.error_handler import ConflictError
from src.services.order_service import OrderService


class InMemoryOrders(OrderService):
    """OrderService backed by a dict instead of Supabase.

    Reads hand out copies and yield to the event loop once, so concurrent
    transitions interleave the way they would against a real database.
    Writes keep the compare-and-swap on ``version``.
    """

    def __init__(self) -> None:
        super().__init__(supabase_client=MagicMock(), pricing=MagicMock())
        self.rows: dict[str, dict[str, Any]] = {}

    def add(self, order: dict[str, Any]) -> dict[str, Any]:
        self.rows[str(order["id"])] = copy.deepcopy(order)
        return order

    async def get_order(self, order_id: Any) -> dict[str, Any] | None:
        row = self.rows.get(str(order_id))
        snapshot = copy.deepcopy(row) if row else None
        await asyncio.sleep(0)
        return snapshot

    async def apply_changes(self, order: dict[str, Any], changes: Any) -> dict[str, Any]:
        row = self.rows[str(order["id"])]
        if row["version"] != order["version"]:
            raise ConflictError("Order was modified concurrently. Reload it and retry.")
        row.update(copy.deepcopy(dict(changes)))
        row["version"] += 1
        return copy.deepcopy(row)


@pytest.fixture
def order_store(sample_order: dict[str, Any]) -> InMemoryOrders:
    """In-memory order store seeded with ``sample_order``."""
    store = InMemoryOrders()
    store.add(sample_order)
    return store


@pytest.fixture
def mock_notifications() -> MagicMock:
    """NotificationService whose emit is recorded."""
    notifications = MagicMock()
    notifications.emit = AsyncMock(return_value={"id": "notification-1"})
    return notifications


@pytest.fixture
def strict_settings() -> MagicMock:
    """Settings with strict delivery transitions."""
    settings = MagicMock()
    settings.strict_order_transitions = True
    settings.paypal_currency = "USD"
    settings.paypal_client_id = "client-id"
    settings.is_paypal_sandbox = True
    return settings
