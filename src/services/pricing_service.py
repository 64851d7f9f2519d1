"""Order pricing: unit price snapshots and order totals."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable

from src.api.middleware.error_handler import NotFoundError
from src.core.money import ZERO, round_money, to_decimal, to_json_number
from src.models.order import OrderLineItem
from src.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)


@dataclass
class PricedOrder:
    """Result of pricing a set of requested line items."""

    line_items: list[OrderLineItem]
    total_price: Decimal
    skipped: list[str] = field(default_factory=list)


def line_items_total(line_items: Iterable[dict[str, Any]]) -> Decimal:
    """Sum ``price * quantity`` over stored line items, rounded to cents.

    Each stored price is already cent-rounded, so this reproduces the total
    computed at pricing time.
    """
    total = ZERO
    for item in line_items:
        total += to_decimal(item["price"]) * int(item["quantity"])
    return round_money(total)


class PricingService:
    """Recomputes line item prices and the order total from the catalog.

    Runs when an order's line items are set wholesale (creation). Nothing
    re-prices an order afterwards; any future edit of order contents must
    call ``compute_order`` again.
    """

    def __init__(self, catalog: CatalogService | None = None) -> None:
        self.catalog = catalog or CatalogService()

    async def compute_order(self, requested_items: Iterable[dict[str, Any]]) -> PricedOrder:
        """Price requested line items against the current catalog.

        Unit prices are rounded per item before summing. Items whose product
        cannot be resolved are skipped instead of failing the whole order.

        Args:
            requested_items: Dicts with product_id, quantity and optional size/color.

        Returns:
            PricedOrder: Snapshot line items, total and skipped product ids.
        """
        priced: list[OrderLineItem] = []
        skipped: list[str] = []
        total = ZERO

        for item in requested_items:
            product_id = str(item["product_id"])
            quantity = int(item["quantity"])

            try:
                resolved = await self.catalog.resolve(product_id)
            except NotFoundError:
                logger.warning("Skipping line item for unknown product %s", product_id)
                skipped.append(product_id)
                continue

            unit_price = round_money(resolved.unit_price)
            total += unit_price * quantity

            priced.append(
                OrderLineItem(
                    product_id=product_id,
                    name=resolved.name,
                    price=to_json_number(unit_price),
                    quantity=quantity,
                    size=item.get("size"),
                    color=item.get("color"),
                )
            )

        return PricedOrder(line_items=priced, total_price=round_money(total), skipped=skipped)
