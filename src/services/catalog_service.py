"""Catalog price resolution for order pricing."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from supabase import Client

from src.api.middleware.error_handler import NotFoundError
from src.core.money import ZERO, round_money, to_decimal
from src.core.supabase import get_supabase_client
from src.models.product import Product

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def discount_percentage(discount: Any) -> Decimal:
    """Read a discount stored either as a number or as ``{"percentage": n}``."""
    if discount is None:
        return ZERO
    if isinstance(discount, dict):
        discount = discount.get("percentage")
        if discount is None:
            return ZERO
    try:
        return to_decimal(discount)
    except ValueError:
        logger.warning("Ignoring malformed discount value: %r", discount)
        return ZERO


def apply_discount(price: Decimal, discount: Any) -> Decimal:
    """Return ``price`` net of a positive discount percentage, rounded to cents."""
    percentage = discount_percentage(discount)
    if percentage > 0:
        price = price * (1 - percentage / HUNDRED)
    return round_money(price)


def localized_name(name: Any, lang: str = "en") -> str | None:
    """Pick a display name from a plain or per-language product name."""
    if isinstance(name, dict):
        return name.get(lang) or name.get("en")
    return name


@dataclass(frozen=True)
class ResolvedPrice:
    """Unit price snapshot for one product at lookup time."""

    product_id: str
    name: str | None
    unit_price: Decimal


class CatalogService:
    """Read-only product lookups against the products table."""

    def __init__(self, supabase_client: Client | None = None) -> None:
        self._supabase_client = supabase_client

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def get_product(self, product_id: str) -> Product | None:
        """Get a product by ID.

        Args:
            product_id: The product's identifier.

        Returns:
            Product | None: The product row or None if not found.
        """
        response = (
            self.supabase.table("products")
            .select("id, name, price, discount, variants, images")
            .eq("id", str(product_id))
            .maybe_single()
            .execute()
        )
        return response.data if response and response.data else None

    async def resolve(self, product_id: str) -> ResolvedPrice:
        """Resolve a product reference to its name and discounted unit price.

        Raises:
            NotFoundError: If the product does not exist.
        """
        product = await self.get_product(product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        return ResolvedPrice(
            product_id=str(product_id),
            name=localized_name(product.get("name")),
            unit_price=apply_discount(to_decimal(product["price"]), product.get("discount")),
        )

    async def resolve_unit_price(self, product_id: str) -> Decimal:
        """Current unit price of a product net of its active discount.

        Raises:
            NotFoundError: If the product does not exist.
        """
        resolved = await self.resolve(product_id)
        return resolved.unit_price
