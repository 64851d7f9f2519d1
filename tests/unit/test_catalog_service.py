"""Unit tests for catalog price resolution and money helpers."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from src.api.middleware.error_handler import NotFoundError
from src.core.money import format_amount, round_money, to_decimal, to_json_number
from src.services.catalog_service import (
    CatalogService,
    apply_discount,
    discount_percentage,
    localized_name,
)


@pytest.fixture
def mock_supabase() -> MagicMock:
    """Create a mock Supabase client."""
    return MagicMock()


@pytest.fixture
def catalog_service(mock_supabase: MagicMock) -> CatalogService:
    """Create CatalogService with a mocked client."""
    return CatalogService(supabase_client=mock_supabase)


def _product_lookup(mock_supabase: MagicMock, product: dict | None) -> None:
    response = MagicMock()
    response.data = product
    mock_supabase.table.return_value.select.return_value.eq.return_value.maybe_single.return_value.execute.return_value = (
        response
    )


class TestMoney:
    """Tests for Decimal money helpers."""

    def test_rounds_half_up(self) -> None:
        """Half cents round away from zero, not to even."""
        assert round_money(Decimal("2.675")) == Decimal("2.68")
        assert round_money(Decimal("0.125")) == Decimal("0.13")

    def test_to_decimal_avoids_float_noise(self) -> None:
        """Floats go through their string form."""
        assert to_decimal(0.1) + to_decimal(0.2) == Decimal("0.3")

    def test_to_decimal_rejects_non_numbers(self) -> None:
        """None, booleans and text are not amounts."""
        for value in (None, True, "abc"):
            with pytest.raises(ValueError):
                to_decimal(value)

    def test_provider_amount_format(self) -> None:
        """Amounts are sent with exactly two decimals."""
        assert format_amount(Decimal("160")) == "160.00"
        assert format_amount(Decimal("19.999")) == "20.00"

    def test_json_number(self) -> None:
        """Stored numbers are cent-rounded floats."""
        assert to_json_number(Decimal("79.995")) == 80.0


class TestDiscounts:
    """Tests for discount helpers."""

    def test_twenty_percent_off_hundred(self) -> None:
        """100.00 at 20% off is 80.00."""
        assert apply_discount(Decimal("100.00"), 20) == Decimal("80.00")

    def test_discount_document_form(self) -> None:
        """A ``{"percentage": n}`` document is read like a number."""
        assert apply_discount(Decimal("100.00"), {"percentage": 20}) == Decimal("80.00")

    def test_zero_or_missing_discount_keeps_price(self) -> None:
        """No positive discount leaves the base price."""
        assert apply_discount(Decimal("59.99"), None) == Decimal("59.99")
        assert apply_discount(Decimal("59.99"), 0) == Decimal("59.99")
        assert apply_discount(Decimal("59.99"), {}) == Decimal("59.99")

    def test_negative_discount_is_ignored(self) -> None:
        """Only positive percentages reduce the price."""
        assert apply_discount(Decimal("50.00"), -10) == Decimal("50.00")

    def test_discounted_price_is_rounded(self) -> None:
        """33% off 9.99 rounds half-up to cents."""
        assert apply_discount(Decimal("9.99"), 33) == Decimal("6.69")

    def test_malformed_discount_is_zero(self) -> None:
        """Unparseable discounts count as no discount."""
        assert discount_percentage("lots") == Decimal("0")


class TestLocalizedName:
    """Tests for localized_name."""

    def test_plain_string(self) -> None:
        assert localized_name("Linen Shirt") == "Linen Shirt"

    def test_falls_back_to_english(self) -> None:
        assert localized_name({"en": "Shirt", "fr": "Chemise"}, lang="de") == "Shirt"
        assert localized_name({"en": "Shirt", "fr": "Chemise"}, lang="fr") == "Chemise"


class TestResolveUnitPrice:
    """Tests for CatalogService.resolve_unit_price."""

    @pytest.mark.asyncio
    async def test_returns_discounted_price(
        self, catalog_service: CatalogService, mock_supabase: MagicMock
    ) -> None:
        """Unit price is the base price net of the product discount."""
        _product_lookup(mock_supabase, {"id": "prod-1", "name": "Shirt", "price": 100, "discount": 20})

        price = await catalog_service.resolve_unit_price("prod-1")

        assert price == Decimal("80.00")
        mock_supabase.table.assert_called_with("products")

    @pytest.mark.asyncio
    async def test_unknown_product_raises_not_found(
        self, catalog_service: CatalogService, mock_supabase: MagicMock
    ) -> None:
        """A missing product is a NotFoundError."""
        _product_lookup(mock_supabase, None)

        with pytest.raises(NotFoundError):
            await catalog_service.resolve_unit_price("missing")

    @pytest.mark.asyncio
    async def test_resolve_uses_english_name(
        self, catalog_service: CatalogService, mock_supabase: MagicMock
    ) -> None:
        """Localized names resolve to English for the snapshot."""
        _product_lookup(
            mock_supabase,
            {"id": "prod-2", "name": {"en": "Scarf", "ar": "وشاح"}, "price": "25.50", "discount": None},
        )

        resolved = await catalog_service.resolve("prod-2")

        assert resolved.name == "Scarf"
        assert resolved.unit_price == Decimal("25.50")
