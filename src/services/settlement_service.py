"""Settlement of orders through PayPal."""

import logging
from typing import Any
from uuid import UUID

from src.api.middleware.error_handler import (
    CaptureMissingError,
    ConflictError,
    GatewayError,
    PriceMismatchError,
    ValidationError,
)
from src.core.config import Settings, get_settings
from src.core.money import round_money, to_decimal
from src.core.paypal import PayPalClient, get_paypal_client
from src.models.order import Order, OrderUpdate
from src.schemas.auth import UserContext
from src.services.order_service import OrderService
from src.services.order_state_machine import CaptureRecord, OrderStateMachine
from src.services.pricing_service import line_items_total

logger = logging.getLogger(__name__)


def extract_capture(data: dict[str, Any]) -> CaptureRecord:
    """Pull the capture record out of a PayPal capture response.

    Raises:
        CaptureMissingError: If ``purchase_units[0].payments.captures[0]``
            is absent, even on a successful HTTP response.
    """
    try:
        capture = data["purchase_units"][0]["payments"]["captures"][0]
    except (KeyError, IndexError, TypeError):
        capture = None

    if not capture or not capture.get("id"):
        raise CaptureMissingError(provider_body=data)

    amount = capture.get("amount") or {}
    try:
        value = round_money(to_decimal(amount.get("value")))
    except ValueError:
        value = None

    return CaptureRecord(
        transaction_id=capture["id"],
        status=capture.get("status", ""),
        payer_email=(data.get("payer") or {}).get("email_address", ""),
        amount=value,
        currency=amount.get("currency_code", ""),
    )


class SettlementService:
    """Creates and captures provider-side payments for stored orders."""

    def __init__(
        self,
        orders: OrderService | None = None,
        state_machine: OrderStateMachine | None = None,
        paypal: PayPalClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.orders = orders or OrderService()
        self.state_machine = state_machine or OrderStateMachine(orders=self.orders)
        self.paypal = paypal or get_paypal_client()
        self.settings = settings or get_settings()

    def get_paypal_config(self) -> dict[str, Any]:
        """Public values the storefront needs to render PayPal buttons."""
        return {
            "client_id": self.settings.paypal_client_id,
            "currency": self.settings.paypal_currency,
            "sandbox": self.settings.is_paypal_sandbox,
        }

    async def create_intent(
        self,
        order_id: UUID,
        principal: UserContext,
        is_admin: bool = False,
    ) -> tuple[str, Order]:
        """Create a PayPal order for a stored order.

        The stored total must match the sum of its line items to the cent
        before anything is sent to the provider.

        Returns:
            tuple: The provider order id and the updated order.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the principal does not own it.
            ValidationError: If it is already paid.
            PriceMismatchError: If the stored total is inconsistent.
            GatewayError: If the provider rejects the request.
        """
        order = await self.orders.get_order_for(order_id, principal, is_admin)
        # is_paid alone can be an operator flag; only a settled payment blocks a new intent
        if order.get("payment_state") == "paid":
            raise ValidationError("Order is already paid")

        expected = line_items_total(order.get("line_items") or [])
        stored = round_money(to_decimal(order["total_price"]))
        if expected != stored:
            logger.warning("Price mismatch on order %s: stored %s, computed %s", order["id"], stored, expected)
            raise PriceMismatchError(
                "Price mismatch",
                details=[{"msg": f"Order total {stored} does not match line items total {expected}", "type": "price_mismatch"}],
            )

        provider_order = await self.paypal.create_order(
            amount=expected,
            currency=self.settings.paypal_currency,
            reference_id=str(order["id"]),
        )
        paypal_order_id = provider_order.get("id")
        if not paypal_order_id:
            raise GatewayError("PayPal did not return an order id", provider_body=provider_order)

        updated = await self.orders.apply_changes(
            order,
            OrderUpdate(
                paypal_order_id=paypal_order_id,
                payment_state="pending",
                payment_result={"paypal_order_id": paypal_order_id, "status": "pending"},
            ),
        )
        logger.info("PayPal order %s created for order %s (%s)", paypal_order_id, order["id"], expected)
        return paypal_order_id, updated

    async def capture_intent(
        self,
        order_id: UUID,
        paypal_order_id: str | None,
        principal: UserContext,
        is_admin: bool = False,
    ) -> Order:
        """Capture an approved PayPal order and mark the order paid.

        The order is only written after the provider answers with a capture
        record for the full order total.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the principal does not own it.
            ValidationError: If no provider order is known or the given one
                belongs to a different order.
            ConflictError: If the order is already paid.
            CaptureMissingError: If the provider returned no capture record.
            PriceMismatchError: If the captured amount or currency differs from
                the order total.
            GatewayError: If the provider rejects the capture.
        """
        order = await self.orders.get_order_for(order_id, principal, is_admin)
        if order.get("payment_state") == "paid":
            raise ConflictError("Order is already paid")

        stored_id = order.get("paypal_order_id")
        if not stored_id:
            raise ValidationError("No PayPal order to capture. Create one first.")
        if paypal_order_id and paypal_order_id != stored_id:
            raise ValidationError("PayPal order does not belong to this order")

        target = stored_id
        data = await self.paypal.capture_order(target)
        capture = extract_capture(data)

        expected = round_money(to_decimal(order["total_price"]))
        if capture.amount != expected or capture.currency != self.settings.paypal_currency:
            logger.error(
                "Captured %s %s for order %s, expected %s %s",
                capture.amount,
                capture.currency,
                order["id"],
                expected,
                self.settings.paypal_currency,
            )
            raise PriceMismatchError(
                "Captured amount does not match the order total",
                details=[
                    {
                        "msg": f"Captured {capture.amount} {capture.currency}, expected {expected} {self.settings.paypal_currency}",
                        "type": "price_mismatch",
                    }
                ],
            )

        return await self.state_machine.mark_paid(order, capture, target)
