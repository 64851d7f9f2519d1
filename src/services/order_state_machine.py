"""Payment and delivery transitions for orders."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from src.api.middleware.error_handler import ConflictError, ValidationError
from src.core.config import Settings, get_settings
from src.models.order import DELIVERY_STATES, PAYMENT_STATES, Order, OrderStatus, OrderUpdate
from src.models.notification import NotificationKind, OrderEvent
from src.services.notification_service import NotificationService
from src.services.order_service import OrderService

logger = logging.getLogger(__name__)

TERMINAL_DELIVERY_STATES = frozenset({"delivered", "cancelled"})

# Forward-only shipping progression; cancelled sits outside it
DELIVERY_PROGRESSION: tuple[str, ...] = ("processing", "shipped", "in_transit", "delivered")


@dataclass(frozen=True)
class CaptureRecord:
    """Capture details pulled out of a provider capture response."""

    transaction_id: str
    status: str
    payer_email: str
    amount: Decimal | None = None
    currency: str = ""


def derive_status(order: Order) -> OrderStatus:
    """Collapse payment x delivery state into one lifecycle status.

    Delivery progress wins once it has moved past ``processing``. While an
    order is still processing, the payment side decides:

    - ``created``: nothing sent to the provider yet
    - ``payment_pending``: a provider order exists but funds have not moved
    - ``paid``: captured
    - ``delivery_processing``: flagged paid by an operator without a capture
    """
    delivery = order.get("delivery") or "processing"
    if delivery != "processing":
        return delivery  # type: ignore[return-value]

    payment_state = order.get("payment_state") or "pending"
    if payment_state == "paid":
        return "paid"
    if order.get("is_paid"):
        return "delivery_processing"
    if order.get("paypal_order_id") or payment_state == "authorized":
        return "payment_pending"
    return "created"


class OrderStateMachine:
    """Owns every change to an order's payment and delivery state.

    Each transition reads the order, validates the move, writes it through
    ``OrderService.apply_changes`` (compare-and-swap on ``version``) and then
    notifies the owner. A notification failure is logged and never undoes or
    fails the transition.
    """

    def __init__(
        self,
        orders: OrderService | None = None,
        notifications: NotificationService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.orders = orders or OrderService()
        self.notifications = notifications or NotificationService()
        self.settings = settings or get_settings()

    async def mark_paid(self, order: Order, capture: CaptureRecord, paypal_order_id: str) -> Order:
        """Record a successful capture and tell the owner.

        Args:
            order: The order as read before the capture call.
            capture: Capture details from the provider.
            paypal_order_id: Provider order that was captured.

        Returns:
            Order: The updated order.

        Raises:
            ConflictError: If the order changed since it was read.
        """
        changes = OrderUpdate(
            is_paid=True,
            paid_at=datetime.now(timezone.utc).isoformat(),
            paypal_order_id=paypal_order_id,
            payment_state="paid",
            payment_result={
                "paypal_order_id": paypal_order_id,
                "transaction_id": capture.transaction_id,
                "status": "paid",
                "email": capture.payer_email,
            },
        )
        updated = await self.orders.apply_changes(order, changes)
        logger.info("Order %s paid (transaction %s)", updated["id"], capture.transaction_id)

        await self._notify(
            updated,
            OrderEvent.PAYMENT_SUCCESS,
            "Payment Successful",
            f"Your payment for order #{updated['id']} has been processed successfully.",
        )
        return updated

    async def mark_payment_status(self, order_id: UUID | str, new_status: str) -> Order:
        """Operator override of the payment status.

        ``pending`` and ``paid`` both set ``is_paid``; other values only
        change the recorded status.

        Raises:
            NotFoundError: If the order does not exist.
            ValidationError: If the status is empty.
            ConflictError: If the order changed concurrently.
        """
        new_status = new_status.strip()
        if not new_status:
            raise ValidationError("Payment status is required")

        order = await self.orders.require_order(order_id)

        payment_result = dict(order.get("payment_result") or {})
        payment_result["status"] = new_status
        changes = OrderUpdate(payment_result=payment_result)

        if new_status in PAYMENT_STATES:
            changes["payment_state"] = new_status  # type: ignore[typeddict-item]
        if new_status in ("pending", "paid"):
            changes["is_paid"] = True
            if new_status == "paid" and not order.get("paid_at"):
                changes["paid_at"] = datetime.now(timezone.utc).isoformat()

        updated = await self.orders.apply_changes(order, changes)
        logger.info("Order %s payment status set to %s", updated["id"], new_status)

        await self._notify(
            updated,
            OrderEvent.PAYMENT_STATUS_CHANGED,
            "Payment Status Updated",
            f"Your order #{updated['id']} payment status is now: {new_status}.",
        )
        return updated

    def check_delivery_transition(self, order: Order, new_status: str) -> None:
        """Reject delivery moves that are not allowed.

        With ``strict_order_transitions`` off any known state may follow any
        other.

        Raises:
            ValidationError: For an unknown delivery state.
            ConflictError: For a move out of a terminal state, a shipping
                step on an unpaid order, or a step backwards.
        """
        if new_status not in DELIVERY_STATES:
            raise ValidationError(
                f"Invalid delivery status '{new_status}'",
                details=[{"loc": ["path", "status"], "msg": f"Must be one of {', '.join(DELIVERY_STATES)}", "type": "enum"}],
            )

        if not self.settings.strict_order_transitions:
            return

        current = order.get("delivery") or "processing"
        if current in TERMINAL_DELIVERY_STATES:
            raise ConflictError(f"Order is already {current}")

        if new_status == "cancelled":
            return

        if order.get("payment_state") != "paid" and new_status != "processing":
            raise ConflictError("Order must be paid before it can be shipped")

        if DELIVERY_PROGRESSION.index(new_status) < DELIVERY_PROGRESSION.index(current):
            raise ConflictError(f"Cannot move delivery from {current} back to {new_status}")

    async def advance_delivery(self, order_id: UUID | str, new_status: str) -> tuple[Order, bool]:
        """Move an order's delivery state.

        Setting the current state again changes nothing and sends nothing.

        Returns:
            tuple: The order and whether it changed.

        Raises:
            NotFoundError: If the order does not exist.
            ValidationError: For an unknown state.
            ConflictError: For a disallowed move or a concurrent change.
        """
        order = await self.orders.require_order(order_id)

        if order.get("delivery") == new_status:
            return order, False

        self.check_delivery_transition(order, new_status)

        updated = await self.orders.apply_changes(order, OrderUpdate(delivery=new_status))  # type: ignore[typeddict-item]
        logger.info("Order %s delivery %s -> %s", updated["id"], order.get("delivery"), new_status)

        await self._notify(
            updated,
            OrderEvent.DELIVERY_STATUS_CHANGED,
            "Delivery Status Updated",
            f"Your order #{updated['id']} delivery status is now: {new_status}.",
        )
        return updated, True

    async def _notify(self, order: Order, event: OrderEvent, title: str, message: str) -> None:
        try:
            await self.notifications.emit(
                order["user_id"],
                title,
                message,
                kind=NotificationKind.ORDER,
                event=event.value,
                order_id=order["id"],
            )
        except Exception as e:
            logger.error("Failed to notify owner of order %s (%s): %s", order["id"], event.value, e)
