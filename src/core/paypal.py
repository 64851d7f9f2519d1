"""PayPal REST client with a process-wide access token cache."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Awaitable, Callable

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from src.api.middleware.error_handler import GatewayAuthError, GatewayError, GatewayTimeoutError
from src.core.config import Settings, get_settings
from src.core.money import format_amount

logger = logging.getLogger(__name__)

# One retry after a short delay, then fail
TOKEN_MAX_ATTEMPTS = 2

TOKEN_PATH = "/v1/oauth2/token"
ORDERS_PATH = "/v2/checkout/orders"


@dataclass(frozen=True)
class AccessToken:
    """Bearer token and the monotonic time after which it must not be used."""

    value: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        """Check the token against the given monotonic time."""
        return now < self.expires_at


def _consume_exception(task: asyncio.Task[str]) -> None:
    # Runs even when every waiter was cancelled, so a failure is never left unretrieved
    if not task.cancelled() and task.exception() is not None:
        logger.debug("PayPal token refresh failed: %s", task.exception())


class PayPalTokenCache:
    """Process-wide PayPal access token.

    Lifecycle:
    - empty until the first ``get_token()``;
    - holds the token until the provider's ``expires_in`` minus a margin;
    - ``invalidate()`` drops it early (e.g. after a 401);
    - an absent or expired token is refreshed by a single shared task, so N
      concurrent callers produce one token request. No lock is held while
      the request is in flight.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[tuple[str, int]]],
        expiry_margin_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._margin = expiry_margin_seconds
        self._clock = clock
        self._token: AccessToken | None = None
        self._refresh_task: asyncio.Task[str] | None = None
        self.refresh_count = 0

    @property
    def has_valid_token(self) -> bool:
        """Whether a cached token can be used right now."""
        return self._token is not None and self._token.is_valid(self._clock())

    async def get_token(self) -> str:
        """Return a valid access token, refreshing it if needed.

        Raises:
            GatewayAuthError: If the token cannot be obtained.
            GatewayTimeoutError: If the token request timed out.
        """
        token = self._token
        if token is not None and token.is_valid(self._clock()):
            return token.value

        if self._refresh_task is None:
            self._refresh_task = asyncio.create_task(self._refresh())
            self._refresh_task.add_done_callback(_consume_exception)

        # Shielded so one cancelled waiter does not cancel the shared refresh
        return await asyncio.shield(self._refresh_task)

    def invalidate(self) -> None:
        """Drop the cached token; the next caller refreshes it."""
        self._token = None

    async def _refresh(self) -> str:
        try:
            value, expires_in = await self._fetch()
            lifetime = max(0, expires_in - self._margin)
            self._token = AccessToken(value=value, expires_at=self._clock() + lifetime)
            self.refresh_count += 1
            logger.info("PayPal access token refreshed (valid for %ds)", lifetime)
            return value
        finally:
            self._refresh_task = None


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class PayPalClient:
    """Thin async client for the PayPal Orders v2 API.

    Every call carries the configured timeout. A timeout surfaces as
    ``GatewayTimeoutError`` and any non-2xx answer as ``GatewayError`` with
    the provider's body attached.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._http = httpx.AsyncClient(
            base_url=self.settings.paypal_api_base,
            timeout=httpx.Timeout(self.settings.paypal_timeout_seconds),
            transport=transport,
        )
        self.token_cache = PayPalTokenCache(
            self._request_token_with_retry,
            expiry_margin_seconds=self.settings.paypal_token_expiry_margin_seconds,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    async def _request_token(self) -> tuple[str, int]:
        """Client-credentials exchange against the OAuth endpoint."""
        try:
            response = await self._http.post(
                TOKEN_PATH,
                data={"grant_type": "client_credentials"},
                auth=(self.settings.paypal_client_id, self.settings.paypal_client_secret),
                headers={"Accept": "application/json"},
            )
        except httpx.TimeoutException as e:
            raise GatewayTimeoutError("PayPal token request timed out") from e
        except httpx.HTTPError as e:
            raise GatewayAuthError(f"PayPal token request failed: {e}") from e

        if not response.is_success:
            body = _response_body(response)
            logger.error("PayPal token error (%d): %s", response.status_code, body)
            raise GatewayAuthError(provider_body=body)

        data = response.json()
        access_token = data.get("access_token")
        if not access_token:
            raise GatewayAuthError("PayPal token response missing access_token", provider_body=data)
        return access_token, int(data.get("expires_in", 0))

    async def _request_token_with_retry(self) -> tuple[str, int]:
        if not self.settings.is_paypal_configured:
            raise GatewayAuthError(
                "PayPal is not configured. Please set PAYPAL_CLIENT_ID and PAYPAL_CLIENT_SECRET."
            )

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(TOKEN_MAX_ATTEMPTS),
            wait=wait_fixed(self.settings.paypal_token_retry_delay_seconds),
            retry=retry_if_exception_type(GatewayAuthError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning("Retrying PayPal token request")
                result = await self._request_token()
        return result

    async def _post(
        self,
        path: str,
        payload: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> httpx.Response:
        token = await self.token_cache.get_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if request_id:
            headers["PayPal-Request-Id"] = request_id

        try:
            response = await self._http.post(path, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise GatewayTimeoutError(f"PayPal request to {path} timed out") from e
        except httpx.HTTPError as e:
            raise GatewayError(f"PayPal request failed: {e}", status_code=502) from e

        if response.status_code == 401:
            self.token_cache.invalidate()
        return response

    async def create_order(
        self,
        amount: Decimal,
        currency: str,
        reference_id: str,
    ) -> dict[str, Any]:
        """Create a CAPTURE-intent PayPal order for ``amount``.

        Returns:
            dict: Provider order object (``id``, ``status``, ``links``...).
        """
        payload = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": reference_id,
                    "amount": {"currency_code": currency, "value": format_amount(amount)},
                }
            ],
        }
        response = await self._post(ORDERS_PATH, payload)
        body = _response_body(response)
        if not response.is_success:
            logger.error("PayPal create error (%d): %s", response.status_code, body)
            raise GatewayError("PayPal order creation failed", provider_body=body)
        return body

    async def capture_order(self, paypal_order_id: str) -> dict[str, Any]:
        """Capture an approved PayPal order.

        The provider order id doubles as the idempotency key, so a repeated
        capture returns the original result instead of moving funds twice.
        """
        response = await self._post(
            f"{ORDERS_PATH}/{paypal_order_id}/capture",
            request_id=f"capture-{paypal_order_id}",
        )
        body = _response_body(response)
        if not response.is_success:
            logger.error("PayPal capture error (%d): %s", response.status_code, body)
            raise GatewayError("PayPal capture failed", provider_body=body)
        return body


# Global singleton instance
_paypal_client: PayPalClient | None = None


def get_paypal_client() -> PayPalClient:
    """Get or create the global PayPal client (and its token cache)."""
    global _paypal_client
    if _paypal_client is None:
        _paypal_client = PayPalClient()
    return _paypal_client


async def init_paypal_client() -> PayPalClient:
    """Create the PayPal client. Call at app startup."""
    client = get_paypal_client()
    if not client.settings.is_paypal_configured:
        logger.warning("PayPal credentials not configured. Settlement endpoints will fail.")
    return client


async def shutdown_paypal_client() -> None:
    """Close the PayPal client and drop the cached token. Call at app shutdown."""
    global _paypal_client
    if _paypal_client:
        await _paypal_client.aclose()
        _paypal_client = None
