"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_SIGNING_KEY_JWK", "test-signing-key-jwk")
os.environ.setdefault("PAYPAL_API_BASE", "https://api-m.sandbox.paypal.com")
os.environ.setdefault("PAYPAL_CLIENT_ID", "test-paypal-client-id")
os.environ.setdefault("PAYPAL_CLIENT_SECRET", "test-paypal-client-secret")

OWNER_ID = "550e8400-e29b-41d4-a716-446655440000"
OTHER_USER_ID = "550e8400-e29b-41d4-a716-446655440099"
ADMIN_ID = "990e8400-e29b-41d4-a716-446655440000"
ORDER_ID = "770e8400-e29b-41d4-a716-446655440000"


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import Settings, get_settings

    # Clear the cache to ensure fresh settings
    get_settings.cache_clear()

    settings = get_settings()
    yield settings

    # Clean up cache after tests
    get_settings.cache_clear()


@pytest.fixture
def owner() -> Any:
    """The principal who owns ``sample_order``."""
    from src.schemas.auth import UserContext

    return UserContext(user_id=UUID(OWNER_ID), email="owner@example.com", role="user")


@pytest.fixture
def admin() -> Any:
    """A principal with the administrator role."""
    from src.schemas.auth import UserContext

    return UserContext(user_id=UUID(ADMIN_ID), email="admin@example.com", role="admin")


@pytest.fixture
def sample_order() -> dict[str, Any]:
    """A freshly created, unpaid order for 2 x 80.00."""
    return {
        "id": ORDER_ID,
        "user_id": OWNER_ID,
        "line_items": [
            {
                "product_id": "prod-1",
                "name": "Linen Shirt",
                "price": 80.0,
                "quantity": 2,
                "size": "M",
                "color": "white",
            }
        ],
        "total_price": 160.0,
        "shipping_address": {
            "street": "1 Main St",
            "city": "Springfield",
            "postal_code": "12345",
            "country": "US",
        },
        "is_paid": False,
        "paid_at": None,
        "paypal_order_id": None,
        "payment_state": "pending",
        "payment_result": {"status": "pending"},
        "delivery": "processing",
        "version": 1,
        "created_at": "2026-01-15T10:00:00+00:00",
        "updated_at": "2026-01-15T10:00:00+00:00",
    }


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    # Configure default mock responses
    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("src.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def client(mock_supabase_client: MagicMock) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Args:
        mock_supabase_client: Mocked Supabase client fixture.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app

    with TestClient(app) as test_client:
        yield test_client


def make_token_payload(user_id: str, role: str | None = "user", email: str | None = "user@example.com") -> Any:
    """Token payload returned by a patched ``decode_jwt``."""
    from src.schemas.auth import TokenPayload

    return TokenPayload(sub=user_id, email=email, role=role, exp=9999999999, iat=1700000000)


@pytest.fixture
def as_owner() -> Generator[dict[str, str], None, None]:
    """Authenticate requests as the order owner.

    Yields:
        dict: Headers to send with the request.
    """
    with patch("src.api.deps.decode_jwt", return_value=make_token_payload(OWNER_ID, email="owner@example.com")):
        yield {"Authorization": "Bearer owner-token"}


@pytest.fixture
def as_admin() -> Generator[dict[str, str], None, None]:
    """Authenticate requests as an administrator.

    Yields:
        dict: Headers to send with the request.
    """
    with patch("src.api.deps.decode_jwt", return_value=make_token_payload(ADMIN_ID, role="admin")):
        yield {"Authorization": "Bearer admin-token"}
