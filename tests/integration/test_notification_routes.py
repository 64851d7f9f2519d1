"""Integration tests for notification endpoints."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from src.api.middleware.error_handler import AuthorizationError, NotFoundError

OWNER_ID = "550e8400-e29b-41d4-a716-446655440000"
OTHER_USER_ID = "550e8400-e29b-41d4-a716-446655440099"
NOTIFICATION_ID = "880e8400-e29b-41d4-a716-446655440000"


def notification(**fields: Any) -> dict[str, Any]:
    """A stored notification row."""
    row = {
        "id": NOTIFICATION_ID,
        "user_id": OWNER_ID,
        "title": "Payment Successful",
        "message": "Your payment for order #770e8400 has been processed successfully.",
        "kind": "order",
        "event": "payment_success",
        "order_id": "770e8400-e29b-41d4-a716-446655440000",
        "scope": "single",
        "image": None,
        "is_read": False,
        "created_at": "2026-01-15T10:05:00+00:00",
    }
    row.update(fields)
    return row


class TestCreateNotification:
    """Tests for POST /api/notifications."""

    def test_requires_admin(self, client: TestClient, as_owner: dict) -> None:
        response = client.post(
            "/api/notifications",
            json={"title": "Hi", "message": "Hello", "user_id": OWNER_ID},
            headers=as_owner,
        )

        assert response.status_code == 403

    @patch("src.api.routes.notifications.NotificationService")
    def test_send_to_user(self, mock_service_cls: MagicMock, client: TestClient, as_admin: dict) -> None:
        stored = notification(kind="system", event=None, order_id=None, title="Hi", message="Hello")
        mock_service_cls.return_value.create_notification = AsyncMock(return_value=stored)

        response = client.post(
            "/api/notifications",
            json={"title": "Hi", "message": "Hello", "user_id": OWNER_ID},
            headers=as_admin,
        )

        assert response.status_code == 201
        assert response.json()["title"] == "Hi"
        kwargs = mock_service_cls.return_value.create_notification.call_args.kwargs
        assert kwargs["scope"] == "single"
        assert str(kwargs["user_id"]) == OWNER_ID

    def test_single_scope_needs_recipient(self, client: TestClient, as_admin: dict) -> None:
        response = client.post(
            "/api/notifications",
            json={"title": "Hi", "message": "Hello", "scope": "single"},
            headers=as_admin,
        )

        assert response.status_code == 400

    @patch("src.api.routes.notifications.NotificationService")
    def test_global_notification(self, mock_service_cls: MagicMock, client: TestClient, as_admin: dict) -> None:
        stored = notification(user_id=None, scope="global", kind="promo", event=None, order_id=None)
        mock_service_cls.return_value.create_notification = AsyncMock(return_value=stored)

        response = client.post(
            "/api/notifications",
            json={"title": "Sale", "message": "20% off", "scope": "global", "kind": "promo"},
            headers=as_admin,
        )

        assert response.status_code == 201
        assert response.json()["scope"] == "global"
        assert response.json()["user_id"] is None


class TestFeeds:
    """Tests for the notification feed endpoints."""

    @patch("src.api.routes.notifications.NotificationService")
    def test_my_feed_counts_own_unread(self, mock_service_cls: MagicMock, client: TestClient, as_owner: dict) -> None:
        mock_service_cls.return_value.list_for_user = AsyncMock(
            return_value=[
                notification(id="880e8400-e29b-41d4-a716-446655440002"),
                notification(id="880e8400-e29b-41d4-a716-446655440001", is_read=True),
                notification(user_id=None, scope="global"),
            ]
        )

        response = client.get("/api/notifications", headers=as_owner)

        assert response.status_code == 200
        data = response.json()
        assert len(data["items"]) == 3
        # The unread global notification is listed but not counted
        assert data["unread"] == 1

    def test_other_users_feed_is_forbidden(self, client: TestClient, as_owner: dict) -> None:
        response = client.get(f"/api/notifications/user/{OTHER_USER_ID}", headers=as_owner)

        assert response.status_code == 403

    @patch("src.api.routes.notifications.NotificationService")
    def test_own_feed_by_id(self, mock_service_cls: MagicMock, client: TestClient, as_owner: dict) -> None:
        mock_service_cls.return_value.list_for_user = AsyncMock(return_value=[])

        response = client.get(f"/api/notifications/user/{OWNER_ID}", headers=as_owner)

        assert response.status_code == 200
        assert response.json() == {"items": [], "unread": 0}

    @patch("src.api.routes.notifications.NotificationService")
    def test_admin_reads_any_feed(self, mock_service_cls: MagicMock, client: TestClient, as_admin: dict) -> None:
        mock_service_cls.return_value.list_for_user = AsyncMock(return_value=[notification()])

        response = client.get(f"/api/notifications/user/{OWNER_ID}", headers=as_admin)

        assert response.status_code == 200
        assert str(mock_service_cls.return_value.list_for_user.call_args[0][0]) == OWNER_ID

    def test_feed_requires_authentication(self, client: TestClient) -> None:
        assert client.get("/api/notifications").status_code == 401


class TestChangeNotification:
    """Tests for PATCH /read/{id} and DELETE /{id}."""

    @patch("src.api.routes.notifications.NotificationService")
    def test_mark_read(self, mock_service_cls: MagicMock, client: TestClient, as_owner: dict) -> None:
        mock_service_cls.return_value.mark_as_read = AsyncMock(return_value=notification(is_read=True))

        response = client.patch(f"/api/notifications/read/{NOTIFICATION_ID}", headers=as_owner)

        assert response.status_code == 200
        assert response.json()["is_read"] is True

    @patch("src.api.routes.notifications.NotificationService")
    def test_mark_read_missing(self, mock_service_cls: MagicMock, client: TestClient, as_owner: dict) -> None:
        mock_service_cls.return_value.mark_as_read = AsyncMock(side_effect=NotFoundError("Notification not found"))

        response = client.patch(f"/api/notifications/read/{NOTIFICATION_ID}", headers=as_owner)

        assert response.status_code == 404

    @patch("src.api.routes.notifications.NotificationService")
    def test_delete(self, mock_service_cls: MagicMock, client: TestClient, as_owner: dict) -> None:
        mock_service_cls.return_value.delete_notification = AsyncMock(return_value=notification())

        response = client.delete(f"/api/notifications/{NOTIFICATION_ID}", headers=as_owner)

        assert response.status_code == 204
        assert response.content == b""

    @patch("src.api.routes.notifications.NotificationService")
    def test_delete_someone_elses(self, mock_service_cls: MagicMock, client: TestClient, as_owner: dict) -> None:
        mock_service_cls.return_value.delete_notification = AsyncMock(
            side_effect=AuthorizationError("Not authorized to change this notification")
        )

        response = client.delete(f"/api/notifications/{NOTIFICATION_ID}", headers=as_owner)

        assert response.status_code == 403
