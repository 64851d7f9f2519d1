"""Notification persistence and live delivery."""

import logging
from typing import Any
from uuid import UUID

from supabase import Client

from src.api.middleware.error_handler import APIError, AuthorizationError, NotFoundError, ValidationError
from src.core.config import Settings, get_settings
from src.core.realtime import NOTIFICATION_EVENT, NotificationHub, get_notification_hub
from src.core.supabase import get_supabase_client
from src.models.notification import Notification, NotificationCreate, NotificationKind
from src.schemas.auth import UserContext

logger = logging.getLogger(__name__)


class NotificationService:
    """Persists notifications, then pushes them to live connections.

    The stored row is the durable record; live delivery is fire-and-forget
    and its failures are only logged.
    """

    def __init__(
        self,
        supabase_client: Client | None = None,
        hub: NotificationHub | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._supabase_client = supabase_client
        self.hub = hub or get_notification_hub()
        self.settings = settings or get_settings()

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def emit(
        self,
        recipient_id: UUID | str | None,
        title: str,
        message: str,
        kind: NotificationKind | str = NotificationKind.SYSTEM,
        event: str | None = None,
        order_id: UUID | str | None = None,
        image: str | None = None,
    ) -> Notification:
        """Persist a notification and deliver it live.

        A ``recipient_id`` of None makes a global notification delivered to
        every connected client.

        Returns:
            Notification: The stored notification.

        Raises:
            APIError: If the notification could not be stored.
        """
        data = NotificationCreate(
            user_id=str(recipient_id) if recipient_id is not None else None,
            title=title,
            message=message,
            kind=NotificationKind(kind).value,
            event=event,
            order_id=str(order_id) if order_id is not None else None,
            scope="single" if recipient_id is not None else "global",
            image=image,
            is_read=False,
        )

        result = self.supabase.table("notifications").insert(dict(data)).execute()
        if not result.data:
            raise APIError("Failed to store notification")

        notification = result.data[0]
        await self._push(notification)
        return notification

    async def _push(self, notification: dict[str, Any]) -> None:
        try:
            recipient = notification.get("user_id")
            if recipient:
                delivered = await self.hub.send_to_user(str(recipient), NOTIFICATION_EVENT, notification)
            else:
                delivered = await self.hub.broadcast(NOTIFICATION_EVENT, notification)
            logger.debug(
                "Notification %s pushed to %d connection(s)",
                notification.get("id"),
                delivered,
            )
        except Exception as e:
            logger.warning("Live delivery failed for notification %s: %s", notification.get("id"), e)

    async def create_notification(
        self,
        title: str,
        message: str,
        kind: NotificationKind | str = NotificationKind.SYSTEM,
        scope: str = "single",
        user_id: UUID | None = None,
        image: str | None = None,
    ) -> Notification:
        """Administrative send to one user or to everyone.

        Raises:
            ValidationError: If a single-recipient notification has no user.
        """
        if scope == "global":
            return await self.emit(None, title, message, kind=kind, image=image)
        if user_id is None:
            raise ValidationError(
                "user_id is required for single-recipient notifications",
                details=[{"loc": ["body", "user_id"], "msg": "Field required", "type": "missing"}],
            )
        return await self.emit(user_id, title, message, kind=kind, image=image)

    async def list_for_user(self, user_id: UUID | str, limit: int | None = None) -> list[Notification]:
        """User's own plus global notifications, newest first."""
        limit = limit or self.settings.notification_feed_limit
        response = (
            self.supabase.table("notifications")
            .select("*")
            .or_(f"user_id.eq.{user_id},scope.eq.global")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []

    async def get_notification(self, notification_id: UUID) -> Notification | None:
        """Get a notification by ID."""
        response = (
            self.supabase.table("notifications")
            .select("*")
            .eq("id", str(notification_id))
            .maybe_single()
            .execute()
        )
        return response.data if response and response.data else None

    async def _get_for_change(self, notification_id: UUID, principal: UserContext, is_admin: bool) -> Notification:
        notification = await self.get_notification(notification_id)
        if not notification:
            raise NotFoundError("Notification not found")
        if not is_admin and notification.get("user_id") != str(principal.user_id):
            raise AuthorizationError("Not authorized to modify this notification")
        return notification

    async def mark_as_read(
        self,
        notification_id: UUID,
        principal: UserContext,
        is_admin: bool = False,
    ) -> Notification:
        """Flag a notification as read.

        Raises:
            NotFoundError: If it does not exist.
            AuthorizationError: If it belongs to someone else.
        """
        await self._get_for_change(notification_id, principal, is_admin)
        response = (
            self.supabase.table("notifications")
            .update({"is_read": True})
            .eq("id", str(notification_id))
            .execute()
        )
        if not response.data:
            raise NotFoundError("Notification not found")
        return response.data[0]

    async def delete_notification(
        self,
        notification_id: UUID,
        principal: UserContext,
        is_admin: bool = False,
    ) -> Notification:
        """Delete a notification on explicit request.

        Raises:
            NotFoundError: If it does not exist.
            AuthorizationError: If it belongs to someone else.
        """
        notification = await self._get_for_change(notification_id, principal, is_admin)
        self.supabase.table("notifications").delete().eq("id", str(notification_id)).execute()
        logger.info("Notification %s deleted", notification_id)
        return notification
