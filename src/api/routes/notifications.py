"""Notification API routes."""

from uuid import UUID

from fastapi import APIRouter, status

from src.api.deps import AdminUser, CurrentUser, is_admin
from src.api.middleware.error_handler import AuthorizationError
from src.schemas.notification import (
    NotificationCreateRequest,
    NotificationListResponse,
    NotificationResponse,
)
from src.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _feed(notifications: list[dict]) -> NotificationListResponse:
    items = [NotificationResponse(**notification) for notification in notifications]
    # Global rows carry one shared is_read flag, so only the user's own rows count
    unread = sum(1 for item in items if item.scope == "single" and not item.is_read)
    return NotificationListResponse(items=items, unread=unread)


@router.post(
    "",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a notification",
    description="Sends a notification to one user or to everyone. Requires administrator role.",
)
async def create_notification(data: NotificationCreateRequest, admin: AdminUser) -> NotificationResponse:
    """Persist and push an administrative notification.

    Args:
        data: Title, message, kind and audience.
        admin: The authenticated administrator.

    Returns:
        NotificationResponse: The stored notification.
    """
    service = NotificationService()
    notification = await service.create_notification(
        title=data.title,
        message=data.message,
        kind=data.kind,
        scope=data.scope,
        user_id=data.user_id,
        image=data.image,
    )
    return NotificationResponse(**notification)


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="Get my notifications",
    description="Returns the caller's notifications plus global ones, newest first.",
)
async def get_my_notifications(user: CurrentUser) -> NotificationListResponse:
    """List the current user's notification feed."""
    service = NotificationService()
    return _feed(await service.list_for_user(user.user_id))


@router.get(
    "/user/{user_id}",
    response_model=NotificationListResponse,
    summary="Get a user's notifications",
    description="Returns a user's notification feed. Callers may only read their own unless they are administrators.",
)
async def get_user_notifications(user_id: UUID, user: CurrentUser) -> NotificationListResponse:
    """List a user's notification feed.

    Raises:
        AuthorizationError: 403 when reading someone else's feed without admin role.
    """
    if user_id != user.user_id and not is_admin(user):
        raise AuthorizationError("Not authorized to view these notifications")

    service = NotificationService()
    return _feed(await service.list_for_user(user_id))


@router.patch(
    "/read/{notification_id}",
    response_model=NotificationResponse,
    summary="Mark notification as read",
)
async def mark_notification_read(notification_id: UUID, user: CurrentUser) -> NotificationResponse:
    """Flag a notification as read."""
    service = NotificationService()
    notification = await service.mark_as_read(notification_id, user, is_admin=is_admin(user))
    return NotificationResponse(**notification)


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a notification",
)
async def delete_notification(notification_id: UUID, user: CurrentUser) -> None:
    """Delete a notification the caller owns (or any, for administrators)."""
    service = NotificationService()
    await service.delete_notification(notification_id, user, is_admin=is_admin(user))
