"""Notification Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.notification import NotificationKind


class NotificationCreateRequest(BaseModel):
    """Schema for an administrative notification send."""

    title: str = Field(min_length=1, max_length=200, description="Notification title")
    message: str = Field(min_length=1, max_length=2000, description="Notification body")
    kind: NotificationKind = Field(default=NotificationKind.SYSTEM, description="Notification category")
    scope: Literal["single", "global"] = Field(default="single", description="One user or everyone")
    user_id: UUID | None = Field(default=None, description="Recipient for single-scope notifications")
    image: str | None = Field(default=None, description="Optional image URL")

    @model_validator(mode="after")
    def check_recipient(self) -> "NotificationCreateRequest":
        """A single-scope notification needs a recipient."""
        if self.scope == "single" and self.user_id is None:
            raise ValueError("user_id is required when scope is 'single'")
        return self


class NotificationResponse(BaseModel):
    """Schema for notification API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Notification unique identifier")
    user_id: UUID | None = Field(default=None, description="Recipient, null for global notifications")
    title: str = Field(description="Notification title")
    message: str = Field(description="Notification body")
    kind: str = Field(description="Notification category")
    event: str | None = Field(default=None, description="Order lifecycle event, if any")
    order_id: UUID | None = Field(default=None, description="Related order")
    scope: Literal["single", "global"] = Field(default="single", description="Audience")
    image: str | None = Field(default=None, description="Optional image URL")
    is_read: bool = Field(default=False, description="Whether the recipient has read it")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")


class NotificationListResponse(BaseModel):
    """Schema for notification feeds."""

    items: list[NotificationResponse] = Field(description="Notifications, newest first")
    unread: int = Field(default=0, description="Unread notifications addressed to the user; global ones are not counted")
