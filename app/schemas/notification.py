"""
Notification Schemas

Pydantic models for notifications and announcements.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from app.models.enums import NotificationPriority, NotificationType


class NotificationCreate(BaseModel):
    """Schema for creating a single notification."""

    type: NotificationType
    recipient_id: str
    sender_id: Optional[str] = None
    course_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=255)
    message: str = ""
    priority: Optional[NotificationPriority] = Field(None, description="Defaults to medium")
    data: Dict[str, Any] = {}


class NotificationResponse(BaseModel):
    """Schema for notification response."""

    id: str
    type: NotificationType
    recipient_id: str
    sender_id: Optional[str] = None
    course_id: Optional[str] = None
    title: str
    message: str
    priority: NotificationPriority
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
    data: Dict[str, Any] = {}

    model_config = {"from_attributes": True}


class AnnouncementCreate(BaseModel):
    """Schema for a course announcement sent to every enrolled student."""

    message: str = Field(..., min_length=1)
    id: Optional[str] = Field(None, description="Caller-side announcement id")


class DirectMessageCreate(BaseModel):
    """Schema for a direct message."""

    recipient_id: str
    message: str = Field(..., min_length=1)


class FanOutResult(BaseModel):
    """Outcome of a fan-out: how many recipients were reached."""

    recipients: int
    delivered: int
    failed: int


class UnreadCount(BaseModel):
    count: int


class BulkReadResult(BaseModel):
    updated: int
