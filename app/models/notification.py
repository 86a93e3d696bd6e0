"""
Notification Model

Directed in-app notification.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.common import JSONType, new_id, utcnow
from app.models.enums import NotificationPriority, NotificationType


class Notification(Base):
    """
    Notification model.

    Attributes:
        type: What happened (announcement, enrollment, lesson, ...).
        recipient_id: Addressee user id.
        sender_id: Originating user id, if any.
        course_id: Related course id, if any.
        priority: LOW, MEDIUM (default) or HIGH.
        read / read_at: Read state.
        data: Type-specific payload.
    """

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=new_id,
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type", create_constraint=True),
        nullable=False,
    )
    recipient_id: Mapped[str] = mapped_column(
        String(64),
        index=True,
        nullable=False,
    )
    sender_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
    )
    course_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )
    priority: Mapped[NotificationPriority] = mapped_column(
        Enum(NotificationPriority, name="notification_priority", create_constraint=True),
        default=NotificationPriority.MEDIUM,
        nullable=False,
    )
    read: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        index=True,
        nullable=False,
    )
    read_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        index=True,
        nullable=False,
    )
    data: Mapped[Dict[str, Any]] = mapped_column(
        JSONType,
        default=dict,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, type={self.type}, read={self.read})>"
