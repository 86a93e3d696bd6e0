"""
User Model

Identity from the sign-in provider plus the platform role.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.common import new_id, utcnow
from app.models.enums import UserRole


class User(Base):
    """
    User model representing students, teachers, and admins.

    Attributes:
        id: Opaque string id (provider uid for provider-created users).
        google_id: Subject claim of the Google identity, unique.
        email: Email address reported by the provider.
        display_name: Name shown next to reviews and enrollments.
        photo_url: Avatar URL reported by the provider.
        role: STUDENT (default), TEACHER or ADMIN. Changed only by admins.
        dark_mode: UI preference.
        autoplay: UI preference for the lesson player.
        created_at: First sign-in timestamp.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=new_id,
    )
    google_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False,
        default="",
    )
    display_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )
    photo_url: Mapped[Optional[str]] = mapped_column(
        String(512),
        nullable=True,
    )
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", create_constraint=True),
        default=UserRole.STUDENT,
        index=True,
        nullable=False,
    )
    dark_mode: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    autoplay: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        index=True,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
