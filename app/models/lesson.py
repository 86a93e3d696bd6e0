"""
Lesson Model

A video lesson inside a course, with downloadable materials.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import BigInteger, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.common import JSONType, new_id, utcnow


def default_order() -> int:
    """Creation time in milliseconds, used as the ordering key."""
    return int(utcnow().timestamp() * 1000)


class Lesson(Base):
    """
    Lesson model.

    Attributes:
        id: Opaque string id.
        course_id: Owning course id.
        video_url: Blob store URL of the lesson video.
        materials: Ordered list of {"name", "url", "type"}.
        duration: Length in seconds (nullable).
        order: Ascending ordering key within the course.
    """

    __tablename__ = "lessons"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=new_id,
    )
    course_id: Mapped[str] = mapped_column(
        String(64),
        index=True,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )
    video_url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        default="",
    )
    materials: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )
    duration: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    order: Mapped[int] = mapped_column(
        "order",
        BigInteger,
        default=default_order,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Lesson(id={self.id}, course_id={self.course_id})>"
