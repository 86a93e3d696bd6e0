"""
Progress Model

Ledger of the lessons a user has completed within a course.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.common import JSONType, new_id, utcnow


class Progress(Base):
    """
    Progress model, one per (course, user).

    Attributes:
        completed_lessons: Lesson ids, each at most once.
        completed_at: Set when the user first completed every lesson; the
            completion notification is sent only at that transition.
    """

    __tablename__ = "progress"

    __table_args__ = (
        UniqueConstraint("course_id", "user_id", name="uq_progress_course_user"),
    )

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
    user_id: Mapped[str] = mapped_column(
        String(64),
        index=True,
        nullable=False,
    )
    completed_lessons: Mapped[List[str]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Progress(id={self.id}, completed={len(self.completed_lessons or [])})>"
