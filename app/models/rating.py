"""
Rating Model

One star rating (plus optional review) per user per course.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.common import new_id, utcnow


class Rating(Base):
    """
    Rating model.

    Submitting again for the same (course, user) updates this row.
    """

    __tablename__ = "ratings"

    __table_args__ = (
        UniqueConstraint("course_id", "user_id", name="uq_rating_course_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_rating_range"),
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
    rating: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    review: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        default="",
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
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Rating(id={self.id}, course_id={self.course_id}, rating={self.rating})>"
