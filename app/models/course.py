"""
Course Model

Course document with its denormalized counters and rating aggregates.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Enum, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.common import JSONType, new_id, utcnow
from app.models.enums import CourseStatus


def empty_distribution() -> Dict[str, int]:
    """Star value -> count, all zero."""
    return {str(star): 0 for star in range(1, 6)}


class Course(Base):
    """
    Course model.

    The counters below are maintained by the operations that change their
    source rows (enrollments, lessons, ratings), not derived on read.

    Attributes:
        id: Opaque string id.
        instructor_id: Owning teacher's user id.
        status: PUBLISHED (default), PENDING or REJECTED.
        students: Enrollment count.
        lessons: Lesson count.
        rating: Average rating, one decimal.
        total_ratings: Number of ratings.
        total_reviews: Number of ratings with a non-blank review.
        rating_distribution: {"1": n, ..., "5": n}.
    """

    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=new_id,
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
    category: Mapped[str] = mapped_column(
        String(100),
        index=True,
        nullable=False,
    )
    duration: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="",
    )
    price: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
    )
    cover_image: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        default="",
    )
    instructor_id: Mapped[str] = mapped_column(
        String(64),
        index=True,
        nullable=False,
    )
    status: Mapped[CourseStatus] = mapped_column(
        Enum(CourseStatus, name="course_status", create_constraint=True),
        default=CourseStatus.PUBLISHED,
        index=True,
        nullable=False,
    )
    students: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    lessons: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    rating: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        nullable=False,
    )
    total_ratings: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    total_reviews: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    rating_distribution: Mapped[Dict[str, Any]] = mapped_column(
        JSONType,
        default=empty_distribution,
        nullable=False,
    )
    last_rating_update: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
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
        return f"<Course(id={self.id}, title={self.title[:30]}...)>"
