"""
Admin Schemas

Pydantic models for platform statistics and moderation.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.schemas.course import CourseResponse


class PlatformStats(BaseModel):
    """Platform-wide counts, recomputed on every request."""

    total_users: int = 0
    total_courses: int = 0
    total_teachers: int = 0
    total_students: int = 0
    pending_courses: int = 0
    active_users: int = Field(0, description="Estimate: 60% of total users, not a measured value")
    active_users_estimated: bool = True


class ActivityItem(BaseModel):
    """One entry of the recent activity feed."""

    id: str
    type: Literal["user_registration", "course_created"]
    title: str
    description: str
    timestamp: datetime


class ActionResult(BaseModel):
    """Outcome of an admin mutation."""

    success: bool = True
    message: str


class InstructorInfo(BaseModel):
    """Instructor identity shown in the moderation list."""

    display_name: str = "Unknown Instructor"
    email: Optional[str] = None
    photo_url: Optional[str] = None


class AdminCourse(CourseResponse):
    """Course joined with its instructor for moderation."""

    instructor: InstructorInfo = Field(default_factory=InstructorInfo)
