"""
Progress Schemas

Pydantic models for enrollments and lesson completion progress.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.course import CourseResponse


class EnrollmentResponse(BaseModel):
    """Schema for enrollment response."""

    id: str
    course_id: str
    user_id: str
    enrolled_at: datetime

    model_config = {"from_attributes": True}


class EnrollmentWithCourse(EnrollmentResponse):
    """Enrollment with its course (None if the course was deleted)."""

    course: Optional[CourseResponse] = None


class EnrollmentStatus(BaseModel):
    """Schema for an enrollment existence check."""

    enrolled: bool


class ProgressResponse(BaseModel):
    """Schema for a user's progress in one course."""

    completed_lessons: List[str] = []
    progress: int = Field(0, ge=0, le=100, description="Percentage of lessons completed")


class LessonCompletion(BaseModel):
    """Schema for a single lesson completion check."""

    lesson_id: str
    completed: bool


class StudentProgressRow(BaseModel):
    """Schema for a single row in the teacher's student progress table."""

    id: str = Field(..., description="Student user id")
    name: str
    email: str
    photo_url: Optional[str] = None
    enrolled_at: datetime
    progress: int = Field(..., description="Number of completed lessons")
    total_lessons: int
    progress_percentage: int


class CourseStudentProgress(BaseModel):
    """Schema for one of a teacher's courses with its students."""

    course: CourseResponse
    students: List[StudentProgressRow]
