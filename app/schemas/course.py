"""
Course Schemas

Pydantic models for course and lesson request/response validation.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.enums import CourseCategory, CourseDuration, CourseStatus


# ============== Lesson Schemas ==============

class Material(BaseModel):
    """Downloadable file attached to a lesson."""

    name: str
    url: str
    type: str = ""


class LessonCreate(BaseModel):
    """Schema for creating a lesson."""

    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    video_url: str = ""
    materials: List[Material] = []
    duration: Optional[int] = Field(default=None, ge=0, description="Length in seconds")
    order: Optional[int] = Field(default=None, description="Ordering key, defaults to creation time")


class LessonUpdate(BaseModel):
    """Schema for updating a lesson. Only provided fields change."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    video_url: Optional[str] = None
    materials: Optional[List[Material]] = None
    duration: Optional[int] = Field(None, ge=0)
    order: Optional[int] = None


class LessonResponse(BaseModel):
    """Schema for lesson response."""

    id: str
    course_id: str
    title: str
    description: str
    video_url: str
    materials: List[Material] = []
    duration: Optional[int] = None
    order: int
    created_at: datetime

    model_config = {"from_attributes": True}


# ============== Course Schemas ==============

class CourseCreate(BaseModel):
    """Schema for creating a new course."""

    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    category: CourseCategory
    duration: CourseDuration
    price: float = Field(default=0.0, ge=0)
    cover_image: str = ""


class CourseUpdate(BaseModel):
    """Schema for updating a course. Counters cannot be set directly."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    category: Optional[CourseCategory] = None
    duration: Optional[CourseDuration] = None
    price: Optional[float] = Field(None, ge=0)
    cover_image: Optional[str] = None


class CourseStatusUpdate(BaseModel):
    """Schema for moderating a course."""

    status: CourseStatus


class CourseResponse(BaseModel):
    """Schema for course response."""

    id: str
    title: str
    description: str
    category: str
    duration: str
    price: float
    cover_image: str
    instructor_id: str
    status: CourseStatus
    students: int
    lessons: int
    rating: float
    total_ratings: int
    total_reviews: int
    rating_distribution: Dict[int, int]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UploadResponse(BaseModel):
    """Schema for a stored file."""

    key: str
    url: str
    size: int
    content_type: Optional[str] = None
