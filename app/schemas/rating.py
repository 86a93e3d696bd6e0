"""
Rating Schemas

Pydantic models for ratings, reviews and rating aggregates.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.course import CourseResponse


def empty_distribution() -> Dict[int, int]:
    return {star: 0 for star in range(1, 6)}


class RatingSubmit(BaseModel):
    """Schema for submitting (or re-submitting) a rating."""

    rating: int = Field(..., ge=1, le=5, description="Stars, 1 to 5")
    review: Optional[str] = Field(None, description="Free text review")
    title: Optional[str] = Field(None, max_length=255, description="Review headline")


class RatingResponse(BaseModel):
    """Schema for rating response."""

    id: str
    course_id: str
    user_id: str
    rating: int
    review: str
    title: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RaterInfo(BaseModel):
    """Public identity shown next to a review."""

    display_name: str = "Anonymous User"
    photo_url: Optional[str] = None


class RatingWithUser(RatingResponse):
    """Rating joined with the rater's identity."""

    user: RaterInfo = Field(default_factory=RaterInfo)


class ReviewWithContext(RatingWithUser):
    """Review joined with the rater and the course title."""

    course_title: str = "Unknown Course"


class RatingStats(BaseModel):
    """Aggregates derived from all ratings of a course."""

    average_rating: float = 0.0
    total_ratings: int = 0
    rating_distribution: Dict[int, int] = Field(default_factory=empty_distribution)
    total_reviews: int = 0


class CourseRatingSummary(BaseModel):
    """One course inside a teacher's rating analytics."""

    course: CourseResponse
    rating_stats: RatingStats


class TeacherRatingAnalytics(BaseModel):
    """Rating analytics across all of a teacher's courses."""

    total_courses: int = 0
    total_ratings: int = 0
    average_rating: float = 0.0
    total_reviews: int = 0
    rating_distribution: Dict[int, int] = Field(default_factory=empty_distribution)
    courses: List[CourseRatingSummary] = []
