"""
Learnhub Backend - Schemas Module

Pydantic models for request/response validation.
"""

from app.schemas.user import UserResponse, UserUpdate, PreferencesUpdate, RoleUpdate
from app.schemas.token import GoogleAuthRequest, Token, TokenPayload
from app.schemas.course import (
    Material,
    LessonCreate,
    LessonUpdate,
    LessonResponse,
    CourseCreate,
    CourseUpdate,
    CourseStatusUpdate,
    CourseResponse,
    UploadResponse,
)
from app.schemas.rating import RatingSubmit, RatingResponse, RatingStats
from app.schemas.notification import NotificationCreate, NotificationResponse

__all__ = [
    # User
    "UserResponse",
    "UserUpdate",
    "PreferencesUpdate",
    "RoleUpdate",
    # Token
    "GoogleAuthRequest",
    "Token",
    "TokenPayload",
    # Course
    "Material",
    "LessonCreate",
    "LessonUpdate",
    "LessonResponse",
    "CourseCreate",
    "CourseUpdate",
    "CourseStatusUpdate",
    "CourseResponse",
    "UploadResponse",
    # Rating
    "RatingSubmit",
    "RatingResponse",
    "RatingStats",
    # Notification
    "NotificationCreate",
    "NotificationResponse",
]
