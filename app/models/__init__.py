"""
Learnhub Backend - Models Module

This module exports all SQLAlchemy models for the application.
Import Base for Alembic migrations.
"""

from app.core.database import Base

# Enums
from app.models.enums import (
    UserRole,
    CourseStatus,
    NotificationType,
    NotificationPriority,
    CourseCategory,
    CourseDuration,
)

# Models
from app.models.user import User
from app.models.course import Course
from app.models.lesson import Lesson
from app.models.enrollment import Enrollment
from app.models.progress import Progress
from app.models.rating import Rating
from app.models.notification import Notification

__all__ = [
    # Base
    "Base",
    # Enums
    "UserRole",
    "CourseStatus",
    "NotificationType",
    "NotificationPriority",
    "CourseCategory",
    "CourseDuration",
    # Models
    "User",
    "Course",
    "Lesson",
    "Enrollment",
    "Progress",
    "Rating",
    "Notification",
]
