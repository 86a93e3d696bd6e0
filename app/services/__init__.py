"""
Learnhub Backend - Services Module

Business logic layer.
"""

from app.services import notification_service
from app.services import course_service
from app.services import enrollment_service
from app.services import rating_service
from app.services import admin_service
from app.services import auth_service
from app.services import user_service

__all__ = [
    "notification_service",
    "course_service",
    "enrollment_service",
    "rating_service",
    "admin_service",
    "auth_service",
    "user_service",
]
