"""
API v1 Router

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    admin,
    auth,
    courses,
    enrollments,
    lessons,
    notifications,
    ratings,
    users,
)

router = APIRouter()

# Include authentication routes
router.include_router(auth.router)

# Include user routes
router.include_router(users.router)

# Include course and lesson routes
router.include_router(courses.router)
router.include_router(lessons.router)

# Include enrollment and progress routes
router.include_router(enrollments.router)

# Include rating routes
router.include_router(ratings.router)

# Include notification routes
router.include_router(notifications.router)

# Include admin routes
router.include_router(admin.router)
