"""
Admin Routes

Platform statistics and moderation. Every route requires the admin role.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_admin
from app.core.database import get_db
from app.models.user import User
from app.schemas.admin import ActionResult, ActivityItem, AdminCourse, PlatformStats
from app.schemas.course import CourseStatusUpdate
from app.schemas.user import RoleUpdate, UserResponse
from app.services import admin_service


router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


@router.get(
    "/stats",
    response_model=PlatformStats,
    summary="Platform statistics",
)
async def get_platform_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PlatformStats:
    """
    User and course counts.

    `active_users` is an estimate (60% of all users), flagged by
    `active_users_estimated`.
    """
    return await admin_service.get_platform_stats(db)


@router.get(
    "/activity",
    response_model=List[ActivityItem],
    summary="Recent sign-ups and courses",
)
async def get_recent_activity(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[ActivityItem]:
    return await admin_service.get_recent_activity(db)


@router.get(
    "/users",
    response_model=List[UserResponse],
    summary="List all users",
)
async def get_all_users(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[User]:
    return await admin_service.get_all_users(db)


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Get a user",
)
async def get_user(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    return await admin_service.get_user_by_id(user_id, db)


@router.patch(
    "/users/{user_id}/role",
    response_model=ActionResult,
    summary="Change a user's role",
)
async def update_user_role(
    user_id: str,
    role_update: RoleUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ActionResult:
    return await admin_service.update_user_role(user_id, role_update.role, db)


@router.delete(
    "/users/{user_id}",
    response_model=ActionResult,
    summary="Delete a user",
)
async def delete_user(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    cascade: Annotated[bool, Query(description="Also delete the user's enrollments, progress, ratings and notifications")] = False,
) -> ActionResult:
    return await admin_service.delete_user(user_id, db, cascade=cascade)


@router.get(
    "/courses",
    response_model=List[AdminCourse],
    summary="List all courses with their instructors",
)
async def get_all_courses(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[AdminCourse]:
    return await admin_service.get_all_courses(db)


@router.patch(
    "/courses/{course_id}/status",
    response_model=ActionResult,
    summary="Publish, hold or reject a course",
)
async def update_course_status(
    course_id: str,
    status_update: CourseStatusUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ActionResult:
    return await admin_service.update_course_status(course_id, status_update.status, db)


@router.delete(
    "/courses/{course_id}",
    response_model=ActionResult,
    summary="Delete a course",
)
async def delete_course(
    course_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    cascade: Annotated[bool, Query(description="Also delete the course's lessons, enrollments, progress and ratings")] = False,
) -> ActionResult:
    return await admin_service.delete_course(course_id, db, cascade=cascade)
