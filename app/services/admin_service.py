"""
Admin Service

Platform statistics, the recent activity feed, and moderation of users and
courses.

Deleting a user or a course removes only that row unless ``cascade`` is
requested. Without it, enrollments, progress, ratings and notifications
that reference the deleted row are left behind.
"""

import logging
from datetime import timedelta
from typing import List

from fastapi import HTTPException, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import store_operation
from app.core.events import mark_changed, notifications_topic, ratings_topic
from app.models.common import utcnow
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import CourseStatus, UserRole
from app.models.lesson import Lesson
from app.models.notification import Notification
from app.models.progress import Progress
from app.models.rating import Rating
from app.models.user import User
from app.schemas.admin import (
    ActionResult,
    ActivityItem,
    AdminCourse,
    InstructorInfo,
    PlatformStats,
)
from app.services import course_service, rating_service
from app.services.rounding import round_half_up


logger = logging.getLogger(__name__)

ACTIVE_USER_RATIO = 0.6
ACTIVITY_WINDOW = timedelta(days=7)
ACTIVITY_LIMIT = 10


# ============== Statistics ==============

async def _count(db: AsyncSession, model, *criteria) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar_one()


@store_operation("fetch platform stats")
async def get_platform_stats(db: AsyncSession) -> PlatformStats:
    """
    Platform-wide counts.

    ``active_users`` is not measured: it is 60% of all users, rounded.
    """
    total_users = await _count(db, User)

    return PlatformStats(
        total_users=total_users,
        total_courses=await _count(db, Course),
        total_teachers=await _count(db, User, User.role == UserRole.TEACHER),
        total_students=await _count(db, User, User.role == UserRole.STUDENT),
        pending_courses=await _count(db, Course, Course.status == CourseStatus.PENDING),
        active_users=int(round_half_up(total_users * ACTIVE_USER_RATIO, 0)),
        active_users_estimated=True,
    )


@store_operation("fetch recent activity")
async def get_recent_activity(db: AsyncSession) -> List[ActivityItem]:
    """Sign-ups and new courses of the last 7 days, newest first, at most 10."""
    since = utcnow() - ACTIVITY_WINDOW

    users = (
        await db.execute(
            select(User)
            .where(User.created_at > since)
            .order_by(User.created_at.desc())
            .limit(ACTIVITY_LIMIT)
        )
    ).scalars().all()
    courses = (
        await db.execute(
            select(Course)
            .where(Course.created_at > since)
            .order_by(Course.created_at.desc())
            .limit(ACTIVITY_LIMIT)
        )
    ).scalars().all()

    activities = [
        ActivityItem(
            id=user.id,
            type="user_registration",
            title=f"New {user.role.value} registered",
            description=f"{user.display_name or user.email} joined the platform",
            timestamp=user.created_at,
        )
        for user in users
    ]
    activities.extend(
        ActivityItem(
            id=course.id,
            type="course_created",
            title="New course submitted",
            description=f"{course.title} was created",
            timestamp=course.created_at,
        )
        for course in courses
    )

    activities.sort(key=lambda item: item.timestamp, reverse=True)
    return activities[:ACTIVITY_LIMIT]


# ============== Users ==============

@store_operation("fetch users")
async def get_all_users(db: AsyncSession) -> List[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    return list(result.scalars().all())


@store_operation("fetch user")
async def get_user_by_id(user_id: str, db: AsyncSession) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with ID {user_id} not found",
        )
    return user


@store_operation("update user role")
async def update_user_role(user_id: str, role: UserRole, db: AsyncSession) -> ActionResult:
    user = await get_user_by_id(user_id, db)
    user.role = role
    await db.commit()

    logger.info("User %s role changed to %s", user_id, role.value)
    return ActionResult(message="User role updated successfully")


@store_operation("delete user")
async def delete_user(user_id: str, db: AsyncSession, cascade: bool = False) -> ActionResult:
    """
    Delete a user.

    With ``cascade``, the user's enrollments, progress, ratings and
    notifications go too: enrolled courses lose a student and rated
    courses get their aggregates recomputed.
    """
    user = await get_user_by_id(user_id, db)

    if cascade:
        enrolled_course_ids = (
            await db.execute(select(Enrollment.course_id).where(Enrollment.user_id == user_id))
        ).scalars().all()
        rated_course_ids = set(
            (await db.execute(select(Rating.course_id).where(Rating.user_id == user_id))).scalars().all()
        )

        await db.execute(delete(Enrollment).where(Enrollment.user_id == user_id))
        await db.execute(delete(Progress).where(Progress.user_id == user_id))
        await db.execute(delete(Rating).where(Rating.user_id == user_id))
        await db.execute(delete(Notification).where(Notification.recipient_id == user_id))

        for course_id in enrolled_course_ids:
            await course_service.adjust_course_counter(course_id, "students", -1, db)
        for course_id in rated_course_ids:
            await rating_service.update_course_rating(course_id, db)

        mark_changed(
            db,
            notifications_topic(user_id),
            *(ratings_topic(course_id) for course_id in rated_course_ids),
        )

    await db.delete(user)
    await db.commit()

    logger.info("User %s deleted (cascade=%s)", user_id, cascade)
    return ActionResult(message="User deleted successfully")


# ============== Courses ==============

@store_operation("fetch courses")
async def get_all_courses(db: AsyncSession) -> List[AdminCourse]:
    """Every course regardless of status, newest first, with its instructor."""
    courses = (
        await db.execute(select(Course).order_by(Course.created_at.desc()))
    ).scalars().all()

    instructor_ids = {c.instructor_id for c in courses}
    instructors = {}
    if instructor_ids:
        instructors = {
            u.id: u
            for u in (await db.execute(select(User).where(User.id.in_(instructor_ids)))).scalars()
        }

    result = []
    for course in courses:
        instructor = instructors.get(course.instructor_id)
        info = InstructorInfo()
        if instructor is not None:
            info = InstructorInfo(
                display_name=instructor.display_name or "Unknown Instructor",
                email=instructor.email,
                photo_url=instructor.photo_url,
            )
        result.append(
            AdminCourse.model_validate(course).model_copy(update={"instructor": info})
        )
    return result


@store_operation("update course status")
async def update_course_status(
    course_id: str,
    course_status: CourseStatus,
    db: AsyncSession,
) -> ActionResult:
    course = await course_service.get_course(course_id, db)
    course.status = course_status
    await db.commit()

    logger.info("Course %s status changed to %s", course_id, course_status.value)
    return ActionResult(message="Course status updated successfully")


@store_operation("delete course")
async def delete_course(course_id: str, db: AsyncSession, cascade: bool = False) -> ActionResult:
    """
    Delete a course.

    With ``cascade``, its lessons, enrollments, progress and ratings are
    deleted as well.
    """
    course = await course_service.get_course(course_id, db)

    if cascade:
        await db.execute(delete(Lesson).where(Lesson.course_id == course_id))
        await db.execute(delete(Enrollment).where(Enrollment.course_id == course_id))
        await db.execute(delete(Progress).where(Progress.course_id == course_id))
        await db.execute(delete(Rating).where(Rating.course_id == course_id))
        mark_changed(db, ratings_topic(course_id))

    await db.delete(course)
    await db.commit()

    logger.info("Course %s deleted (cascade=%s)", course_id, cascade)
    return ActionResult(message="Course deleted successfully")
