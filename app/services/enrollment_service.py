"""
Enrollment Service

Business logic for enrollments and lesson completion progress.

A user has at most one enrollment and one progress record per course; both
are enforced by unique constraints, so a concurrent duplicate insert
resolves to the row that won.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StoreError, store_operation
from app.models.common import utcnow
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.progress import Progress
from app.models.user import User
from app.schemas.course import CourseResponse
from app.schemas.progress import (
    CourseStudentProgress,
    EnrollmentWithCourse,
    ProgressResponse,
    StudentProgressRow,
)
from app.services import course_service, notification_service
from app.services.rounding import percentage


logger = logging.getLogger(__name__)


async def _get_enrollment(course_id: str, user_id: str, db: AsyncSession) -> Optional[Enrollment]:
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.course_id == course_id,
            Enrollment.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def _get_progress(
    course_id: str,
    user_id: str,
    db: AsyncSession,
    for_update: bool = False,
) -> Optional[Progress]:
    query = select(Progress).where(
        Progress.course_id == course_id,
        Progress.user_id == user_id,
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


# ============== Enrollment ==============

@store_operation("enroll in course")
async def enroll(
    course_id: str,
    user_id: str,
    db: AsyncSession,
) -> Tuple[Enrollment, bool]:
    """
    Enroll a user in a course.

    Enrolling twice returns the existing enrollment and changes nothing.
    A new enrollment bumps the course's student counter and notifies the
    instructor; a failed notification is logged and the enrollment stays.

    Returns:
        Tuple of (enrollment, created).

    Raises:
        HTTPException: 404 if the course does not exist.
    """
    course = await course_service.get_course(course_id, db)

    existing = await _get_enrollment(course_id, user_id, db)
    if existing is not None:
        return existing, False

    enrollment = Enrollment(course_id=course_id, user_id=user_id, enrolled_at=utcnow())
    db.add(enrollment)
    try:
        await db.flush()
    except IntegrityError:
        # Lost the race to a concurrent enrollment
        await db.rollback()
        existing = await _get_enrollment(course_id, user_id, db)
        if existing is None:
            raise
        return existing, False

    await course_service.adjust_course_counter(course_id, "students", 1, db)
    await db.commit()
    logger.info("User %s enrolled in course %s", user_id, course_id)

    course_title = course.title
    try:
        await notification_service.notify_teacher_enrollment(course_id, user_id, course_title, db)
    except StoreError:
        await db.rollback()
        await db.refresh(enrollment)
        logger.warning("Enrollment %s saved but the instructor was not notified", enrollment.id)

    return enrollment, True


async def check_enrollment(course_id: str, user_id: str, db: AsyncSession) -> bool:
    """
    Whether the user is enrolled in the course.

    Store failures are logged and reported as not enrolled.
    """
    try:
        return await _get_enrollment(course_id, user_id, db) is not None
    except SQLAlchemyError:
        logger.exception("Enrollment check failed for course %s, user %s", course_id, user_id)
        return False


@store_operation("fetch enrollments")
async def get_user_enrollments(user_id: str, db: AsyncSession) -> List[EnrollmentWithCourse]:
    """
    A user's enrollments, newest first, each with its course.

    The course is None when it has since been deleted.
    """
    result = await db.execute(
        select(Enrollment, Course)
        .outerjoin(Course, Course.id == Enrollment.course_id)
        .where(Enrollment.user_id == user_id)
        .order_by(Enrollment.enrolled_at.desc())
    )

    enrollments = []
    for enrollment, course in result.all():
        item = EnrollmentWithCourse.model_validate(enrollment)
        if course is not None:
            item.course = CourseResponse.model_validate(course)
        enrollments.append(item)
    return enrollments


# ============== Progress ==============

@store_operation("mark lesson complete")
async def mark_lesson_complete(
    course_id: str,
    lesson_id: str,
    user_id: str,
    db: AsyncSession,
) -> ProgressResponse:
    """
    Record a completed lesson. Marking the same lesson again is a no-op.

    When this completes the last lesson of the course, the student gets a
    course completion notification, once.

    Raises:
        HTTPException: 404 if the course or the lesson does not exist.
    """
    course = await course_service.get_course(course_id, db)
    await course_service.get_lesson(course_id, lesson_id, db)

    changed = False
    progress = await _get_progress(course_id, user_id, db, for_update=True)
    if progress is None:
        progress = Progress(
            course_id=course_id,
            user_id=user_id,
            completed_lessons=[lesson_id],
            completed_at=None,
            last_updated=utcnow(),
        )
        db.add(progress)
        try:
            await db.flush()
            changed = True
        except IntegrityError:
            # A concurrent request created the record first
            await db.rollback()
            course = await course_service.get_course(course_id, db)
            progress = await _get_progress(course_id, user_id, db, for_update=True)
            if progress is None:
                raise

    if not changed and lesson_id not in progress.completed_lessons:
        progress.completed_lessons = [*progress.completed_lessons, lesson_id]
        progress.last_updated = utcnow()
        changed = True

    if changed:
        await db.commit()

    total_lessons = course.lessons
    course_title = course.title
    completed_lessons = list(progress.completed_lessons)
    response = ProgressResponse(
        completed_lessons=completed_lessons,
        progress=percentage(len(completed_lessons), total_lessons),
    )

    if (
        changed
        and total_lessons > 0
        and len(completed_lessons) >= total_lessons
        and progress.completed_at is None
    ):
        result = await db.execute(
            update(Progress)
            .where(Progress.id == progress.id, Progress.completed_at.is_(None))
            .values(completed_at=utcnow())
        )
        await db.commit()

        if result.rowcount == 1:
            logger.info("User %s completed course %s", user_id, course_id)
            try:
                await notification_service.notify_course_completion(user_id, course_id, course_title, db)
            except StoreError:
                await db.rollback()
                logger.warning("Course %s completed by %s but no notification was sent", course_id, user_id)

    return response


@store_operation("fetch progress")
async def get_user_progress(course_id: str, user_id: str, db: AsyncSession) -> ProgressResponse:
    """
    A user's progress in a course.

    Defaults to no completed lessons and 0% when there is no record.
    """
    progress = await _get_progress(course_id, user_id, db)
    if progress is None:
        return ProgressResponse(completed_lessons=[], progress=0)

    course = await db.get(Course, course_id)
    total_lessons = course.lessons if course is not None else 0
    completed_lessons = list(progress.completed_lessons)

    return ProgressResponse(
        completed_lessons=completed_lessons,
        progress=percentage(len(completed_lessons), total_lessons),
    )


@store_operation("check lesson completion")
async def is_lesson_completed(
    course_id: str,
    lesson_id: str,
    user_id: str,
    db: AsyncSession,
) -> bool:
    progress = await _get_progress(course_id, user_id, db)
    return progress is not None and lesson_id in progress.completed_lessons


@store_operation("fetch student progress")
async def get_teacher_student_progress(
    teacher_id: str,
    db: AsyncSession,
) -> List[CourseStudentProgress]:
    """
    Progress of every student in every course the teacher owns.

    Args:
        teacher_id: Instructor's user id.
        db: Database session.

    Returns:
        One entry per course, students in enrollment order.
    """
    courses = await course_service.get_courses_by_instructor(teacher_id, db)

    report = []
    for course in courses:
        enrollments = (
            await db.execute(
                select(Enrollment)
                .where(Enrollment.course_id == course.id)
                .order_by(Enrollment.enrolled_at.asc())
            )
        ).scalars().all()

        user_ids = [e.user_id for e in enrollments]
        users = {}
        progress_by_user = {}
        if user_ids:
            users = {
                u.id: u
                for u in (await db.execute(select(User).where(User.id.in_(user_ids)))).scalars()
            }
            progress_by_user = {
                p.user_id: p
                for p in (
                    await db.execute(
                        select(Progress).where(
                            Progress.course_id == course.id,
                            Progress.user_id.in_(user_ids),
                        )
                    )
                ).scalars()
            }

        rows = []
        for enrollment in enrollments:
            user = users.get(enrollment.user_id)
            progress = progress_by_user.get(enrollment.user_id)
            completed = len(progress.completed_lessons) if progress else 0

            rows.append(
                StudentProgressRow(
                    id=enrollment.user_id,
                    name=(user.display_name if user and user.display_name else "Unknown User"),
                    email=(user.email if user and user.email else ""),
                    photo_url=user.photo_url if user else None,
                    enrolled_at=enrollment.enrolled_at,
                    progress=completed,
                    total_lessons=course.lessons,
                    progress_percentage=percentage(completed, course.lessons),
                )
            )

        report.append(
            CourseStudentProgress(
                course=CourseResponse.model_validate(course),
                students=rows,
            )
        )

    return report
