"""
Course Service

Business logic for the course and lesson catalog and its file uploads.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from fastapi import HTTPException, status
from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StoreError, store_operation
from app.core.storage import (
    IMAGE_POLICY,
    MATERIAL_POLICY,
    VIDEO_POLICY,
    BlobStore,
    StoredBlob,
)
from app.models.course import Course, empty_distribution
from app.models.enums import CourseStatus, UserRole
from app.models.lesson import Lesson
from app.models.user import User
from app.schemas.course import (
    CourseCreate,
    CourseUpdate,
    LessonCreate,
    LessonUpdate,
    Material,
)
from app.services import notification_service


logger = logging.getLogger(__name__)

AUTHOR_ROLES = (UserRole.TEACHER, UserRole.ADMIN)

# (filename, data, content_type)
UploadedFile = Tuple[str, bytes, Optional[str]]


# ============== Counters ==============

async def adjust_course_counter(
    course_id: str,
    field: str,
    delta: int,
    db: AsyncSession,
) -> None:
    """
    Atomically add ``delta`` to one of a course's counters.

    Decrements never take the counter below zero.
    """
    column = getattr(Course, field)
    new_value = column + delta
    if delta < 0:
        new_value = case((column + delta < 0, 0), else_=column + delta)

    await db.execute(
        update(Course)
        .where(Course.id == course_id)
        .values({field: new_value})
    )


# ============== Permissions ==============

def ensure_can_author(user: User) -> None:
    if user.role not in AUTHOR_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only teachers can create courses",
        )


def ensure_can_manage(course: Course, user: User) -> None:
    """
    Raises:
        HTTPException: 403 unless the user owns the course or is an admin.
    """
    if user.role != UserRole.ADMIN and course.instructor_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have permission to modify this course",
        )


# ============== Courses ==============

@store_operation("fetch course")
async def get_course(course_id: str, db: AsyncSession) -> Course:
    """
    Get a course by ID.

    Raises:
        HTTPException: 404 if the course does not exist.
    """
    course = await db.get(Course, course_id)
    if course is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Course with ID {course_id} not found",
        )
    return course


@store_operation("fetch courses")
async def list_courses(
    db: AsyncSession,
    category: Optional[str] = None,
) -> List[Course]:
    """Published courses, newest first, optionally filtered by category."""
    query = (
        select(Course)
        .where(Course.status == CourseStatus.PUBLISHED)
        .order_by(Course.created_at.desc())
    )
    if category:
        query = query.where(Course.category == category)

    result = await db.execute(query)
    return list(result.scalars().all())


@store_operation("fetch instructor courses")
async def get_courses_by_instructor(instructor_id: str, db: AsyncSession) -> List[Course]:
    result = await db.execute(
        select(Course)
        .where(Course.instructor_id == instructor_id)
        .order_by(Course.created_at.desc())
    )
    return list(result.scalars().all())


@store_operation("create course")
async def create_course(
    data: CourseCreate,
    user: User,
    db: AsyncSession,
) -> Course:
    """
    Create a course owned by ``user`` with all counters at zero.

    Raises:
        HTTPException: 403 if the user is not a teacher or admin.
    """
    ensure_can_author(user)

    course = Course(
        title=data.title,
        description=data.description,
        category=data.category.value,
        duration=data.duration.value,
        price=data.price,
        cover_image=data.cover_image,
        instructor_id=user.id,
        status=CourseStatus.PUBLISHED,
        students=0,
        lessons=0,
        rating=0.0,
        total_ratings=0,
        total_reviews=0,
        rating_distribution=empty_distribution(),
    )
    db.add(course)
    await db.commit()

    logger.info("Course %s created by %s", course.id, user.id)
    return course


@store_operation("update course")
async def update_course(
    course_id: str,
    data: CourseUpdate,
    user: User,
    db: AsyncSession,
) -> Course:
    course = await get_course(course_id, db)
    ensure_can_manage(course, user)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if field in ("category", "duration"):
            value = value.value
        setattr(course, field, value)

    await db.commit()
    await db.refresh(course)
    return course


async def upload_cover_image(
    store: BlobStore,
    filename: str,
    data: bytes,
    content_type: Optional[str],
) -> StoredBlob:
    """Store a course cover image under ``courses/``."""
    return await store.upload(
        "courses",
        filename,
        data,
        content_type=content_type,
        policy=IMAGE_POLICY,
    )


# ============== Lessons ==============

@store_operation("fetch lessons")
async def list_lessons(course_id: str, db: AsyncSession) -> List[Lesson]:
    """Lessons of a course in ascending ``order``."""
    result = await db.execute(
        select(Lesson)
        .where(Lesson.course_id == course_id)
        .order_by(Lesson.order.asc(), Lesson.created_at.asc())
    )
    return list(result.scalars().all())


@store_operation("fetch lesson")
async def get_lesson(course_id: str, lesson_id: str, db: AsyncSession) -> Lesson:
    lesson = await db.get(Lesson, lesson_id)
    if lesson is None or lesson.course_id != course_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Lesson with ID {lesson_id} not found",
        )
    return lesson


@store_operation("create lesson")
async def create_lesson(
    course_id: str,
    data: LessonCreate,
    user: User,
    db: AsyncSession,
) -> Lesson:
    """
    Add a lesson to a course and tell enrolled students about it.

    The lesson and the course's lesson counter are committed together.
    The announcement runs afterwards; if it fails the lesson stays.
    """
    course = await get_course(course_id, db)
    ensure_can_manage(course, user)

    lesson = Lesson(
        course_id=course_id,
        title=data.title,
        description=data.description,
        video_url=data.video_url,
        materials=[m.model_dump() for m in data.materials],
        duration=data.duration,
    )
    if data.order is not None:
        lesson.order = data.order

    db.add(lesson)
    await adjust_course_counter(course_id, "lessons", 1, db)
    await db.commit()

    course_title = course.title
    try:
        await notification_service.notify_new_lesson(course_id, lesson.title, course_title, db)
    except StoreError:
        await db.rollback()
        await db.refresh(lesson)
        logger.warning("New lesson %s saved but students were not notified", lesson.id)

    return lesson


@store_operation("update lesson")
async def update_lesson(
    course_id: str,
    lesson_id: str,
    data: LessonUpdate,
    user: User,
    db: AsyncSession,
) -> Lesson:
    course = await get_course(course_id, db)
    ensure_can_manage(course, user)
    lesson = await get_lesson(course_id, lesson_id, db)

    updates = data.model_dump(exclude_unset=True)
    for field, value in updates.items():
        if value is None and field != "duration":
            continue
        setattr(lesson, field, value)

    await db.commit()
    await db.refresh(lesson)
    return lesson


@store_operation("delete lesson")
async def delete_lesson(
    course_id: str,
    lesson_id: str,
    user: User,
    db: AsyncSession,
) -> None:
    """Delete a lesson and decrement the course's lesson counter."""
    course = await get_course(course_id, db)
    ensure_can_manage(course, user)
    lesson = await get_lesson(course_id, lesson_id, db)

    await db.delete(lesson)
    await adjust_course_counter(course_id, "lessons", -1, db)
    await db.commit()


async def upload_lesson_video(
    store: BlobStore,
    course_id: str,
    filename: str,
    data: bytes,
    content_type: Optional[str],
) -> StoredBlob:
    return await store.upload(
        f"courses/{course_id}/videos",
        filename,
        data,
        content_type=content_type,
        policy=VIDEO_POLICY,
    )


async def upload_lesson_materials(
    store: BlobStore,
    course_id: str,
    files: Sequence[UploadedFile],
) -> List[Material]:
    """
    Store lesson materials, keeping their order.

    Each key carries the file's index so same-named files don't collide.
    """
    materials = []
    for index, (filename, data, content_type) in enumerate(files):
        blob = await store.upload(
            f"courses/{course_id}/materials",
            f"{index}_{filename}",
            data,
            content_type=content_type,
            policy=MATERIAL_POLICY,
        )
        materials.append(Material(name=filename, url=blob.url, type=content_type or ""))
    return materials
