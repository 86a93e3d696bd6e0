"""
Enrollment Routes

Enrolling in courses and tracking lesson completion.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_active_user, require_teacher
from app.core.database import get_db
from app.models.enrollment import Enrollment
from app.models.user import User
from app.schemas.progress import (
    CourseStudentProgress,
    EnrollmentResponse,
    EnrollmentStatus,
    LessonCompletion,
    ProgressResponse,
)
from app.services import enrollment_service


router = APIRouter(tags=["Enrollments"])


@router.post(
    "/courses/{course_id}/enroll",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a course",
)
async def enroll(
    course_id: str,
    response: Response,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Enrollment:
    """
    Enroll the current user in a course.

    Idempotent: if already enrolled, returns the existing enrollment with
    200 instead of 201.

    Raises:
        HTTPException: 404 if the course does not exist.
    """
    enrollment, created = await enrollment_service.enroll(course_id, current_user.id, db)
    if not created:
        response.status_code = status.HTTP_200_OK
    return enrollment


@router.get(
    "/courses/{course_id}/enrollment",
    response_model=EnrollmentStatus,
    summary="Check enrollment",
)
async def check_enrollment(
    course_id: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EnrollmentStatus:
    enrolled = await enrollment_service.check_enrollment(course_id, current_user.id, db)
    return EnrollmentStatus(enrolled=enrolled)


@router.get(
    "/courses/{course_id}/progress",
    response_model=ProgressResponse,
    summary="Get my progress in a course",
)
async def get_progress(
    course_id: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProgressResponse:
    return await enrollment_service.get_user_progress(course_id, current_user.id, db)


@router.post(
    "/courses/{course_id}/lessons/{lesson_id}/complete",
    response_model=ProgressResponse,
    summary="Mark a lesson as completed",
)
async def complete_lesson(
    course_id: str,
    lesson_id: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProgressResponse:
    """
    Record that the current user finished a lesson.

    Calling it again for the same lesson changes nothing. Finishing the
    last lesson sends a one-time course completion notification. A lesson
    that is not part of the course is a 404.
    """
    return await enrollment_service.mark_lesson_complete(course_id, lesson_id, current_user.id, db)


@router.get(
    "/courses/{course_id}/lessons/{lesson_id}/completion",
    response_model=LessonCompletion,
    summary="Check whether a lesson is completed",
)
async def get_lesson_completion(
    course_id: str,
    lesson_id: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> LessonCompletion:
    completed = await enrollment_service.is_lesson_completed(course_id, lesson_id, current_user.id, db)
    return LessonCompletion(lesson_id=lesson_id, completed=completed)


@router.get(
    "/enrollments/students",
    response_model=List[CourseStudentProgress],
    summary="Student progress across my courses",
)
async def get_student_progress(
    current_user: Annotated[User, Depends(require_teacher)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[CourseStudentProgress]:
    """For each course the teacher owns, every enrolled student's progress."""
    return await enrollment_service.get_teacher_student_progress(current_user.id, db)
