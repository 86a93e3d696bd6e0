"""
Course Routes

Endpoints for browsing, authoring and moderating-by-owner courses.
"""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_teacher
from app.core.database import get_db
from app.core.storage import BlobStore, get_blob_store
from app.models.course import Course
from app.models.enums import CourseCategory
from app.models.user import User
from app.schemas.course import CourseCreate, CourseResponse, CourseUpdate, UploadResponse
from app.services import course_service, rating_service


router = APIRouter(prefix="/courses", tags=["Courses"])


@router.get(
    "",
    response_model=List[CourseResponse],
    summary="List published courses",
)
async def list_courses(
    db: Annotated[AsyncSession, Depends(get_db)],
    category: Annotated[Optional[CourseCategory], Query()] = None,
) -> List[Course]:
    """Published courses, newest first. Optionally filter by category."""
    return await course_service.list_courses(db, category=category.value if category else None)


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a course",
)
async def create_course(
    course_data: CourseCreate,
    current_user: Annotated[User, Depends(require_teacher)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Course:
    """
    Create a new course owned by the current teacher.

    Counters (students, lessons, ratings) start at zero.

    Raises:
        HTTPException: 403 if the user is not a teacher or admin.
    """
    return await course_service.create_course(course_data, current_user, db)


@router.get(
    "/top-rated",
    response_model=List[CourseResponse],
    summary="List the best rated courses",
)
async def get_top_rated_courses(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> List[Course]:
    return await rating_service.get_top_rated_courses(db, limit=limit)


@router.get(
    "/mine",
    response_model=List[CourseResponse],
    summary="List the current teacher's courses",
)
async def get_my_courses(
    current_user: Annotated[User, Depends(require_teacher)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[Course]:
    return await course_service.get_courses_by_instructor(current_user.id, db)


@router.post(
    "/cover-image",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a course cover image",
)
async def upload_cover_image(
    current_user: Annotated[User, Depends(require_teacher)],
    store: Annotated[BlobStore, Depends(get_blob_store)],
    file: UploadFile = File(...),
) -> UploadResponse:
    """
    Store a cover image and return its URL for use in course create/update.

    Raises:
        HTTPException: 400 if the file is not an image or exceeds 10MB.
    """
    data = await file.read()
    blob = await course_service.upload_cover_image(
        store, file.filename or "cover", data, file.content_type
    )
    return UploadResponse(key=blob.key, url=blob.url, size=blob.size, content_type=blob.content_type)


@router.get(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Get course details",
)
async def get_course(
    course_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Course:
    """
    Raises:
        HTTPException: 404 if the course does not exist.
    """
    return await course_service.get_course(course_id, db)


@router.patch(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Update a course",
)
async def update_course(
    course_id: str,
    course_update: CourseUpdate,
    current_user: Annotated[User, Depends(require_teacher)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Course:
    """
    Update course details. Only the owner or an admin may do this.

    Raises:
        HTTPException: 403 if the user does not own the course.
        HTTPException: 404 if the course does not exist.
    """
    return await course_service.update_course(course_id, course_update, current_user, db)
