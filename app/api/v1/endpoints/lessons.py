"""
Lesson Routes

Endpoints for the lessons of a course and their uploads.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_teacher
from app.core.database import get_db
from app.core.storage import BlobStore, get_blob_store
from app.models.lesson import Lesson
from app.models.user import User
from app.schemas.course import (
    LessonCreate,
    LessonResponse,
    LessonUpdate,
    Material,
    UploadResponse,
)
from app.services import course_service


router = APIRouter(prefix="/courses/{course_id}/lessons", tags=["Lessons"])


@router.get(
    "",
    response_model=List[LessonResponse],
    summary="List lessons of a course",
)
async def list_lessons(
    course_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[Lesson]:
    return await course_service.list_lessons(course_id, db)


@router.post(
    "",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a lesson",
)
async def create_lesson(
    course_id: str,
    lesson_data: LessonCreate,
    current_user: Annotated[User, Depends(require_teacher)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Lesson:
    """
    Add a lesson to a course the user owns.

    Enrolled students are notified of the new lesson.
    """
    return await course_service.create_lesson(course_id, lesson_data, current_user, db)


@router.post(
    "/videos",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a lesson video",
)
async def upload_lesson_video(
    course_id: str,
    current_user: Annotated[User, Depends(require_teacher)],
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[BlobStore, Depends(get_blob_store)],
    file: UploadFile = File(...),
) -> UploadResponse:
    """
    Raises:
        HTTPException: 400 if the file is not mp4/webm/ogg or exceeds 500MB.
    """
    course = await course_service.get_course(course_id, db)
    course_service.ensure_can_manage(course, current_user)

    data = await file.read()
    blob = await course_service.upload_lesson_video(
        store, course_id, file.filename or "video", data, file.content_type
    )
    return UploadResponse(key=blob.key, url=blob.url, size=blob.size, content_type=blob.content_type)


@router.post(
    "/materials",
    response_model=List[Material],
    status_code=status.HTTP_201_CREATED,
    summary="Upload lesson materials",
)
async def upload_lesson_materials(
    course_id: str,
    current_user: Annotated[User, Depends(require_teacher)],
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[BlobStore, Depends(get_blob_store)],
    files: List[UploadFile] = File(...),
) -> List[Material]:
    course = await course_service.get_course(course_id, db)
    course_service.ensure_can_manage(course, current_user)

    uploads = [(f.filename or "material", await f.read(), f.content_type) for f in files]
    return await course_service.upload_lesson_materials(store, course_id, uploads)


@router.get(
    "/{lesson_id}",
    response_model=LessonResponse,
    summary="Get a lesson",
)
async def get_lesson(
    course_id: str,
    lesson_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Lesson:
    return await course_service.get_lesson(course_id, lesson_id, db)


@router.patch(
    "/{lesson_id}",
    response_model=LessonResponse,
    summary="Update a lesson",
)
async def update_lesson(
    course_id: str,
    lesson_id: str,
    lesson_update: LessonUpdate,
    current_user: Annotated[User, Depends(require_teacher)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Lesson:
    return await course_service.update_lesson(course_id, lesson_id, lesson_update, current_user, db)


@router.delete(
    "/{lesson_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a lesson",
)
async def delete_lesson(
    course_id: str,
    lesson_id: str,
    current_user: Annotated[User, Depends(require_teacher)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    await course_service.delete_lesson(course_id, lesson_id, current_user, db)
