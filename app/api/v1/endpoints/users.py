"""
User Routes

Endpoints for the signed-in user's profile and preferences.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_active_user
from app.core.database import get_db
from app.models.user import User
from app.schemas.progress import EnrollmentWithCourse
from app.schemas.user import PreferencesUpdate, UserResponse, UserUpdate
from app.services import enrollment_service, user_service


router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user profile",
)
async def get_me(
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> User:
    """
    Get the currently logged-in user's profile.

    This endpoint requires authentication via Bearer token.
    """
    return current_user


@router.patch(
    "/me",
    response_model=UserResponse,
    summary="Update current user profile",
)
async def update_me(
    user_update: UserUpdate,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Update display name and/or photo. Only provided fields change."""
    return await user_service.update_profile(current_user, user_update, db)


@router.patch(
    "/me/preferences",
    response_model=UserResponse,
    summary="Update UI preferences",
)
async def update_my_preferences(
    preferences: PreferencesUpdate,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    return await user_service.update_preferences(current_user, preferences, db)


@router.get(
    "/me/enrollments",
    response_model=List[EnrollmentWithCourse],
    summary="List my enrollments",
)
async def get_my_enrollments(
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[EnrollmentWithCourse]:
    """Courses the user is enrolled in, most recent enrollment first."""
    return await enrollment_service.get_user_enrollments(current_user.id, db)
