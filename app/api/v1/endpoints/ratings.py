"""
Rating Routes

Ratings and reviews, their aggregates, and a live ratings feed.
"""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_change_feed, get_current_active_user, require_teacher
from app.api.streaming import stream_snapshots
from app.core.database import get_db
from app.core.events import ChangeFeed
from app.models.enums import UserRole
from app.models.rating import Rating
from app.models.user import User
from app.schemas.rating import (
    RatingResponse,
    RatingStats,
    RatingSubmit,
    RatingWithUser,
    ReviewWithContext,
    TeacherRatingAnalytics,
)
from app.services import rating_service


router = APIRouter(tags=["Ratings"])


@router.post(
    "/courses/{course_id}/ratings",
    response_model=RatingResponse,
    summary="Rate a course",
)
async def submit_rating(
    course_id: str,
    rating_data: RatingSubmit,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Rating:
    """
    Rate a course (1-5 stars, optional review).

    Submitting again replaces the user's previous rating.
    """
    return await rating_service.submit_rating(course_id, current_user.id, rating_data, db)


@router.get(
    "/courses/{course_id}/ratings",
    response_model=List[RatingWithUser],
    summary="List ratings of a course",
)
async def get_course_ratings(
    course_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> List[RatingWithUser]:
    return await rating_service.get_course_ratings(course_id, db, limit=limit)


@router.get(
    "/courses/{course_id}/ratings/stats",
    response_model=RatingStats,
    summary="Rating aggregates of a course",
)
async def get_course_rating_stats(
    course_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RatingStats:
    return await rating_service.get_course_rating_stats(course_id, db)


@router.get(
    "/courses/{course_id}/ratings/me",
    response_model=Optional[RatingResponse],
    summary="Get my rating of a course",
)
async def get_my_rating(
    course_id: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Optional[Rating]:
    return await rating_service.get_user_rating(course_id, current_user.id, db)


@router.delete(
    "/courses/{course_id}/ratings/{rating_id}",
    response_model=RatingStats,
    summary="Delete a rating",
)
async def delete_rating(
    course_id: str,
    rating_id: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RatingStats:
    """
    Delete a rating and return the course's recomputed aggregates.

    Raises:
        HTTPException: 403 unless the rating is the user's own or the user
            is an admin.
        HTTPException: 404 if the rating does not exist in this course.
    """
    rating = await rating_service.get_rating(rating_id, db)
    if rating.user_id != current_user.id and current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only delete your own rating",
        )
    return await rating_service.delete_rating(rating_id, course_id, db)


@router.get(
    "/ratings/recent-reviews",
    response_model=List[ReviewWithContext],
    summary="Latest written reviews",
)
async def get_recent_reviews(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> List[ReviewWithContext]:
    return await rating_service.get_recent_reviews(db, limit=limit)


@router.get(
    "/ratings/analytics",
    response_model=TeacherRatingAnalytics,
    summary="Rating analytics across my courses",
)
async def get_rating_analytics(
    current_user: Annotated[User, Depends(require_teacher)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TeacherRatingAnalytics:
    return await rating_service.get_teacher_rating_analytics(current_user.id, db)


@router.websocket("/courses/{course_id}/ratings/ws")
async def ratings_feed(
    websocket: WebSocket,
    course_id: str,
    feed: Annotated[ChangeFeed, Depends(get_change_feed)],
) -> None:
    """
    Live ratings of a course.

    Pushes `{"type": "ratings", ...}` and `{"type": "stats", ...}` on
    connect and again after every change.
    """
    await websocket.accept()
    await stream_snapshots(
        websocket,
        {
            "ratings": rating_service.subscribe_course_ratings(feed, course_id),
            "stats": rating_service.subscribe_rating_stats(feed, course_id),
        },
    )
