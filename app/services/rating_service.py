"""
Rating Service

Star ratings and reviews, and the aggregates denormalized onto each course.

Course aggregates are never adjusted incrementally: every write recomputes
them from the complete rating set of the course, inside the same
transaction as the write.
"""

import logging
from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import store_operation
from app.core.events import ChangeFeed, Subscription, mark_changed, ratings_topic
from app.models.common import utcnow
from app.models.course import Course
from app.models.enums import CourseStatus
from app.models.rating import Rating
from app.models.user import User
from app.schemas.course import CourseResponse
from app.schemas.rating import (
    CourseRatingSummary,
    RaterInfo,
    RatingStats,
    RatingSubmit,
    RatingWithUser,
    ReviewWithContext,
    TeacherRatingAnalytics,
    empty_distribution,
)
from app.services import course_service
from app.services.rounding import average, round_half_up


logger = logging.getLogger(__name__)

DEFAULT_RATINGS_LIMIT = 50
DEFAULT_REVIEWS_LIMIT = 10


# ============== Aggregation ==============

def summarize(ratings: Iterable[Rating]) -> RatingStats:
    """
    Aggregate a complete rating set.

    Average is rounded half-up to one decimal; a review counts only when
    it is not blank.
    """
    distribution = empty_distribution()
    total = 0
    stars = 0
    reviews = 0

    for rating in ratings:
        total += 1
        stars += rating.rating
        if rating.rating in distribution:
            distribution[rating.rating] += 1
        if rating.review and rating.review.strip():
            reviews += 1

    return RatingStats(
        average_rating=average(stars, total),
        total_ratings=total,
        rating_distribution=distribution,
        total_reviews=reviews,
    )


async def compute_rating_stats(course_id: str, db: AsyncSession) -> RatingStats:
    result = await db.execute(select(Rating).where(Rating.course_id == course_id))
    return summarize(result.scalars().all())


async def update_course_rating(course_id: str, db: AsyncSession) -> RatingStats:
    """
    Recompute a course's aggregates and write them onto the course.

    Pending rating changes must be flushed first. Does not commit.
    """
    stats = await compute_rating_stats(course_id, db)

    course = await db.get(Course, course_id)
    if course is not None:
        course.rating = stats.average_rating
        course.total_ratings = stats.total_ratings
        course.total_reviews = stats.total_reviews
        course.rating_distribution = {
            str(star): count for star, count in stats.rating_distribution.items()
        }
        course.last_rating_update = utcnow()

    return stats


# ============== Writes ==============

async def _find_rating(course_id: str, user_id: str, db: AsyncSession) -> Optional[Rating]:
    result = await db.execute(
        select(Rating).where(
            Rating.course_id == course_id,
            Rating.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


@store_operation("submit rating")
async def submit_rating(
    course_id: str,
    user_id: str,
    data: RatingSubmit,
    db: AsyncSession,
) -> Rating:
    """
    Create or replace the user's rating of a course.

    A second submission updates the existing rating in place, so a user
    holds at most one rating per course and the latest payload wins.

    Raises:
        HTTPException: 404 if the course does not exist.
    """
    await course_service.get_course(course_id, db)

    now = utcnow()
    created = False
    rating = await _find_rating(course_id, user_id, db)
    if rating is None:
        rating = Rating(
            course_id=course_id,
            user_id=user_id,
            rating=data.rating,
            review=data.review or "",
            title=data.title or "",
            created_at=now,
            updated_at=now,
        )
        db.add(rating)
        try:
            await db.flush()
            created = True
        except IntegrityError:
            # A concurrent submission created it first; update that one
            await db.rollback()
            rating = await _find_rating(course_id, user_id, db)
            if rating is None:
                raise

    if not created:
        rating.rating = data.rating
        rating.review = data.review or ""
        rating.title = data.title or ""
        rating.updated_at = now
        await db.flush()

    await update_course_rating(course_id, db)
    mark_changed(db, ratings_topic(course_id))
    await db.commit()

    logger.info("Rating %s submitted for course %s", rating.id, course_id)
    return rating


@store_operation("delete rating")
async def delete_rating(rating_id: str, course_id: str, db: AsyncSession) -> RatingStats:
    """
    Delete a rating and recompute the course's aggregates.

    Raises:
        HTTPException: 404 if the rating does not exist in this course.
    """
    rating = await db.get(Rating, rating_id)
    if rating is None or rating.course_id != course_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Rating with ID {rating_id} not found",
        )

    await db.delete(rating)
    await db.flush()

    stats = await update_course_rating(course_id, db)
    mark_changed(db, ratings_topic(course_id))
    await db.commit()

    return stats


# ============== Reads ==============

@store_operation("fetch rating")
async def get_rating(rating_id: str, db: AsyncSession) -> Rating:
    rating = await db.get(Rating, rating_id)
    if rating is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Rating with ID {rating_id} not found",
        )
    return rating


@store_operation("fetch rating")
async def get_user_rating(course_id: str, user_id: str, db: AsyncSession) -> Optional[Rating]:
    return await _find_rating(course_id, user_id, db)


@store_operation("fetch rating stats")
async def get_course_rating_stats(course_id: str, db: AsyncSession) -> RatingStats:
    return await compute_rating_stats(course_id, db)


async def _raters(user_ids: List[str], db: AsyncSession) -> Dict[str, RaterInfo]:
    """Rater identities by user id; an empty map if the lookup fails."""
    if not user_ids:
        return {}
    try:
        result = await db.execute(select(User).where(User.id.in_(set(user_ids))))
    except SQLAlchemyError:
        logger.warning("Could not load rater identities", exc_info=True)
        return {}

    return {
        user.id: RaterInfo(
            display_name=user.display_name or "Anonymous User",
            photo_url=user.photo_url,
        )
        for user in result.scalars()
    }


@store_operation("fetch ratings")
async def get_course_ratings(
    course_id: str,
    db: AsyncSession,
    limit: int = DEFAULT_RATINGS_LIMIT,
) -> List[RatingWithUser]:
    """
    A course's ratings, newest first, with the rater's identity.

    Raters that can't be found show as "Anonymous User".
    """
    result = await db.execute(
        select(Rating)
        .where(Rating.course_id == course_id)
        .order_by(Rating.created_at.desc())
        .limit(limit)
    )
    ratings = list(result.scalars().all())
    raters = await _raters([r.user_id for r in ratings], db)

    return [
        RatingWithUser.model_validate(rating).model_copy(
            update={"user": raters.get(rating.user_id, RaterInfo())}
        )
        for rating in ratings
    ]


@store_operation("fetch recent reviews")
async def get_recent_reviews(
    db: AsyncSession,
    limit: int = DEFAULT_REVIEWS_LIMIT,
) -> List[ReviewWithContext]:
    """Newest ratings that carry a written review, across all courses."""
    result = await db.execute(
        select(Rating)
        .where(Rating.review != "")
        .order_by(Rating.created_at.desc())
        .limit(limit)
    )
    ratings = list(result.scalars().all())
    raters = await _raters([r.user_id for r in ratings], db)

    course_ids = {r.course_id for r in ratings}
    titles = {}
    if course_ids:
        course_rows = await db.execute(
            select(Course.id, Course.title).where(Course.id.in_(course_ids))
        )
        titles = {course_id: title for course_id, title in course_rows.all()}

    return [
        ReviewWithContext.model_validate(rating).model_copy(
            update={
                "user": raters.get(rating.user_id, RaterInfo()),
                "course_title": titles.get(rating.course_id, "Unknown Course"),
            }
        )
        for rating in ratings
    ]


@store_operation("fetch top rated courses")
async def get_top_rated_courses(
    db: AsyncSession,
    limit: int = DEFAULT_REVIEWS_LIMIT,
) -> List[Course]:
    """Published courses with at least one rating, best first."""
    result = await db.execute(
        select(Course)
        .where(Course.rating > 0, Course.status == CourseStatus.PUBLISHED)
        .order_by(Course.rating.desc(), Course.total_ratings.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


@store_operation("fetch rating analytics")
async def get_teacher_rating_analytics(
    teacher_id: str,
    db: AsyncSession,
) -> TeacherRatingAnalytics:
    """
    Rating analytics across all of a teacher's courses.

    The overall average weights each course by its number of ratings.
    """
    courses = await course_service.get_courses_by_instructor(teacher_id, db)

    analytics = TeacherRatingAnalytics(total_courses=len(courses))
    weighted_sum = 0.0

    for course in courses:
        stats = await compute_rating_stats(course.id, db)

        analytics.total_ratings += stats.total_ratings
        analytics.total_reviews += stats.total_reviews
        weighted_sum += stats.average_rating * stats.total_ratings
        for star, count in stats.rating_distribution.items():
            analytics.rating_distribution[star] += count

        analytics.courses.append(
            CourseRatingSummary(
                course=CourseResponse.model_validate(course),
                rating_stats=stats,
            )
        )

    if analytics.total_ratings > 0:
        analytics.average_rating = round_half_up(weighted_sum / analytics.total_ratings, 1)

    return analytics


# ============== Live Subscriptions ==============

def subscribe_course_ratings(
    feed: ChangeFeed,
    course_id: str,
    limit: int = DEFAULT_RATINGS_LIMIT,
) -> Subscription:
    """Live, newest-first rating list of a course."""

    async def fetch(db: AsyncSession) -> List[RatingWithUser]:
        return await get_course_ratings(course_id, db, limit=limit)

    return feed.subscribe(ratings_topic(course_id), fetch)


def subscribe_rating_stats(feed: ChangeFeed, course_id: str) -> Subscription:
    """Live rating aggregates of a course."""

    async def fetch(db: AsyncSession) -> RatingStats:
        return await get_course_rating_stats(course_id, db)

    return feed.subscribe(ratings_topic(course_id), fetch)
