"""
Rating Service Tests

Upsert semantics and aggregate recomputation.
"""

import asyncio
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from sqlalchemy import func, select

from app.models import Rating
from app.models.enums import CourseStatus, UserRole
from app.schemas.rating import RatingSubmit
from app.services import rating_service


def _assert_consistent(course):
    assert sum(course.rating_distribution.values()) == course.total_ratings


class TestSummarize:

    def test_empty_set(self):
        stats = rating_service.summarize([])

        assert stats.average_rating == 0.0
        assert stats.total_ratings == 0
        assert stats.total_reviews == 0
        assert stats.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}

    def test_blank_reviews_are_not_counted(self):
        ratings = [
            Rating(rating=5, review="Great"),
            Rating(rating=4, review="   "),
            Rating(rating=4, review=""),
        ]

        stats = rating_service.summarize(ratings)

        assert stats.total_reviews == 1
        # 13 / 3 = 4.33
        assert stats.average_rating == 4.3
        assert stats.rating_distribution[4] == 2


class TestSubmitRating:

    @pytest.mark.asyncio
    async def test_aggregate_walkthrough(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        u1 = await make_user()
        u2 = await make_user()
        course = await make_course(teacher)

        await rating_service.submit_rating(course.id, u1.id, RatingSubmit(rating=5), db)
        await db.refresh(course)
        assert course.rating == 5.0
        assert course.total_ratings == 1

        second = await rating_service.submit_rating(course.id, u2.id, RatingSubmit(rating=3), db)
        await db.refresh(course)
        assert course.rating == 4.0
        assert course.total_ratings == 2
        assert course.rating_distribution == {"1": 0, "2": 0, "3": 1, "4": 0, "5": 1}
        assert course.last_rating_update is not None

        await rating_service.delete_rating(second.id, course.id, db)
        await db.refresh(course)
        assert course.rating == 5.0
        assert course.total_ratings == 1
        _assert_consistent(course)

    @pytest.mark.asyncio
    async def test_resubmission_updates_in_place(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        student = await make_user()
        course = await make_course(teacher)

        first = await rating_service.submit_rating(
            course.id, student.id, RatingSubmit(rating=2, review="Meh", title="Hmm"), db
        )
        second = await rating_service.submit_rating(
            course.id, student.id, RatingSubmit(rating=5, review="Loved it"), db
        )

        assert second.id == first.id
        count = (await db.execute(select(func.count()).select_from(Rating))).scalar_one()
        assert count == 1

        stored = await rating_service.get_user_rating(course.id, student.id, db)
        assert stored.rating == 5
        assert stored.review == "Loved it"
        assert stored.title == ""

        await db.refresh(course)
        assert course.rating == 5.0
        assert course.total_ratings == 1
        assert course.total_reviews == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_submission_updates_existing(
        self, db, session_maker, make_user, make_course, first_lookup_misses
    ):
        teacher = await make_user(role=UserRole.TEACHER)
        student = await make_user()
        course = await make_course(teacher)
        student_id, course_id = student.id, course.id

        async with session_maker() as other:
            winner = await rating_service.submit_rating(
                course_id, student_id, RatingSubmit(rating=2, review="First"), other
            )

        with patch.object(rating_service, "_find_rating", first_lookup_misses(rating_service._find_rating)):
            rating = await rating_service.submit_rating(
                course_id, student_id, RatingSubmit(rating=5, review="Second"), db
            )

        assert rating.id == winner.id
        count = (await db.execute(select(func.count()).select_from(Rating))).scalar_one()
        assert count == 1

        stored = await rating_service.get_user_rating(course_id, student_id, db)
        assert stored.rating == 5
        assert stored.review == "Second"

        await db.refresh(course)
        assert course.rating == 5.0
        assert course.total_ratings == 1
        _assert_consistent(course)

    @pytest.mark.asyncio
    async def test_aggregates_after_mixed_sequence(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        course = await make_course(teacher)
        users = [await make_user() for _ in range(4)]

        ratings = {}
        for user, stars in zip(users, [1, 4, 4, 5]):
            ratings[user.id] = await rating_service.submit_rating(
                course.id, user.id, RatingSubmit(rating=stars, review="ok"), db
            )
        await rating_service.submit_rating(course.id, users[0].id, RatingSubmit(rating=2), db)
        await rating_service.delete_rating(ratings[users[3].id].id, course.id, db)

        await db.refresh(course)
        # Remaining: 2, 4, 4
        assert course.total_ratings == 3
        assert course.rating == 3.3
        assert course.total_reviews == 2
        _assert_consistent(course)

        stats = await rating_service.get_course_rating_stats(course.id, db)
        assert stats.average_rating == course.rating
        assert stats.rating_distribution == {1: 0, 2: 1, 3: 0, 4: 2, 5: 0}

    @pytest.mark.asyncio
    async def test_unknown_course_is_404(self, db, make_user):
        student = await make_user()

        with pytest.raises(HTTPException) as exc_info:
            await rating_service.submit_rating("missing", student.id, RatingSubmit(rating=4), db)

        assert exc_info.value.status_code == 404

    def test_rating_out_of_range_is_rejected(self):
        with pytest.raises(ValueError):
            RatingSubmit(rating=6)


class TestDeleteRating:

    @pytest.mark.asyncio
    async def test_missing_rating_is_404(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        course = await make_course(teacher)

        with pytest.raises(HTTPException) as exc_info:
            await rating_service.delete_rating("missing", course.id, db)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_rating_of_other_course_is_404(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        student = await make_user()
        course = await make_course(teacher)
        other = await make_course(teacher, title="Other")
        rating = await rating_service.submit_rating(course.id, student.id, RatingSubmit(rating=4), db)

        with pytest.raises(HTTPException) as exc_info:
            await rating_service.delete_rating(rating.id, other.id, db)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_deleting_last_rating_resets_aggregates(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        student = await make_user()
        course = await make_course(teacher)
        rating = await rating_service.submit_rating(course.id, student.id, RatingSubmit(rating=4), db)

        stats = await rating_service.delete_rating(rating.id, course.id, db)

        assert stats.total_ratings == 0
        assert stats.average_rating == 0.0
        await db.refresh(course)
        assert course.rating == 0.0
        assert course.rating_distribution == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0}


class TestRatingReads:

    @pytest.mark.asyncio
    async def test_course_ratings_join_rater(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        student = await make_user(display_name="Linus")
        course = await make_course(teacher)

        await rating_service.submit_rating(course.id, student.id, RatingSubmit(rating=5, review="Great"), db)
        await rating_service.submit_rating(course.id, "gone-user", RatingSubmit(rating=3), db)

        ratings = await rating_service.get_course_ratings(course.id, db)

        names = {r.user_id: r.user.display_name for r in ratings}
        assert names[student.id] == "Linus"
        assert names["gone-user"] == "Anonymous User"

    @pytest.mark.asyncio
    async def test_recent_reviews_only_with_text(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        student = await make_user()
        course = await make_course(teacher, title="Rust")

        await rating_service.submit_rating(course.id, student.id, RatingSubmit(rating=5, review="Superb"), db)
        await rating_service.submit_rating(course.id, "silent", RatingSubmit(rating=2), db)

        reviews = await rating_service.get_recent_reviews(db)

        assert [r.review for r in reviews] == ["Superb"]
        assert reviews[0].course_title == "Rust"

    @pytest.mark.asyncio
    async def test_recent_reviews_for_deleted_course(self, db, make_user):
        db.add(Rating(course_id="deleted-course", user_id="someone", rating=4, review="Nice"))
        await db.commit()

        reviews = await rating_service.get_recent_reviews(db)

        assert reviews[0].course_title == "Unknown Course"
        assert reviews[0].user.display_name == "Anonymous User"

    @pytest.mark.asyncio
    async def test_top_rated_order(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        a = await make_course(teacher, title="A")
        b = await make_course(teacher, title="B")
        c = await make_course(teacher, title="C")
        hidden = await make_course(teacher, title="Hidden", status=CourseStatus.PENDING)
        await make_course(teacher, title="Unrated")

        users = [await make_user() for _ in range(3)]
        await rating_service.submit_rating(a.id, users[0].id, RatingSubmit(rating=4), db)
        await rating_service.submit_rating(b.id, users[0].id, RatingSubmit(rating=5), db)
        await rating_service.submit_rating(c.id, users[0].id, RatingSubmit(rating=4), db)
        await rating_service.submit_rating(c.id, users[1].id, RatingSubmit(rating=4), db)
        await rating_service.submit_rating(hidden.id, users[2].id, RatingSubmit(rating=5), db)

        top = await rating_service.get_top_rated_courses(db)

        assert [course.title for course in top] == ["B", "C", "A"]

    @pytest.mark.asyncio
    async def test_teacher_analytics_weighted_average(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        popular = await make_course(teacher, title="Popular")
        niche = await make_course(teacher, title="Niche")
        await make_course(teacher, title="New")

        users = [await make_user() for _ in range(3)]
        for user in users:
            await rating_service.submit_rating(popular.id, user.id, RatingSubmit(rating=5, review="yes"), db)
        await rating_service.submit_rating(niche.id, users[0].id, RatingSubmit(rating=1), db)

        analytics = await rating_service.get_teacher_rating_analytics(teacher.id, db)

        assert analytics.total_courses == 3
        assert analytics.total_ratings == 4
        assert analytics.total_reviews == 3
        # (5.0 * 3 + 1.0 * 1) / 4 = 4.0
        assert analytics.average_rating == 4.0
        assert analytics.rating_distribution == {1: 1, 2: 0, 3: 0, 4: 0, 5: 3}
        assert len(analytics.courses) == 3

    @pytest.mark.asyncio
    async def test_teacher_without_ratings(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        await make_course(teacher)

        analytics = await rating_service.get_teacher_rating_analytics(teacher.id, db)

        assert analytics.average_rating == 0.0
        assert analytics.total_ratings == 0


class TestRatingSubscriptions:

    @pytest.mark.asyncio
    async def test_stats_follow_submissions(self, db, make_user, make_course, change_feed):
        teacher = await make_user(role=UserRole.TEACHER)
        student = await make_user()
        course = await make_course(teacher)
        subscription = rating_service.subscribe_rating_stats(change_feed, course.id)

        initial = await asyncio.wait_for(subscription.__anext__(), timeout=5)
        assert initial.total_ratings == 0

        await rating_service.submit_rating(course.id, student.id, RatingSubmit(rating=4), db)
        updated = await asyncio.wait_for(subscription.__anext__(), timeout=5)
        assert updated.total_ratings == 1
        assert updated.average_rating == 4.0

        subscription.cancel()
        assert change_feed.subscriber_count() == 0
