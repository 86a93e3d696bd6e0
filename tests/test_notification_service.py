"""
Notification Service Tests

Fan-out delivery, read state and live snapshot subscriptions.
"""

import asyncio
from unittest.mock import patch

import pytest
from fastapi import HTTPException

from app.core.errors import StoreError
from app.models.enums import NotificationPriority, NotificationType, UserRole
from app.schemas.notification import AnnouncementCreate, NotificationCreate
from app.services import enrollment_service, notification_service


async def _enroll_students(db, course, make_user, count):
    students = []
    for _ in range(count):
        student = await make_user()
        await enrollment_service.enroll(course.id, student.id, db)
        students.append(student)
    return students


class TestCreateNotification:

    @pytest.mark.asyncio
    async def test_defaults(self, db, make_user):
        user = await make_user()

        notification = await notification_service.create_notification(
            NotificationCreate(
                type=NotificationType.DIRECT_MESSAGE,
                recipient_id=user.id,
                title="Hello",
            ),
            db,
        )

        assert notification.priority == NotificationPriority.MEDIUM
        assert notification.read is False
        assert notification.read_at is None
        assert notification.created_at is not None

    @pytest.mark.asyncio
    async def test_direct_message(self, db, make_user):
        sender = await make_user()
        recipient = await make_user()

        notification = await notification_service.send_direct_message(sender.id, recipient.id, "Hi there", db)

        assert notification.type == NotificationType.DIRECT_MESSAGE
        assert notification.title == "New Message"
        assert notification.sender_id == sender.id
        assert notification.data == {"sender_id": sender.id, "message": "Hi there"}


class TestAnnouncements:

    @pytest.mark.asyncio
    async def test_every_enrolled_student_receives_one(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        course = await make_course(teacher)
        students = await _enroll_students(db, course, make_user, 3)
        outsider = await make_user()

        result = await notification_service.create_course_announcement(
            course.id, teacher.id, AnnouncementCreate(message="Exam on Friday", id="a-1"), db
        )

        assert result.recipients == 3
        assert result.delivered == 3
        assert result.failed == 0

        for student in students:
            inbox = await notification_service.get_user_notifications(student.id, db)
            assert len(inbox) == 1
            assert inbox[0].type == NotificationType.COURSE_ANNOUNCEMENT
            assert inbox[0].priority == NotificationPriority.HIGH
            assert inbox[0].read is False
            assert inbox[0].message == "Exam on Friday"
            assert inbox[0].data["announcement_id"] == "a-1"

        assert await notification_service.get_user_notifications(outsider.id, db) == []

    @pytest.mark.asyncio
    async def test_course_without_students(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        course = await make_course(teacher)

        result = await notification_service.create_course_announcement(
            course.id, teacher.id, AnnouncementCreate(message="Anyone?"), db
        )

        assert result.recipients == 0
        assert result.delivered == 0

    @pytest.mark.asyncio
    async def test_one_failed_recipient_does_not_stop_the_rest(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        course = await make_course(teacher)
        students = await _enroll_students(db, course, make_user, 3)
        unlucky = students[1].id

        original = notification_service.create_notification

        async def flaky(data, session):
            if data.recipient_id == unlucky:
                raise StoreError("create notification")
            return await original(data, session)

        with patch("app.services.notification_service.create_notification", side_effect=flaky):
            result = await notification_service.create_course_announcement(
                course.id, teacher.id, AnnouncementCreate(message="Heads up"), db
            )

        assert result.delivered == 2
        assert result.failed == 1
        assert await notification_service.get_unread_count(unlucky, db) == 0
        assert await notification_service.get_unread_count(students[0].id, db) == 1
        assert await notification_service.get_unread_count(students[2].id, db) == 1

    @pytest.mark.asyncio
    async def test_new_lesson_notice(self, db, make_user, make_course):
        teacher = await make_user(role=UserRole.TEACHER)
        course = await make_course(teacher, title="Compilers")
        student, = await _enroll_students(db, course, make_user, 1)

        await notification_service.notify_new_lesson(course.id, "Parsing", "Compilers", db)

        inbox = await notification_service.get_user_notifications(student.id, db)
        assert inbox[0].type == NotificationType.NEW_LESSON
        assert inbox[0].message == 'A new lesson "Parsing" has been added to "Compilers"'


class TestReadState:

    @pytest.mark.asyncio
    async def test_mark_as_read(self, db, make_user):
        user = await make_user()
        notification = await notification_service.send_direct_message("someone", user.id, "Ping", db)

        updated = await notification_service.mark_as_read(notification.id, db)

        assert updated.read is True
        assert updated.read_at is not None
        assert await notification_service.get_unread_count(user.id, db) == 0

    @pytest.mark.asyncio
    async def test_mark_as_read_missing_is_404(self, db):
        with pytest.raises(HTTPException) as exc_info:
            await notification_service.mark_as_read("missing", db)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self, db, make_user):
        user = await make_user()
        other = await make_user()
        for i in range(3):
            await notification_service.send_direct_message("someone", user.id, f"Message {i}", db)
        await notification_service.send_direct_message("someone", other.id, "Not yours", db)

        assert await notification_service.get_unread_count(user.id, db) == 3

        updated = await notification_service.mark_all_as_read(user.id, db)

        assert updated == 3
        assert await notification_service.get_unread_count(user.id, db) == 0
        assert await notification_service.get_unread_count(other.id, db) == 1
        assert await notification_service.mark_all_as_read(user.id, db) == 0

    @pytest.mark.asyncio
    async def test_delete(self, db, make_user):
        user = await make_user()
        notification = await notification_service.send_direct_message("someone", user.id, "Bye", db)

        await notification_service.delete_notification(notification.id, db)

        assert await notification_service.get_user_notifications(user.id, db) == []
        with pytest.raises(HTTPException):
            await notification_service.get_notification(notification.id, db)

    @pytest.mark.asyncio
    async def test_list_is_newest_first_and_limited(self, db, make_user):
        user = await make_user()
        for i in range(3):
            await notification_service.send_direct_message("someone", user.id, f"Message {i}", db)

        inbox = await notification_service.get_user_notifications(user.id, db, limit=2)

        assert [n.message for n in inbox] == ["Message 2", "Message 1"]


class TestSubscriptions:

    @pytest.mark.asyncio
    async def test_unread_count_snapshots(self, db, make_user, change_feed):
        user = await make_user()
        subscription = notification_service.subscribe_unread_count(change_feed, user.id)

        assert await asyncio.wait_for(subscription.__anext__(), timeout=5) == 0

        await notification_service.send_direct_message("someone", user.id, "Ping", db)
        assert await asyncio.wait_for(subscription.__anext__(), timeout=5) == 1

        await notification_service.mark_all_as_read(user.id, db)
        assert await asyncio.wait_for(subscription.__anext__(), timeout=5) == 0

        subscription.cancel()
        with pytest.raises(StopAsyncIteration):
            await subscription.__anext__()
        assert change_feed.subscriber_count() == 0

    @pytest.mark.asyncio
    async def test_notification_list_snapshot_is_complete(self, db, make_user, change_feed):
        user = await make_user()
        await notification_service.send_direct_message("someone", user.id, "First", db)
        subscription = notification_service.subscribe_notifications(change_feed, user.id)

        initial = await asyncio.wait_for(subscription.__anext__(), timeout=5)
        assert [n.message for n in initial] == ["First"]

        await notification_service.send_direct_message("someone", user.id, "Second", db)
        snapshot = await asyncio.wait_for(subscription.__anext__(), timeout=5)
        assert [n.message for n in snapshot] == ["Second", "First"]

        subscription.cancel()

    @pytest.mark.asyncio
    async def test_other_users_changes_do_not_signal(self, db, make_user, change_feed):
        user = await make_user()
        other = await make_user()
        subscription = notification_service.subscribe_unread_count(change_feed, user.id)
        await subscription.__anext__()

        await notification_service.send_direct_message("someone", other.id, "Not for you", db)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(subscription.__anext__(), timeout=0.2)
        subscription.cancel()
