"""
Notification Service

Creation, fan-out, read state and live subscriptions for notifications.

Fan-outs write one notification per recipient, each in its own
transaction: a failure for one recipient is logged and skipped, the others
are still delivered, and nothing is retried.
"""

import logging
from typing import Callable, Iterable, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StoreError, store_operation
from app.core.events import ChangeFeed, Subscription, mark_changed, notifications_topic
from app.models.common import utcnow
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import NotificationPriority, NotificationType
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notification import (
    AnnouncementCreate,
    FanOutResult,
    NotificationCreate,
    NotificationResponse,
)


logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50


# ============== Creation ==============

@store_operation("create notification")
async def create_notification(
    data: NotificationCreate,
    db: AsyncSession,
) -> Notification:
    """
    Insert one unread notification and commit it.

    Priority defaults to medium when unset.
    """
    notification = Notification(
        type=data.type,
        recipient_id=data.recipient_id,
        sender_id=data.sender_id,
        course_id=data.course_id,
        title=data.title,
        message=data.message,
        priority=data.priority or NotificationPriority.MEDIUM,
        read=False,
        read_at=None,
        created_at=utcnow(),
        data=dict(data.data),
    )
    db.add(notification)
    mark_changed(db, notifications_topic(data.recipient_id))
    await db.commit()

    return notification


async def _fan_out(
    recipient_ids: Iterable[str],
    build: Callable[[str], NotificationCreate],
    db: AsyncSession,
) -> FanOutResult:
    """Create one notification per recipient, tolerating individual failures."""
    recipients = list(recipient_ids)
    delivered = 0

    for recipient_id in recipients:
        try:
            await create_notification(build(recipient_id), db)
            delivered += 1
        except StoreError:
            await db.rollback()
            logger.warning("Notification to %s was not delivered", recipient_id)

    failed = len(recipients) - delivered
    if failed:
        logger.warning("Fan-out delivered %d of %d notifications", delivered, len(recipients))

    return FanOutResult(recipients=len(recipients), delivered=delivered, failed=failed)


async def _enrolled_user_ids(course_id: str, db: AsyncSession) -> List[str]:
    result = await db.execute(
        select(Enrollment.user_id)
        .where(Enrollment.course_id == course_id)
        .order_by(Enrollment.enrolled_at)
    )
    return list(result.scalars().all())


@store_operation("create course announcement")
async def create_course_announcement(
    course_id: str,
    instructor_id: str,
    announcement: AnnouncementCreate,
    db: AsyncSession,
) -> FanOutResult:
    """
    Send a high-priority announcement to every student enrolled in a course.

    Not transactional: callers must tolerate partial delivery.
    """
    recipients = await _enrolled_user_ids(course_id, db)

    return await _fan_out(
        recipients,
        lambda recipient_id: NotificationCreate(
            type=NotificationType.COURSE_ANNOUNCEMENT,
            recipient_id=recipient_id,
            sender_id=instructor_id,
            course_id=course_id,
            title="Course Announcement",
            message=announcement.message,
            priority=NotificationPriority.HIGH,
            data={"course_id": course_id, "announcement_id": announcement.id},
        ),
        db,
    )


@store_operation("notify instructor of enrollment")
async def notify_teacher_enrollment(
    course_id: str,
    student_id: str,
    course_title: str,
    db: AsyncSession,
) -> Optional[Notification]:
    """Tell a course's instructor that a student enrolled."""
    course = await db.get(Course, course_id)
    if course is None:
        return None

    student = await db.get(User, student_id)
    student_name = student.display_name if student and student.display_name else "New Student"

    return await create_notification(
        NotificationCreate(
            type=NotificationType.NEW_ENROLLMENT,
            recipient_id=course.instructor_id,
            sender_id=student_id,
            course_id=course_id,
            title="New Student Enrolled",
            message=f'{student_name} has enrolled in your course "{course_title}"',
            priority=NotificationPriority.MEDIUM,
            data={
                "course_id": course_id,
                "student_id": student_id,
                "student_name": student_name,
            },
        ),
        db,
    )


@store_operation("notify students of new lesson")
async def notify_new_lesson(
    course_id: str,
    lesson_title: str,
    course_title: str,
    db: AsyncSession,
) -> FanOutResult:
    """Tell every enrolled student that a lesson was added."""
    recipients = await _enrolled_user_ids(course_id, db)

    return await _fan_out(
        recipients,
        lambda recipient_id: NotificationCreate(
            type=NotificationType.NEW_LESSON,
            recipient_id=recipient_id,
            course_id=course_id,
            title="New Lesson Available",
            message=f'A new lesson "{lesson_title}" has been added to "{course_title}"',
            priority=NotificationPriority.MEDIUM,
            data={"course_id": course_id, "lesson_title": lesson_title},
        ),
        db,
    )


async def notify_course_completion(
    user_id: str,
    course_id: str,
    course_title: str,
    db: AsyncSession,
) -> Notification:
    """Congratulate a student on finishing a course."""
    return await create_notification(
        NotificationCreate(
            type=NotificationType.COURSE_COMPLETION,
            recipient_id=user_id,
            course_id=course_id,
            title="Course Completed! 🎉",
            message=f'Congratulations! You\'ve completed "{course_title}"',
            priority=NotificationPriority.HIGH,
            data={"course_id": course_id, "course_title": course_title},
        ),
        db,
    )


async def send_direct_message(
    sender_id: str,
    recipient_id: str,
    message: str,
    db: AsyncSession,
) -> Notification:
    """Deliver a direct message as a notification."""
    return await create_notification(
        NotificationCreate(
            type=NotificationType.DIRECT_MESSAGE,
            recipient_id=recipient_id,
            sender_id=sender_id,
            title="New Message",
            message=message,
            priority=NotificationPriority.MEDIUM,
            data={"sender_id": sender_id, "message": message},
        ),
        db,
    )


# ============== Reads ==============

@store_operation("fetch notifications")
async def get_user_notifications(
    user_id: str,
    db: AsyncSession,
    limit: int = DEFAULT_LIST_LIMIT,
) -> List[Notification]:
    """A user's notifications, newest first."""
    result = await db.execute(
        select(Notification)
        .where(Notification.recipient_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


@store_operation("count unread notifications")
async def get_unread_count(user_id: str, db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(
            Notification.recipient_id == user_id,
            Notification.read.is_(False),
        )
    )
    return result.scalar_one()


@store_operation("fetch notification")
async def get_notification(notification_id: str, db: AsyncSession) -> Notification:
    """
    Raises:
        HTTPException: 404 if the notification does not exist.
    """
    notification = await db.get(Notification, notification_id)
    if notification is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Notification with ID {notification_id} not found",
        )
    return notification


# ============== Read State ==============

@store_operation("mark notification as read")
async def mark_as_read(notification_id: str, db: AsyncSession) -> Notification:
    notification = await get_notification(notification_id, db)

    if not notification.read:
        notification.read = True
        notification.read_at = utcnow()
        mark_changed(db, notifications_topic(notification.recipient_id))
        await db.commit()

    return notification


@store_operation("mark all notifications as read")
async def mark_all_as_read(user_id: str, db: AsyncSession) -> int:
    """
    Mark every unread notification of a user as read.

    Query-then-update-each, not one atomic statement.

    Returns:
        Number of notifications updated.
    """
    result = await db.execute(
        select(Notification).where(
            Notification.recipient_id == user_id,
            Notification.read.is_(False),
        )
    )
    unread = list(result.scalars().all())

    now = utcnow()
    for notification in unread:
        notification.read = True
        notification.read_at = now

    if unread:
        mark_changed(db, notifications_topic(user_id))
        await db.commit()

    return len(unread)


@store_operation("delete notification")
async def delete_notification(notification_id: str, db: AsyncSession) -> None:
    notification = await get_notification(notification_id, db)
    recipient_id = notification.recipient_id

    await db.delete(notification)
    mark_changed(db, notifications_topic(recipient_id))
    await db.commit()


# ============== Live Subscriptions ==============

def subscribe_notifications(
    feed: ChangeFeed,
    user_id: str,
    limit: int = DEFAULT_LIST_LIMIT,
) -> Subscription:
    """Live, newest-first notification list of a user."""

    async def fetch(db: AsyncSession) -> List[NotificationResponse]:
        notifications = await get_user_notifications(user_id, db, limit=limit)
        return [NotificationResponse.model_validate(n) for n in notifications]

    return feed.subscribe(notifications_topic(user_id), fetch)


def subscribe_unread_count(feed: ChangeFeed, user_id: str) -> Subscription:
    """Live unread notification count of a user."""

    async def fetch(db: AsyncSession) -> int:
        return await get_unread_count(user_id, db)

    return feed.subscribe(notifications_topic(user_id), fetch)
