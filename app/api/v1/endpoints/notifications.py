"""
Notification Routes

Inbox, read state, announcements, direct messages and the live
notification WebSocket.
"""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_change_feed, get_current_active_user, get_websocket_user, require_teacher
from app.api.streaming import stream_snapshots
from app.core.database import get_db
from app.core.events import ChangeFeed
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notification import (
    AnnouncementCreate,
    BulkReadResult,
    DirectMessageCreate,
    FanOutResult,
    NotificationResponse,
    UnreadCount,
)
from app.services import course_service, notification_service


router = APIRouter(tags=["Notifications"])


async def _get_own_notification(
    notification_id: str,
    current_user: User,
    db: AsyncSession,
) -> Notification:
    notification = await notification_service.get_notification(notification_id, db)
    if notification.recipient_id != current_user.id:
        # Other users' notifications are indistinguishable from missing ones
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Notification with ID {notification_id} not found",
        )
    return notification


@router.get(
    "/notifications",
    response_model=List[NotificationResponse],
    summary="List my notifications",
)
async def list_notifications(
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> List[Notification]:
    """The current user's notifications, newest first."""
    return await notification_service.get_user_notifications(current_user.id, db, limit=limit)


@router.get(
    "/notifications/unread-count",
    response_model=UnreadCount,
    summary="Count unread notifications",
)
async def get_unread_count(
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UnreadCount:
    count = await notification_service.get_unread_count(current_user.id, db)
    return UnreadCount(count=count)


@router.post(
    "/notifications/read-all",
    response_model=BulkReadResult,
    summary="Mark all notifications as read",
)
async def mark_all_as_read(
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BulkReadResult:
    updated = await notification_service.mark_all_as_read(current_user.id, db)
    return BulkReadResult(updated=updated)


@router.post(
    "/notifications/direct",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a direct message",
)
async def send_direct_message(
    message: DirectMessageCreate,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Notification:
    return await notification_service.send_direct_message(
        current_user.id, message.recipient_id, message.message, db
    )


@router.post(
    "/notifications/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification as read",
)
async def mark_as_read(
    notification_id: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Notification:
    await _get_own_notification(notification_id, current_user, db)
    return await notification_service.mark_as_read(notification_id, db)


@router.delete(
    "/notifications/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a notification",
)
async def delete_notification(
    notification_id: str,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    await _get_own_notification(notification_id, current_user, db)
    await notification_service.delete_notification(notification_id, db)


@router.post(
    "/courses/{course_id}/announcements",
    response_model=FanOutResult,
    summary="Announce to every enrolled student",
)
async def create_announcement(
    course_id: str,
    announcement: AnnouncementCreate,
    current_user: Annotated[User, Depends(require_teacher)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> FanOutResult:
    """
    Send a high-priority announcement to all students of a course.

    Delivery is per student: the result reports how many were reached.

    Raises:
        HTTPException: 403 if the user does not own the course.
    """
    course = await course_service.get_course(course_id, db)
    course_service.ensure_can_manage(course, current_user)

    return await notification_service.create_course_announcement(
        course_id, current_user.id, announcement, db
    )


@router.websocket("/notifications/ws")
async def notifications_feed(
    websocket: WebSocket,
    feed: Annotated[ChangeFeed, Depends(get_change_feed)],
    user: Annotated[Optional[User], Depends(get_websocket_user)],
) -> None:
    """
    Live notifications of the user identified by the ``token`` query
    parameter.

    Pushes `{"type": "notifications", ...}` and `{"type": "unread_count", ...}`
    on connect and again after every change.
    """
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await stream_snapshots(
        websocket,
        {
            "notifications": notification_service.subscribe_notifications(feed, user.id),
            "unread_count": notification_service.subscribe_unread_count(feed, user.id),
        },
    )
