"""
Change Feed

In-process publish/subscribe used for live snapshot listeners.

Writers mark topics as changed on their session; once the session commits,
every subscriber of those topics is signalled, re-runs its query and receives
the complete current result set (never a delta).
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Set, TypeVar

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


logger = logging.getLogger(__name__)

T = TypeVar("T")

Fetcher = Callable[[AsyncSession], Awaitable[T]]

_CHANGED = object()
_CLOSED = object()

PENDING_TOPICS_KEY = "changed_topics"


def notifications_topic(user_id: str) -> str:
    """Topic for a user's notification set."""
    return f"notifications:{user_id}"


def ratings_topic(course_id: str) -> str:
    """Topic for a course's rating set."""
    return f"ratings:{course_id}"


class Subscription(Generic[T]):
    """
    A live query over one topic.

    Iterate it with ``async for`` to receive snapshots: the first one
    immediately, then one after each change. Several changes that arrive
    before the consumer catches up collapse into a single snapshot.
    """

    def __init__(
        self,
        feed: "ChangeFeed",
        topic: str,
        fetch: Fetcher,
        session_maker: async_sessionmaker[AsyncSession],
    ):
        self._feed = feed
        self._topic = topic
        self._fetch = fetch
        self._session_maker = session_maker
        self._queue: asyncio.Queue = asyncio.Queue()
        self._cancelled = False
        self._queue.put_nowait(_CHANGED)

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def signal(self) -> None:
        if not self._cancelled:
            self._queue.put_nowait(_CHANGED)

    def cancel(self) -> None:
        """Stop the subscription. No snapshot is delivered afterwards."""
        if self._cancelled:
            return
        self._cancelled = True
        self._feed._remove(self)
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        if self._cancelled:
            raise StopAsyncIteration

        item = await self._queue.get()
        while not self._queue.empty():
            if self._queue.get_nowait() is _CLOSED:
                item = _CLOSED

        if item is _CLOSED or self._cancelled:
            raise StopAsyncIteration

        async with self._session_maker() as session:
            snapshot = await self._fetch(session)

        # Cancelled while the query was in flight
        if self._cancelled:
            raise StopAsyncIteration
        return snapshot


class ChangeFeed:
    """
    Registry of live subscriptions keyed by topic.

    Constructed once per application (see ``app.main.lifespan``) and handed
    to the code that needs it.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker
        self._subscribers: Dict[str, Set[Subscription]] = {}

    @property
    def session_maker(self) -> async_sessionmaker[AsyncSession]:
        """Session factory used to run subscription queries."""
        return self._session_maker

    def subscribe(self, topic: str, fetch: Fetcher) -> Subscription:
        """
        Open a live subscription.

        Args:
            topic: Topic to follow (see ``notifications_topic``).
            fetch: Coroutine producing the full snapshot from a session.

        Returns:
            Subscription yielding snapshots until cancelled.
        """
        subscription = Subscription(self, topic, fetch, self._session_maker)
        self._subscribers.setdefault(topic, set()).add(subscription)
        return subscription

    def publish(self, *topics: str) -> None:
        """Signal every subscriber of the given topics."""
        for topic in topics:
            for subscription in list(self._subscribers.get(topic, ())):
                subscription.signal()

    def subscriber_count(self, topic: Optional[str] = None) -> int:
        if topic is not None:
            return len(self._subscribers.get(topic, ()))
        return sum(len(subs) for subs in self._subscribers.values())

    def close(self) -> None:
        """Cancel all subscriptions (application shutdown)."""
        for subs in list(self._subscribers.values()):
            for subscription in list(subs):
                subscription.cancel()

    def _remove(self, subscription: Subscription) -> None:
        subs = self._subscribers.get(subscription.topic)
        if subs is None:
            return
        subs.discard(subscription)
        if not subs:
            del self._subscribers[subscription.topic]


def deliver(subscription: Subscription, callback: Callable[[Any], Any]) -> "asyncio.Task[None]":
    """
    Run ``callback`` for each snapshot of ``subscription`` on a background
    task. Coroutine callbacks are awaited before the next snapshot.
    """

    async def _pump() -> None:
        async for snapshot in subscription:
            result = callback(snapshot)
            if asyncio.iscoroutine(result):
                await result

    task = asyncio.get_running_loop().create_task(_pump())
    task.add_done_callback(_log_listener_failure)
    return task


def _log_listener_failure(task: "asyncio.Task[None]") -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.error("Snapshot listener failed", exc_info=task.exception())


# ============== Session Integration ==============

def mark_changed(session: AsyncSession, *topics: str) -> None:
    """Record topics touched by this session; published on commit."""
    pending = session.info.setdefault(PENDING_TOPICS_KEY, set())
    pending.update(topics)


def attach_change_feed(session: AsyncSession, feed: Optional[ChangeFeed]) -> None:
    """
    Publish the session's changed topics to ``feed`` after each commit.

    Topics recorded before a rollback are discarded.
    """
    if feed is None:
        return

    sync_session = session.sync_session

    @event.listens_for(sync_session, "after_commit")
    def _publish(_session) -> None:
        topics = _session.info.pop(PENDING_TOPICS_KEY, set())
        if topics:
            feed.publish(*topics)

    @event.listens_for(sync_session, "after_rollback")
    def _discard(_session) -> None:
        _session.info.pop(PENDING_TOPICS_KEY, None)
