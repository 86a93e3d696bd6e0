"""
Change Feed Tests

Subscriptions, commit-driven publishing and callback delivery.
"""

import asyncio

import pytest

from app.core.events import (
    ChangeFeed,
    attach_change_feed,
    deliver,
    mark_changed,
    notifications_topic,
    ratings_topic,
)


def _counter_fetch():
    calls = {"n": 0}

    async def fetch(session):
        calls["n"] += 1
        return calls["n"]

    return fetch, calls


class TestSubscription:

    @pytest.mark.asyncio
    async def test_first_snapshot_is_immediate(self, change_feed):
        fetch, _ = _counter_fetch()
        subscription = change_feed.subscribe("topic", fetch)

        assert await asyncio.wait_for(subscription.__anext__(), timeout=1) == 1
        subscription.cancel()

    @pytest.mark.asyncio
    async def test_bursts_collapse_into_one_snapshot(self, change_feed):
        fetch, calls = _counter_fetch()
        subscription = change_feed.subscribe("topic", fetch)
        await subscription.__anext__()

        change_feed.publish("topic")
        change_feed.publish("topic")
        change_feed.publish("topic")

        assert await subscription.__anext__() == 2
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(subscription.__anext__(), timeout=0.1)
        assert calls["n"] == 2
        subscription.cancel()

    @pytest.mark.asyncio
    async def test_cancel_stops_iteration_and_unregisters(self, change_feed):
        fetch, _ = _counter_fetch()
        subscription = change_feed.subscribe("topic", fetch)
        assert change_feed.subscriber_count("topic") == 1

        subscription.cancel()
        subscription.cancel()

        assert subscription.cancelled is True
        assert change_feed.subscriber_count() == 0
        with pytest.raises(StopAsyncIteration):
            await subscription.__anext__()

    @pytest.mark.asyncio
    async def test_close_cancels_everything(self, session_maker):
        feed = ChangeFeed(session_maker)
        fetch, _ = _counter_fetch()
        subscriptions = [feed.subscribe(f"topic-{i}", fetch) for i in range(3)]

        feed.close()

        assert feed.subscriber_count() == 0
        assert all(s.cancelled for s in subscriptions)


class TestDeliver:

    @pytest.mark.asyncio
    async def test_callback_receives_snapshots(self, change_feed):
        fetch, _ = _counter_fetch()
        received = []
        second = asyncio.Event()

        async def callback(snapshot):
            received.append(snapshot)
            if len(received) == 2:
                second.set()

        subscription = change_feed.subscribe("topic", fetch)
        deliver(subscription, callback)
        await asyncio.sleep(0.05)
        change_feed.publish("topic")
        await asyncio.wait_for(second.wait(), timeout=1)

        assert received == [1, 2]
        subscription.cancel()


class TestSessionIntegration:

    @pytest.mark.asyncio
    async def test_topics_publish_on_commit(self, session_maker, change_feed):
        topic = notifications_topic("u1")
        fetch, _ = _counter_fetch()
        subscription = change_feed.subscribe(topic, fetch)
        await subscription.__anext__()

        async with session_maker() as session:
            attach_change_feed(session, change_feed)
            mark_changed(session, topic)
            await session.commit()

        assert await asyncio.wait_for(subscription.__anext__(), timeout=1) == 2
        subscription.cancel()

    @pytest.mark.asyncio
    async def test_rollback_discards_topics(self, session_maker, change_feed):
        topic = ratings_topic("c1")
        fetch, _ = _counter_fetch()
        subscription = change_feed.subscribe(topic, fetch)
        await subscription.__anext__()

        async with session_maker() as session:
            attach_change_feed(session, change_feed)
            mark_changed(session, topic)
            await session.rollback()
            await session.commit()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(subscription.__anext__(), timeout=0.1)
        subscription.cancel()
