"""Tests for the in-process change feed."""

import asyncio

import pytest

from src.core.change_feed import ChangeAction, ChangeEvent, ChangeFeed, Subscription


@pytest.mark.unit
class TestChangeFeed:
    async def test_subscriber_receives_published_events(self):
        feed = ChangeFeed()

        async with feed.subscribe("tasks") as subscription:
            feed.publish("tasks", ChangeAction.CREATE, {"id": "t1", "user": "alice@example.com"})
            event = await asyncio.wait_for(subscription.next_event(), timeout=1)

        assert event.collection == "tasks"
        assert event.action is ChangeAction.CREATE
        assert event.record["id"] == "t1"

    async def test_events_are_scoped_to_collection(self):
        feed = ChangeFeed()

        async with feed.subscribe("tasks") as subscription:
            feed.publish("comments", ChangeAction.CREATE, {"id": "c1"})
            with pytest.raises(TimeoutError):
                await asyncio.wait_for(subscription.next_event(), timeout=0.05)

    async def test_subscription_released_on_exit(self):
        feed = ChangeFeed()

        async with feed.subscribe("tasks") as subscription:
            assert feed.subscriber_count("tasks") == 1

        assert feed.subscriber_count("tasks") == 0
        assert subscription.closed

    async def test_subscription_released_when_block_raises(self):
        feed = ChangeFeed()

        with pytest.raises(RuntimeError):
            async with feed.subscribe("tasks"):
                raise RuntimeError("view crashed")

        assert feed.subscriber_count("tasks") == 0

    async def test_publish_after_release_is_ignored(self):
        feed = ChangeFeed()
        async with feed.subscribe("tasks") as subscription:
            pass

        feed.publish("tasks", ChangeAction.DELETE, {"id": "t1"})

        with pytest.raises(TimeoutError):
            await asyncio.wait_for(subscription.next_event(), timeout=0.05)

    async def test_published_record_is_a_copy(self):
        feed = ChangeFeed()
        record = {"id": "t1", "title": "Study"}

        async with feed.subscribe("tasks") as subscription:
            feed.publish("tasks", ChangeAction.UPDATE, record)
            record["title"] = "changed"
            event = await subscription.next_event()

        assert event.record["title"] == "Study"


@pytest.mark.unit
async def test_full_queue_drops_oldest_event():
    subscription = Subscription("tasks", maxsize=2)
    for n in range(3):
        subscription.deliver(ChangeEvent(collection="tasks", action=ChangeAction.CREATE, record={"id": f"t{n}"}))

    first = await subscription.next_event()
    second = await subscription.next_event()

    assert [first.record["id"], second.record["id"]] == ["t1", "t2"]
