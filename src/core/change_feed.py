"""In-process change notifications for live collection queries.

The store client publishes one ChangeEvent per committed write. Views hold a
Subscription for as long as they are mounted; subscriptions are only handed
out through the ``subscribe`` async context manager so they are always
released, whatever ends the view.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from src.core.config import Constants


logger = logging.getLogger(__name__)


class ChangeAction(StrEnum):
    """Kind of write that produced a change event."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed write on one record of a collection."""

    collection: str
    action: ChangeAction
    record: dict[str, Any] = field(default_factory=dict)


class Subscription:
    """A standing subscription to one collection's change events."""

    def __init__(self, collection: str, maxsize: int = Constants.CHANGE_FEED_QUEUE_MAXSIZE) -> None:
        self.collection = collection
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, event: ChangeEvent) -> None:
        """Queue an event for this subscriber, dropping the oldest one when full."""
        if self._closed:
            return
        if self._queue.full():
            # Consumers re-query the whole view, so a dropped event loses nothing.
            self._queue.get_nowait()
            logger.debug("Change feed queue full, dropped oldest event", extra={"collection": self.collection})
        self._queue.put_nowait(event)

    async def next_event(self) -> ChangeEvent:
        """Wait for the next change event."""
        return await self._queue.get()

    def close(self) -> None:
        self._closed = True


class ChangeFeed:
    """Fan-out of change events to the subscriptions of each collection."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, set[Subscription]] = {}

    def subscriber_count(self, collection: str) -> int:
        return len(self._subscriptions.get(collection, ()))

    def publish(self, collection: str, action: ChangeAction, record: dict[str, Any]) -> None:
        """Notify every open subscription on ``collection``."""
        event = ChangeEvent(collection=collection, action=action, record=dict(record))
        for subscription in list(self._subscriptions.get(collection, ())):
            subscription.deliver(event)

    def _acquire(self, collection: str) -> Subscription:
        subscription = Subscription(collection)
        self._subscriptions.setdefault(collection, set()).add(subscription)
        logger.info(
            "Change feed subscription acquired",
            extra={"collection": collection, "subscribers": self.subscriber_count(collection)},
        )
        return subscription

    def _release(self, subscription: Subscription) -> None:
        subscription.close()
        subscribers = self._subscriptions.get(subscription.collection)
        if subscribers is not None:
            subscribers.discard(subscription)
            if not subscribers:
                del self._subscriptions[subscription.collection]
        logger.info(
            "Change feed subscription released",
            extra={"collection": subscription.collection, "subscribers": self.subscriber_count(subscription.collection)},
        )

    @asynccontextmanager
    async def subscribe(self, collection: str) -> AsyncIterator[Subscription]:
        """Hold a subscription for the duration of the ``async with`` block."""
        subscription = self._acquire(collection)
        try:
            yield subscription
        finally:
            self._release(subscription)


# Global change feed instance
change_feed = ChangeFeed()
