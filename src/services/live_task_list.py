"""Live list view of one owner's tasks.

The view holds a change-feed subscription on the tasks collection while it is
mounted. Every change that touches the owner's tasks triggers a fresh query,
and the whole ordered list is handed out again (a full replace, never a patch).
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from src.core.change_feed import ChangeEvent, Subscription, change_feed
from src.core.config import Constants
from src.core.logging import span
from src.domain.task import Task
from src.services import task_service


logger = logging.getLogger(__name__)


class LiveTaskList:
    """Ordered, continuously refreshed mirror of an owner's tasks."""

    def __init__(self, *, owner: str, subscription: Subscription) -> None:
        self.owner = owner
        self._subscription = subscription
        self.tasks: list[Task] = []

    def concerns_owner(self, event: ChangeEvent) -> bool:
        return event.record.get("user") == self.owner

    async def refresh(self) -> list[Task]:
        """Replace the local mirror with the current store contents."""
        with span("live_task_list.refresh"):
            self.tasks = await task_service.list_tasks(owner=self.owner)
            return self.tasks

    async def next_change(self, timeout: float | None = None) -> list[Task] | None:
        """Wait for the next relevant change and return the refreshed list.

        Returns None when ``timeout`` seconds pass without a notification.
        """
        while True:
            try:
                event = await asyncio.wait_for(self._subscription.next_event(), timeout)
            except TimeoutError:
                return None
            if self.concerns_owner(event):
                logger.debug(
                    "live_task_list_change",
                    extra={"owner": self.owner, "action": event.action.value, "task_id": event.record.get("id")},
                )
                return await self.refresh()

    async def snapshots(self) -> AsyncIterator[list[Task]]:
        """Yield the current list, then a full new list after every relevant change."""
        yield await self.refresh()
        while not self._subscription.closed:
            tasks = await self.next_change()
            if tasks is not None:
                yield tasks


@asynccontextmanager
async def live_task_list(owner: str) -> AsyncIterator[LiveTaskList]:
    """Mount a live task list for ``owner``; the subscription is released on exit."""
    async with change_feed.subscribe(Constants.TASKS_COLLECTION) as subscription:
        view = LiveTaskList(owner=owner, subscription=subscription)
        logger.info("live_task_list_mounted", extra={"owner": owner})
        try:
            yield view
        finally:
            logger.info("live_task_list_unmounted", extra={"owner": owner})
