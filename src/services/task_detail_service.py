"""Pre-render resolution of a task detail page."""

import asyncio
import logging
from datetime import datetime

from pydantic import BaseModel

from src.core.config import settings
from src.core.logging import span
from src.domain.comment import Comment
from src.domain.task import Task
from src.services import comment_service, task_service


logger = logging.getLogger(__name__)

# A private task resolves exactly like a missing one, so the page never
# reveals whether a private ID exists.
HIDDEN_TASK_POLICY = "private tasks are indistinguishable from missing tasks"


class TaskDetail(BaseModel):
    """Render input of the task detail page."""

    task: Task
    created_display: str
    comments: list[Comment]


def format_created_date(created: float, date_format: str | None = None) -> str:
    """Format an epoch-seconds timestamp as a locale date string."""
    return datetime.fromtimestamp(created).strftime(date_format or settings.date_format)


async def resolve_task_detail(task_id: str) -> TaskDetail | None:
    """Fetch a public task and its comments.

    Returns None when the task is missing or private. Store failures are not
    handled here and propagate to the caller.
    """
    with span("task_detail_service.resolve_task_detail"):
        comments, task = await asyncio.gather(
            comment_service.list_comments(task_id),
            task_service.get_task(task_id),
        )

        # The detail page is the share target: render what an anonymous reader may see
        if task is None or not task.is_visible_to(None):
            logger.info("task_detail_hidden", extra={"task_id": task_id})
            return None

        return TaskDetail(
            task=task,
            created_display=format_created_date(task.created),
            comments=comments,
        )
