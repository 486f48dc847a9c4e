"""Task store adapter: create, read, list and delete task records."""

import logging

from pydantic import ValidationError

from src.core import authorization, db_client
from src.core.config import Constants, settings
from src.core.db_client import sanitize_param
from src.core.logging import log_with_user_context, span
from src.domain.create_models import TaskCreate
from src.domain.task import Task
from src.domain.update_models import TaskVisibilityUpdate


logger = logging.getLogger(__name__)

TASKS = Constants.TASKS_COLLECTION
NEWEST_FIRST = "-created"


def owner_filter(owner: str) -> str:
    """Filter query selecting the tasks of one owner."""
    return f'user = "{sanitize_param(owner)}"'


async def create_task(
    *,
    owner: str,
    title: str,
    description: str = "",
    is_public: bool = False,
) -> str | None:
    """Create a task for ``owner``.

    An empty title is rejected before anything is written. Store failures are
    logged and swallowed; the caller only sees ``None``.

    Returns:
        The new task ID, or None when nothing was created
    """
    with span("task_service.create_task"):
        if not title or not title.strip():
            log_with_user_context(logger, "info", "task_create_rejected_empty_title", user_id=owner)
            return None

        try:
            payload = TaskCreate(title=title, description=description, user=owner, is_public=is_public)
        except ValidationError as e:
            log_with_user_context(logger, "warning", "task_create_invalid", user_id=owner, error=str(e))
            return None

        try:
            record = await db_client.create_record(collection=TASKS, data=payload.model_dump())
        except db_client.DatabaseError as e:
            log_with_user_context(logger, "error", "task_create_failed", user_id=owner, error=str(e))
            return None

        log_with_user_context(logger, "info", "task_created", user_id=owner, task_id=record["id"])
        return record["id"]


async def get_task(task_id: str) -> Task | None:
    """Fetch one task snapshot, or None when it does not exist."""
    with span("task_service.get_task"):
        try:
            record = await db_client.get_record(collection=TASKS, record_id=task_id)
        except KeyError:
            return None
        return Task.model_validate(record)


async def list_tasks(*, owner: str) -> list[Task]:
    """Return the owner's tasks, newest first."""
    with span("task_service.list_tasks"):
        records = await db_client.list_all_records(
            collection=TASKS,
            filter_query=owner_filter(owner),
            sort=NEWEST_FIRST,
        )
        return [Task.model_validate(record) for record in records]


async def delete_task(*, task_id: str, actor: str) -> None:
    """Hard-delete a task owned by ``actor``.

    Comments that reference the task are left in place. Deleting an unknown
    ID is a no-op.

    Raises:
        PermissionError: If the task belongs to someone else
    """
    with span("task_service.delete_task"):
        task = await get_task(task_id)
        if task is None:
            log_with_user_context(logger, "info", "task_delete_missing", user_id=actor, task_id=task_id)
            return

        authorization.policy.ensure_can_delete_task(actor, task)

        try:
            await db_client.delete_record(collection=TASKS, record_id=task_id)
        except KeyError:
            log_with_user_context(logger, "info", "task_delete_missing", user_id=actor, task_id=task_id)
            return
        except db_client.DatabaseError as e:
            log_with_user_context(logger, "error", "task_delete_failed", user_id=actor, task_id=task_id, error=str(e))
            return

        log_with_user_context(logger, "info", "task_deleted", user_id=actor, task_id=task_id)


async def set_task_visibility(*, task_id: str, actor: str, is_public: bool) -> Task:
    """Change a task's visibility flag.

    Store failures are logged and the task is returned unchanged.

    Raises:
        KeyError: If the task does not exist
        PermissionError: If the task belongs to someone else
    """
    with span("task_service.set_task_visibility"):
        task = await get_task(task_id)
        if task is None:
            raise KeyError(f"Task not found: {task_id}")

        authorization.policy.ensure_can_update_task(actor, task)

        update = TaskVisibilityUpdate(is_public=is_public)
        try:
            record = await db_client.update_record(collection=TASKS, record_id=task_id, data=update.model_dump())
        except db_client.DatabaseError as e:
            log_with_user_context(
                logger, "error", "task_visibility_update_failed", user_id=actor, task_id=task_id, error=str(e)
            )
            return task

        log_with_user_context(logger, "info", "task_visibility_changed", user_id=actor, task_id=task_id, is_public=is_public)
        return Task.model_validate(record)


def task_share_url(task_id: str) -> str:
    """Public link to a task's detail page."""
    return f"{settings.public_url.rstrip('/')}/dashboard/task/{task_id}"
