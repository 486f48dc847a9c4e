"""Comment thread operations scoped to one task."""

import logging

from pydantic import ValidationError

from src.core import authorization, db_client
from src.core.config import Constants
from src.core.db_client import sanitize_param
from src.core.logging import log_with_user_context, span
from src.domain.comment import Comment
from src.domain.create_models import CommentCreate
from src.domain.session import Session


logger = logging.getLogger(__name__)

COMMENTS = Constants.COMMENTS_COLLECTION


async def list_comments(task_id: str) -> list[Comment]:
    """Return every comment that references ``task_id``, in store order."""
    with span("comment_service.list_comments"):
        records = await db_client.list_all_records(
            collection=COMMENTS,
            filter_query=f'taskId = "{sanitize_param(task_id)}"',
        )
        return [Comment.model_validate(record) for record in records]


async def add_comment(*, task_id: str, session: Session, body: str) -> Comment | None:
    """Add a comment as the session's user.

    Does nothing unless the session carries both an email and a display name
    and the body is non-empty. The task reference is not checked.

    Returns:
        The stored comment (with its store-assigned ID), or None
    """
    with span("comment_service.add_comment"):
        if not session.authenticated or not session.email or not session.name:
            logger.info("comment_add_skipped_no_session", extra={"task_id": task_id})
            return None

        if not body or not body.strip():
            log_with_user_context(logger, "info", "comment_add_skipped_empty", user_id=session.email, task_id=task_id)
            return None

        try:
            payload = CommentCreate(comment=body, user=session.email, name=session.name, taskId=task_id)
        except ValidationError as e:
            log_with_user_context(logger, "warning", "comment_add_invalid", user_id=session.email, error=str(e))
            return None

        try:
            record = await db_client.create_record(collection=COMMENTS, data=payload.model_dump())
        except db_client.DatabaseError as e:
            log_with_user_context(logger, "error", "comment_add_failed", user_id=session.email, error=str(e))
            return None

        log_with_user_context(logger, "info", "comment_added", user_id=session.email, comment_id=record["id"])
        return Comment.model_validate(record)


async def delete_comment(*, comment_id: str, actor: str) -> bool:
    """Delete a comment written by ``actor``.

    Returns:
        True if a comment was removed, False when the ID is unknown

    Raises:
        PermissionError: If the comment was written by someone else
    """
    with span("comment_service.delete_comment"):
        try:
            record = await db_client.get_record(collection=COMMENTS, record_id=comment_id)
        except KeyError:
            log_with_user_context(logger, "info", "comment_delete_missing", user_id=actor, comment_id=comment_id)
            return False

        authorization.policy.ensure_can_delete_comment(actor, Comment.model_validate(record))

        try:
            await db_client.delete_record(collection=COMMENTS, record_id=comment_id)
        except KeyError:
            return False
        except db_client.DatabaseError as e:
            log_with_user_context(logger, "error", "comment_delete_failed", user_id=actor, error=str(e))
            return False

        log_with_user_context(logger, "info", "comment_deleted", user_id=actor, comment_id=comment_id)
        return True


def can_delete(comment: Comment, session: Session) -> bool:
    """Whether the delete control is shown to this session."""
    return session.authenticated and session.email is not None and comment.user == session.email
