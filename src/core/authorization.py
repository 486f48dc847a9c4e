"""Ownership checks consulted by every mutating store operation."""

import logging
from typing import Protocol

from src.domain.comment import Comment
from src.domain.task import Task


logger = logging.getLogger(__name__)


class MutationPolicy(Protocol):
    """Decides whether an identity may mutate a record."""

    def ensure_can_update_task(self, actor: str, task: Task) -> None: ...

    def ensure_can_delete_task(self, actor: str, task: Task) -> None: ...

    def ensure_can_delete_comment(self, actor: str, comment: Comment) -> None: ...


class OwnershipPolicy:
    """Only the identity that wrote a record may change or remove it."""

    def _ensure_owner(self, *, actor: str, owner: str, kind: str, record_id: str) -> None:
        if not actor or actor != owner:
            logger.warning(
                "mutation_denied",
                extra={"actor": actor, "kind": kind, "record_id": record_id},
            )
            raise PermissionError(f"{kind} {record_id} does not belong to {actor or 'anonymous'}")

    def ensure_can_update_task(self, actor: str, task: Task) -> None:
        self._ensure_owner(actor=actor, owner=task.user, kind="Task", record_id=task.id)

    def ensure_can_delete_task(self, actor: str, task: Task) -> None:
        self._ensure_owner(actor=actor, owner=task.user, kind="Task", record_id=task.id)

    def ensure_can_delete_comment(self, actor: str, comment: Comment) -> None:
        self._ensure_owner(actor=actor, owner=comment.user, kind="Comment", record_id=comment.id)


# Policy used by the services; tests may swap it
policy: MutationPolicy = OwnershipPolicy()
