"""Domain models and DTOs."""

from src.domain.comment import Comment
from src.domain.create_models import CommentCreate, TaskCreate
from src.domain.session import Identity, Session
from src.domain.task import Task
from src.domain.update_models import TaskVisibilityUpdate


__all__ = [
    "Comment",
    "CommentCreate",
    "Identity",
    "Session",
    "Task",
    "TaskCreate",
    "TaskVisibilityUpdate",
]
