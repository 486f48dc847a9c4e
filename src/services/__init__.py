from src.services import (
    comment_service,
    counter_service,
    session_service,
    task_detail_service,
    task_service,
)


__all__ = [
    "comment_service",
    "counter_service",
    "session_service",
    "task_detail_service",
    "task_service",
]
