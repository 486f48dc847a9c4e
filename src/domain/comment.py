"""Comment domain model."""

from pydantic import BaseModel, Field


class Comment(BaseModel):
    """Comment data transfer object."""

    id: str = Field(..., description="Unique comment ID assigned by the store")
    created: float = Field(..., description="Creation timestamp (epoch seconds, server-assigned)")
    comment: str = Field(..., description="Comment body")
    user: str = Field(..., description="Author identity (email)")
    name: str = Field(..., description="Author display name")
    taskId: str = Field(..., description="ID of the task this comment belongs to")  # noqa: N815
