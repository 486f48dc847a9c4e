"""Task domain model."""

from pydantic import BaseModel, Field


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID assigned by the store")
    created: float = Field(..., description="Creation timestamp (epoch seconds, server-assigned)")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Free text description, may span several lines")
    user: str = Field(..., description="Owner identity (email)")
    is_public: bool = Field(default=False, description="Whether readers other than the owner may see the task")

    def is_visible_to(self, identity: str | None) -> bool:
        """Owners always see their tasks; everyone else only sees public ones."""
        return self.is_public or (identity is not None and identity == self.user)
