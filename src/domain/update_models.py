"""Update models for database operations."""

from pydantic import BaseModel, Field


class TaskVisibilityUpdate(BaseModel):
    """Update payload for a task's visibility flag."""

    is_public: bool = Field(..., description="New visibility flag")
