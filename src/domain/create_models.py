"""Pydantic models for creating records in the store."""

from pydantic import BaseModel, Field, field_validator


def _require_text(value: str, field_name: str) -> str:
    if not value or not value.strip():
        msg = f"{field_name} cannot be empty"
        raise ValueError(msg)
    return value


class TaskCreate(BaseModel):
    """Pydantic model for creating a task record."""

    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Task description")
    user: str = Field(..., description="Owner identity (email)")
    is_public: bool = Field(default=False, description="Visibility flag")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate the title is not blank."""
        return _require_text(v, "Title").strip()

    @field_validator("user")
    @classmethod
    def validate_user(cls, v: str) -> str:
        """Validate the owner identity is present."""
        return _require_text(v, "Owner")


class CommentCreate(BaseModel):
    """Pydantic model for creating a comment record."""

    comment: str = Field(..., description="Comment body")
    user: str = Field(..., description="Author identity (email)")
    name: str = Field(..., description="Author display name")
    taskId: str = Field(..., description="Parent task ID (not checked for existence)")  # noqa: N815

    @field_validator("comment", "user", "name", "taskId")
    @classmethod
    def validate_required(cls, v: str) -> str:
        """Validate required text fields are not blank."""
        return _require_text(v, "Field")
