"""Session domain models."""

from pydantic import BaseModel, Field


class Identity(BaseModel):
    """An authenticated user as reported by the identity provider."""

    email: str = Field(..., min_length=1, description="Email address, used as the identity string")
    name: str = Field(default="", description="Display name")


class Session(BaseModel):
    """Result of checking a request for an authenticated identity."""

    authenticated: bool = False
    identity: Identity | None = None

    @classmethod
    def anonymous(cls) -> "Session":
        return cls(authenticated=False, identity=None)

    @property
    def email(self) -> str | None:
        return self.identity.email if self.identity else None

    @property
    def name(self) -> str | None:
        return self.identity.name if self.identity else None
