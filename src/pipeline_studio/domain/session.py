from datetime import datetime, timezone

from pydantic import BaseModel, Field


class User(BaseModel):
    """The signed-in user of a session."""

    id: str = Field(..., description="User id")
    email: str = Field(..., description="Login email")
    name: str = Field(..., description="Display name")
    signed_in_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
