from datetime import datetime, timezone

from pydantic import BaseModel, Field

from .base_enums import NoticeVariant


class Notice(BaseModel):
    """A user-facing notification (the UI renders it as a toast)."""

    title: str = Field(..., description="Short headline")
    description: str = Field(default="", description="Detail line")
    variant: NoticeVariant = Field(default=NoticeVariant.DEFAULT, description="Visual variant")
    duration_ms: int = Field(default=3000, description="How long the notice stays visible")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_destructive(self) -> bool:
        return self.variant in (NoticeVariant.DESTRUCTIVE, NoticeVariant.ERROR)
