from datetime import datetime
from typing import Any, Literal

from beanie import Document, Link
from pydantic import Field

from app.models.project import Project

KeywordStatus = Literal["saved", "targeting", "published"]
KEYWORD_STATUSES: tuple[str, ...] = ("saved", "targeting", "published")


class SavedKeyword(Document):
    project: Link[Project]
    keyword: str
    search_volume: int | None = None
    difficulty: int | None = None
    cpc: float | None = None
    keyword_score: int | None = None
    data: dict[str, Any] | None = None  # full provider result at save time
    status: KeywordStatus = "saved"
    notes: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "saved_keywords"
        indexes = [
            [("project.$id", 1), ("created_at", -1)],
            [("project.$id", 1), ("status", 1)],
        ]
