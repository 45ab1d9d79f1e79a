from datetime import datetime
from typing import Any

from beanie import Document
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from app.core.config import get_settings


class KeywordCacheEntry(Document):
    """Provider result for one keyword/location/language, reused while fresh."""
    keyword: str  # lower-cased
    location_code: int
    language_code: str
    data: dict[str, Any]
    fetched_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "keyword_cache"
        indexes = [
            IndexModel(
                [("keyword", ASCENDING), ("location_code", ASCENDING), ("language_code", ASCENDING)],
                unique=True,
                name="uniq_keyword_location_language",
            ),
            IndexModel(
                [("fetched_at", ASCENDING)],
                name="ttl_fetched_at",
                expireAfterSeconds=get_settings().keyword_cache_ttl_hours * 3600,
            ),
        ]
