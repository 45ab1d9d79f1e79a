from datetime import datetime

from beanie import Document
from pydantic import Field


class ApiUsage(Document):
    user_id: str
    endpoint: str
    credits_used: float
    keywords_count: int | None = None
    response_status: int | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "api_usage"
        indexes = [
            [("user_id", 1), ("created_at", -1)],
        ]
