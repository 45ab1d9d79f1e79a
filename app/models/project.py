from datetime import datetime

from beanie import Document, Link
from pydantic import Field

from app.models.user import User


class Project(Document):
    user: Link[User]
    name: str
    domain: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "projects"
        indexes = [[("user.$id", 1), ("created_at", -1)]]
