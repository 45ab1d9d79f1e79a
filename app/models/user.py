from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class User(Document):
    """Account record; created by the external sign-in flow, read here to resolve sessions."""
    email: Indexed(str, unique=True)
    name: str = ""
    session_version: int = 0
    last_login_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "users"
