from functools import lru_cache
from typing import Any, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CORS = ["http://localhost:3000", "http://localhost:5173"]


def _parse_cors_origins(v: Any) -> List[str]:
    try:
        if v is None or v == "":
            return _DEFAULT_CORS.copy()
        if isinstance(v, list):
            return [x for x in v if isinstance(x, str) and x.strip()]
        s = str(v).strip()
        if not s:
            return _DEFAULT_CORS.copy()
        if s.startswith("["):
            import json
            out = json.loads(s)
            return [x for x in out if isinstance(x, str) and x.strip()] or _DEFAULT_CORS.copy()
        return [x.strip() for x in s.split(",") if x.strip()] or _DEFAULT_CORS.copy()
    except ValueError:
        return _DEFAULT_CORS.copy()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # App
    env: str = Field(default="development", description="ENV")
    debug: bool = Field(default=False, description="DEBUG")
    secret_key: str = Field(default="change-me-in-production-min-32-chars")

    # MongoDB
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="keywordpeek", alias="MONGODB_DB_NAME")

    # Ledger + keyword cache backend: "mongo" (shared, multi-process) or "memory" (single process)
    data_backend: str = Field(default="mongo", alias="DATA_BACKEND")

    # DataForSEO
    dataforseo_login: str = Field(default="", alias="DATAFORSEO_LOGIN")
    dataforseo_password: str = Field(default="", alias="DATAFORSEO_PASSWORD")
    dataforseo_api_url: str = Field(default="https://api.dataforseo.com", alias="DATAFORSEO_API_URL")
    dataforseo_timeout_seconds: float = Field(default=60.0, alias="DATAFORSEO_TIMEOUT_SECONDS")
    default_location_code: int = 2840  # United States
    default_language_code: str = "en"
    keyword_cache_ttl_hours: int = 24

    # Razorpay
    razorpay_key_id: str = Field(default="", alias="RAZORPAY_KEY_ID")
    razorpay_key_secret: str = Field(default="", alias="RAZORPAY_KEY_SECRET")
    razorpay_webhook_secret: str = Field(default="", alias="RAZORPAY_WEBHOOK_SECRET")
    payment_currency: str = Field(default="USD", alias="PAYMENT_CURRENCY")

    # Sentry
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")

    # CORS: env as string, exposed as list
    cors_origins_raw: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        alias="CORS_ORIGINS",
        description="Comma-separated or JSON list",
    )

    @property
    def cors_origins(self) -> List[str]:
        return _parse_cors_origins(getattr(self, "cors_origins_raw", None))

    # Pricing (credits)
    credits_per_search: float = 1
    search_keywords_included: int = 10
    credits_per_extra_search_keyword: float = 0.1
    credits_per_bulk_block: float = 1
    bulk_keywords_per_block: int = 25
    credits_per_suggestions: float = 1
    credits_per_questions: float = 1
    welcome_bonus_credits: int = 10

    # Request limits
    max_search_keywords: int = 100
    max_bulk_keywords: int = 500
    max_suggestions: int = 100


@lru_cache
def get_settings() -> Settings:
    return Settings()
