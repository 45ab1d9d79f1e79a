from typing import Literal

from pydantic import BaseModel, Field

CompetitionLevel = Literal["low", "medium", "high"]
SearchIntent = Literal["informational", "navigational", "commercial", "transactional"]


class MonthlyTrend(BaseModel):
    year: int
    month: int
    volume: int


class KeywordResult(BaseModel):
    keyword: str
    search_volume: int = 0
    cpc: float = 0.0
    competition: CompetitionLevel = "medium"
    competition_score: float = 0.0
    difficulty: int = 0
    keyword_score: int = 0
    intent: SearchIntent | None = None
    trend: list[MonthlyTrend] = Field(default_factory=list)
    location_code: int
    language_code: str


class KeywordResultExtended(KeywordResult):
    suggestions: list[str] | None = None
    autocomplete: list[str] | None = None
    questions: list[str] | None = None


class KeywordBulkResult(BaseModel):
    keyword: str
    search_volume: int
    difficulty: int
    keyword_score: int


class KeywordSearchRequest(BaseModel):
    keywords: list[str] | str
    extended: bool = False
    location_code: int | None = None
    language_code: str | None = None


class KeywordBulkRequest(BaseModel):
    keywords: list[str]
    location_code: int | None = None
    language_code: str | None = None


class KeywordLookupRequest(BaseModel):
    keyword: str
    location_code: int | None = None
    language_code: str | None = None
    limit: int = Field(default=20, ge=1, le=100)
