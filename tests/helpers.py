"""Builders for DataForSEO payloads and a client on a mocked transport."""

import httpx

from app.services.dataforseo import DataForSEOClient, DataForSEOConfig


def volume_item(
    keyword: str,
    search_volume: int = 1000,
    competition: float = 0.5,
    cpc: float = 1.0,
    competition_level: str = "MEDIUM",
    intent: str | None = "informational",
) -> dict:
    """One search_volume/live result item as DataForSEO returns it."""
    return {
        "keyword": keyword,
        "location_code": 2840,
        "language_code": "en",
        "keyword_info": {
            "competition": competition,
            "competition_level": competition_level,
            "cpc": cpc,
            "search_volume": search_volume,
            "monthly_searches": [
                {"year": 2024, "month": 2, "search_volume": search_volume},
                {"year": 2024, "month": 1, "search_volume": search_volume // 2},
            ],
        },
        "search_intent_info": {"main_intent": intent} if intent else None,
    }


def provider_body(results: list[dict], status_code: int = 20000, status_message: str = "Ok.") -> dict:
    return {
        "status_code": status_code,
        "status_message": status_message,
        "tasks": [{"status_code": 20000, "result": results}],
    }


def make_provider(handler) -> DataForSEOClient:
    return DataForSEOClient(
        DataForSEOConfig(login="login", password="password"),
        transport=httpx.MockTransport(handler),
    )
