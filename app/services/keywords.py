"""Keyword research on top of DataForSEO, with a per-keyword result cache."""

import asyncio
from typing import Any

from app.core.config import get_settings
from app.core.logging import get_logger
from app.schemas.keywords import KeywordResult, KeywordResultExtended, MonthlyTrend
from app.services.dataforseo import DataForSEOClient, iter_results
from app.services.scoring import compute_opportunity_score, estimate_difficulty
from app.storage.base import KeywordCacheStore

log = get_logger(__name__)

SEARCH_VOLUME_ENDPOINT = "/v3/keywords_data/google_ads/search_volume/live"
RELATED_KEYWORDS_ENDPOINT = "/v3/keywords_data/google_ads/keywords_for_keywords/live"
SUGGEST_ENDPOINT = "/v3/keywords_data/google/suggest/live"
SERP_ENDPOINT = "/v3/serp/google/organic/live/regular"

_COMPETITION_LEVELS = {"low", "medium", "high"}
_INTENTS = {"informational", "navigational", "commercial", "transactional"}


def _locale(location_code: int | None, language_code: str | None) -> tuple[int, str]:
    s = get_settings()
    return location_code or s.default_location_code, language_code or s.default_language_code


def transform_search_volume_result(item: dict[str, Any]) -> KeywordResult:
    """Normalise one search_volume result and attach scores."""
    info = item.get("keyword_info") or {}
    competition = info.get("competition") or 0
    search_volume = info.get("search_volume") or 0
    cpc = info.get("cpc") or 0

    level = (info.get("competition_level") or "").lower()
    intent = (item.get("search_intent_info") or {}).get("main_intent")
    trend = [
        MonthlyTrend(year=m["year"], month=m["month"], volume=m.get("search_volume") or 0)
        for m in info.get("monthly_searches") or []
    ]
    return KeywordResult(
        keyword=item["keyword"],
        search_volume=search_volume,
        cpc=cpc,
        competition=level if level in _COMPETITION_LEVELS else "medium",
        competition_score=competition,
        difficulty=estimate_difficulty(competition, search_volume),
        keyword_score=compute_opportunity_score(search_volume, competition, cpc),
        intent=intent if intent in _INTENTS else None,
        trend=trend,
        location_code=item.get("location_code") or 0,
        language_code=item.get("language_code") or "",
    )


async def _cached(
    cache: KeywordCacheStore | None, keywords: list[str], location_code: int, language_code: str
) -> dict[str, KeywordResult]:
    if cache is None:
        return {}
    try:
        rows = await cache.get_many(keywords, location_code, language_code)
    except Exception as e:
        log.warning("keyword_cache_read_failed", error=str(e))
        return {}
    return {k: KeywordResult.model_validate(v) for k, v in rows.items()}


async def _store(
    cache: KeywordCacheStore, result: KeywordResult, location_code: int, language_code: str
) -> None:
    try:
        await cache.put(result.keyword, location_code, language_code, result.model_dump(mode="json"))
    except Exception as e:
        log.warning("keyword_cache_write_failed", keyword=result.keyword, error=str(e))


async def search_keywords(
    client: DataForSEOClient,
    keywords: list[str],
    location_code: int | None = None,
    language_code: str | None = None,
    cache: KeywordCacheStore | None = None,
    skip_cache: bool = False,
) -> list[KeywordResult]:
    """Volume, CPC, competition and scores per keyword, in input order.

    Fresh cache entries are served without a provider call; fetched results
    are written back to the cache.
    """
    location_code, language_code = _locale(location_code, language_code)
    use_cache = cache is not None and not skip_cache

    results: list[KeywordResult] = []
    to_fetch = keywords
    if use_cache:
        cached = await _cached(cache, keywords, location_code, language_code)
        results.extend(cached[k.lower()] for k in keywords if k.lower() in cached)
        to_fetch = [k for k in keywords if k.lower() not in cached]
        log.debug("keyword_cache_lookup", hits=len(results), misses=len(to_fetch))

    if to_fetch:
        body = await client.post(
            SEARCH_VOLUME_ENDPOINT,
            [
                {
                    "keywords": to_fetch,
                    "location_code": location_code,
                    "language_code": language_code,
                    "include_serp_info": False,
                    "include_clickstream_data": False,
                }
            ],
        )
        for item in iter_results(body):
            result = transform_search_volume_result(item)
            results.append(result)
            if use_cache:
                await _store(cache, result, location_code, language_code)

    order = {k.lower(): i for i, k in enumerate(keywords)}
    results.sort(key=lambda r: order.get(r.keyword.lower(), len(order)))
    return results


async def search_keyword(
    client: DataForSEOClient,
    keyword: str,
    location_code: int | None = None,
    language_code: str | None = None,
    cache: KeywordCacheStore | None = None,
    skip_cache: bool = False,
) -> KeywordResult | None:
    results = await search_keywords(client, [keyword], location_code, language_code, cache, skip_cache)
    return results[0] if results else None


async def get_related_keywords(
    client: DataForSEOClient,
    keyword: str,
    location_code: int | None = None,
    language_code: str | None = None,
    limit: int = 20,
) -> list[str]:
    location_code, language_code = _locale(location_code, language_code)
    body = await client.post(
        RELATED_KEYWORDS_ENDPOINT,
        [
            {
                "keyword": keyword,
                "location_code": location_code,
                "language_code": language_code,
                "include_seed_keyword": False,
                "limit": limit,
            }
        ],
    )
    return [item["keyword"] for item in iter_results(body) if item.get("keyword")]


async def get_autocomplete_suggestions(
    client: DataForSEOClient,
    keyword: str,
    location_code: int | None = None,
    language_code: str | None = None,
) -> list[str]:
    location_code, language_code = _locale(location_code, language_code)
    body = await client.post(
        SUGGEST_ENDPOINT,
        [{"keyword": keyword, "location_code": location_code, "language_code": language_code}],
    )
    suggestions = []
    for result in iter_results(body):
        for item in result.get("items") or []:
            if item.get("suggestion"):
                suggestions.append(item["suggestion"])
    return suggestions


async def get_people_also_ask(
    client: DataForSEOClient,
    keyword: str,
    location_code: int | None = None,
    language_code: str | None = None,
) -> list[str]:
    """People Also Ask questions from the first SERP page, expanded ones included, de-duplicated."""
    location_code, language_code = _locale(location_code, language_code)
    body = await client.post(
        SERP_ENDPOINT,
        [
            {
                "keyword": keyword,
                "location_code": location_code,
                "language_code": language_code,
                "device": "desktop",
                "depth": 10,
            }
        ],
    )
    questions: list[str] = []
    for result in iter_results(body):
        for item in result.get("items") or []:
            if item.get("type") != "people_also_ask":
                continue
            questions.append(item.get("title"))
            questions.extend(expanded.get("title") for expanded in item.get("items") or [])
    return list(dict.fromkeys(q for q in questions if q))


async def search_keyword_extended(
    client: DataForSEOClient,
    keyword: str,
    location_code: int | None = None,
    language_code: str | None = None,
    cache: KeywordCacheStore | None = None,
    include_related: bool = True,
    include_autocomplete: bool = True,
    include_questions: bool = True,
) -> KeywordResultExtended | None:
    """Base result plus related keywords, autocomplete and questions fetched concurrently.

    A failed sub-lookup is logged and left out; only the base lookup can fail the call.
    """
    base = await search_keyword(client, keyword, location_code, language_code, cache)
    if base is None:
        return None
    result = KeywordResultExtended(**base.model_dump())

    lookups = {}
    if include_related:
        lookups["suggestions"] = get_related_keywords(client, keyword, location_code, language_code)
    if include_autocomplete:
        lookups["autocomplete"] = get_autocomplete_suggestions(client, keyword, location_code, language_code)
    if include_questions:
        lookups["questions"] = get_people_also_ask(client, keyword, location_code, language_code)

    outcomes = await asyncio.gather(*lookups.values(), return_exceptions=True)
    for field, outcome in zip(lookups, outcomes):
        if isinstance(outcome, Exception):
            log.warning("keyword_lookup_failed", keyword=keyword, lookup=field, error=str(outcome))
            continue
        setattr(result, field, outcome)
    return result
