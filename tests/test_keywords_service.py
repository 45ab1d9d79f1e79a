"""Keyword research: transform, cache, ordering and the extended lookup."""

import httpx
import orjson
import pytest

from app.core.exceptions import ProviderError
from app.services import keywords as keywords_service
from app.services.keywords import (
    RELATED_KEYWORDS_ENDPOINT,
    SEARCH_VOLUME_ENDPOINT,
    SERP_ENDPOINT,
    SUGGEST_ENDPOINT,
)
from tests.helpers import make_provider, provider_body, volume_item


def test_transform_scores_and_normalises():
    result = keywords_service.transform_search_volume_result(
        volume_item("Best CRM", search_volume=50000, competition=0.1, cpc=2, competition_level="LOW", intent="commercial")
    )
    assert result.keyword == "Best CRM"
    assert result.competition == "low"
    assert result.competition_score == 0.1
    assert result.keyword_score >= 70
    assert result.difficulty == 26  # 0.1 * 60 + 20
    assert result.intent == "commercial"
    assert [(t.year, t.month, t.volume) for t in result.trend] == [(2024, 2, 50000), (2024, 1, 25000)]
    assert result.location_code == 2840
    assert result.language_code == "en"


def test_transform_defaults_missing_metrics():
    result = keywords_service.transform_search_volume_result(
        {"keyword": "new thing", "location_code": 2840, "language_code": "en", "keyword_info": {}}
    )
    assert result.search_volume == 0
    assert result.cpc == 0
    assert result.competition == "medium"
    assert result.competition_score == 0
    assert result.intent is None
    assert result.trend == []
    assert result.difficulty == 0
    assert result.keyword_score == 40


async def test_search_keywords_returns_input_order():
    def handler(request):
        # provider answers in its own order
        return httpx.Response(200, json=provider_body([volume_item("b"), volume_item("c"), volume_item("a")]))

    client = make_provider(handler)
    results = await keywords_service.search_keywords(client, ["a", "b", "c"])
    assert [r.keyword for r in results] == ["a", "b", "c"]


async def test_search_keywords_uses_default_locale():
    sent = []

    def handler(request):
        sent.append(orjson.loads(request.read()))
        return httpx.Response(200, json=provider_body([volume_item("a")]))

    client = make_provider(handler)
    await keywords_service.search_keywords(client, ["a"])
    task = sent[0][0]
    assert task["keywords"] == ["a"]
    assert task["location_code"] == 2840
    assert task["language_code"] == "en"
    assert task["include_serp_info"] is False


async def test_cache_hits_skip_provider(keyword_cache):
    calls = []

    def handler(request):
        payload = orjson.loads(request.read())
        calls.append(payload[0]["keywords"])
        return httpx.Response(200, json=provider_body([volume_item(k) for k in payload[0]["keywords"]]))

    client = make_provider(handler)
    first = await keywords_service.search_keywords(client, ["Alpha", "beta"], cache=keyword_cache)
    second = await keywords_service.search_keywords(client, ["gamma", "alpha", "BETA"], cache=keyword_cache)

    assert calls == [["Alpha", "beta"], ["gamma"]]
    assert [r.keyword for r in first] == ["Alpha", "beta"]
    assert [r.keyword for r in second] == ["gamma", "Alpha", "beta"]


async def test_skip_cache_always_fetches(keyword_cache):
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(200, json=provider_body([volume_item("a")]))

    client = make_provider(handler)
    await keywords_service.search_keywords(client, ["a"], cache=keyword_cache)
    await keywords_service.search_keywords(client, ["a"], cache=keyword_cache, skip_cache=True)
    assert len(calls) == 2


async def test_cache_is_per_locale(keyword_cache):
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(200, json=provider_body([volume_item("a")]))

    client = make_provider(handler)
    await keywords_service.search_keywords(client, ["a"], cache=keyword_cache)
    await keywords_service.search_keywords(client, ["a"], location_code=2826, cache=keyword_cache)
    assert len(calls) == 2


class FailingCache:
    async def get_many(self, keywords, location_code, language_code):
        raise RuntimeError("cache down")

    async def put(self, keyword, location_code, language_code, data):
        raise RuntimeError("cache down")


async def test_cache_failures_are_misses():
    def handler(request):
        return httpx.Response(200, json=provider_body([volume_item("a")]))

    client = make_provider(handler)
    results = await keywords_service.search_keywords(client, ["a"], cache=FailingCache())
    assert [r.keyword for r in results] == ["a"]


async def test_provider_error_propagates():
    def handler(request):
        return httpx.Response(200, json={"status_code": 40200, "status_message": "Rate limit", "tasks": []})

    client = make_provider(handler)
    with pytest.raises(ProviderError) as exc:
        await keywords_service.search_keywords(client, ["a"])
    assert exc.value.is_rate_limited()


async def test_search_keyword_none_when_no_result():
    def handler(request):
        return httpx.Response(200, json=provider_body([]))

    client = make_provider(handler)
    assert await keywords_service.search_keyword(client, "nothing") is None


async def test_related_keywords():
    sent = []

    def handler(request):
        sent.append(orjson.loads(request.read())[0])
        return httpx.Response(200, json=provider_body([{"keyword": "crm software"}, {"keyword": "crm tools"}]))

    client = make_provider(handler)
    related = await keywords_service.get_related_keywords(client, "crm", limit=5)
    assert related == ["crm software", "crm tools"]
    assert sent[0]["limit"] == 5
    assert sent[0]["include_seed_keyword"] is False


async def test_autocomplete_suggestions():
    def handler(request):
        return httpx.Response(
            200,
            json=provider_body([{"items": [{"suggestion": "crm for startups"}, {"suggestion": "crm free"}]}]),
        )

    client = make_provider(handler)
    assert await keywords_service.get_autocomplete_suggestions(client, "crm") == ["crm for startups", "crm free"]


async def test_people_also_ask_collects_expanded_and_dedupes():
    items = [
        {"type": "organic", "title": "Some page"},
        {
            "type": "people_also_ask",
            "title": "What is a CRM?",
            "items": [{"title": "Is CRM hard to learn?"}, {"title": "What is a CRM?"}],
        },
        {"type": "people_also_ask", "title": "Which CRM is free?"},
    ]
    sent = []

    def handler(request):
        sent.append(orjson.loads(request.read())[0])
        return httpx.Response(200, json=provider_body([{"items": items}]))

    client = make_provider(handler)
    questions = await keywords_service.get_people_also_ask(client, "crm")
    assert questions == ["What is a CRM?", "Is CRM hard to learn?", "Which CRM is free?"]
    assert sent[0]["device"] == "desktop"
    assert sent[0]["depth"] == 10


async def test_extended_search_runs_all_lookups():
    def handler(request):
        path = request.url.path
        if path == SEARCH_VOLUME_ENDPOINT:
            return httpx.Response(200, json=provider_body([volume_item("crm")]))
        if path == RELATED_KEYWORDS_ENDPOINT:
            return httpx.Response(200, json=provider_body([{"keyword": "crm tools"}]))
        if path == SUGGEST_ENDPOINT:
            return httpx.Response(200, json=provider_body([{"items": [{"suggestion": "crm app"}]}]))
        if path == SERP_ENDPOINT:
            return httpx.Response(
                200, json=provider_body([{"items": [{"type": "people_also_ask", "title": "Why CRM?"}]}])
            )
        return httpx.Response(404)

    client = make_provider(handler)
    result = await keywords_service.search_keyword_extended(client, "crm")
    assert result.keyword == "crm"
    assert result.suggestions == ["crm tools"]
    assert result.autocomplete == ["crm app"]
    assert result.questions == ["Why CRM?"]


async def test_extended_search_omits_failed_lookups():
    def handler(request):
        path = request.url.path
        if path == SEARCH_VOLUME_ENDPOINT:
            return httpx.Response(200, json=provider_body([volume_item("crm")]))
        if path == SUGGEST_ENDPOINT:
            return httpx.Response(200, json=provider_body([{"items": [{"suggestion": "crm app"}]}]))
        return httpx.Response(500, json={"status_code": 50000, "status_message": "Internal error"})

    client = make_provider(handler)
    result = await keywords_service.search_keyword_extended(client, "crm")
    assert result.autocomplete == ["crm app"]
    assert result.suggestions is None
    assert result.questions is None
