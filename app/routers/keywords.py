from decimal import Decimal

from fastapi import APIRouter, Depends

from app.core.config import get_settings
from app.core.exceptions import BadRequestError, InsufficientBalanceError
from app.deps import get_current_user, get_dataforseo, get_keyword_cache, get_ledger
from app.models.user import User
from app.schemas.keywords import (
    KeywordBulkRequest,
    KeywordBulkResult,
    KeywordLookupRequest,
    KeywordSearchRequest,
)
from app.services import credits as credits_service
from app.services import keywords as keywords_service
from app.services.credits import CreditLedger
from app.services.dataforseo import DataForSEOClient
from app.storage.base import KeywordCacheStore

router = APIRouter()


def _keyword_list(raw: list[str] | str) -> list[str]:
    items = raw if isinstance(raw, list) else [raw]
    return [k.strip() for k in items if isinstance(k, str) and k.strip()]


async def _require_credits(ledger: CreditLedger, user_id: str, cost: Decimal) -> None:
    """Optimistic pre-check so an empty wallet never reaches the provider."""
    if not await ledger.has_sufficient_balance(user_id, cost):
        raise InsufficientBalanceError(cost)


async def _settle(
    ledger: CreditLedger,
    user_id: str,
    cost: Decimal,
    endpoint: str,
    description: str,
    keywords_count: int,
) -> None:
    """Deduct after the provider call (authoritative; may still raise 402) and log usage."""
    await ledger.deduct_balance(user_id, cost, description)
    await ledger.record_usage(user_id, endpoint, cost, keywords_count=keywords_count)


@router.post("/search")
async def keywords_search(
    body: KeywordSearchRequest,
    user: User = Depends(get_current_user),
    ledger: CreditLedger = Depends(get_ledger),
    client: DataForSEOClient = Depends(get_dataforseo),
    cache: KeywordCacheStore | None = Depends(get_keyword_cache),
):
    """Volume, CPC, competition, difficulty and opportunity score per keyword.

    With extended=true and a single keyword, also returns related keywords,
    autocomplete suggestions and People Also Ask questions.
    """
    keywords = _keyword_list(body.keywords)
    if not keywords:
        raise BadRequestError("At least one keyword is required")
    max_keywords = get_settings().max_search_keywords
    if len(keywords) > max_keywords:
        raise BadRequestError(f"Maximum {max_keywords} keywords per request")

    user_id = str(user.id)
    cost = credits_service.calculate_search_credits(len(keywords))
    await _require_credits(ledger, user_id, cost)

    if body.extended and len(keywords) == 1:
        result = await keywords_service.search_keyword_extended(
            client, keywords[0], body.location_code, body.language_code, cache
        )
        results = [result] if result else []
    else:
        results = await keywords_service.search_keywords(
            client, keywords, body.location_code, body.language_code, cache
        )

    await _settle(
        ledger, user_id, cost, "/v1/keywords/search", f"Keyword search: {len(keywords)} keyword(s)", len(keywords)
    )
    return {"data": [r.model_dump(mode="json") for r in results], "credits_used": float(cost)}


@router.post("/bulk")
async def keywords_bulk(
    body: KeywordBulkRequest,
    user: User = Depends(get_current_user),
    ledger: CreditLedger = Depends(get_ledger),
    client: DataForSEOClient = Depends(get_dataforseo),
    cache: KeywordCacheStore | None = Depends(get_keyword_cache),
):
    """Lightweight volume / difficulty / score check for up to 500 keywords."""
    keywords = _keyword_list(body.keywords)
    if not keywords:
        raise BadRequestError("At least one keyword is required")
    max_keywords = get_settings().max_bulk_keywords
    if len(keywords) > max_keywords:
        raise BadRequestError(f"Maximum {max_keywords} keywords per bulk request")

    user_id = str(user.id)
    cost = credits_service.calculate_bulk_credits(len(keywords))
    await _require_credits(ledger, user_id, cost)

    results = await keywords_service.search_keywords(
        client, keywords, body.location_code, body.language_code, cache
    )
    bulk = [
        KeywordBulkResult(
            keyword=r.keyword, search_volume=r.search_volume, difficulty=r.difficulty, keyword_score=r.keyword_score
        )
        for r in results
    ]

    await _settle(
        ledger, user_id, cost, "/v1/keywords/bulk", f"Bulk keyword check: {len(keywords)} keywords", len(keywords)
    )
    return {
        "data": [b.model_dump() for b in bulk],
        "credits_used": float(cost),
        "keywords_processed": len(results),
    }


@router.post("/suggestions")
async def keywords_suggestions(
    body: KeywordLookupRequest,
    user: User = Depends(get_current_user),
    ledger: CreditLedger = Depends(get_ledger),
    client: DataForSEOClient = Depends(get_dataforseo),
):
    """Related keyword ideas for a seed keyword."""
    keyword = body.keyword.strip()
    if not keyword:
        raise BadRequestError("Keyword is required")

    user_id = str(user.id)
    cost = credits_service.calculate_suggestions_credits()
    await _require_credits(ledger, user_id, cost)

    related = await keywords_service.get_related_keywords(
        client, keyword, body.location_code, body.language_code, limit=body.limit
    )

    await _settle(ledger, user_id, cost, "/v1/keywords/suggestions", f'Keyword suggestions: "{keyword}"', 1)
    return {"data": {"related": related}, "credits_used": float(cost)}


@router.post("/questions")
async def keywords_questions(
    body: KeywordLookupRequest,
    user: User = Depends(get_current_user),
    ledger: CreditLedger = Depends(get_ledger),
    client: DataForSEOClient = Depends(get_dataforseo),
):
    """People Also Ask questions for a keyword."""
    keyword = body.keyword.strip()
    if not keyword:
        raise BadRequestError("Keyword is required")

    user_id = str(user.id)
    cost = credits_service.calculate_questions_credits()
    await _require_credits(ledger, user_id, cost)

    questions = await keywords_service.get_people_also_ask(client, keyword, body.location_code, body.language_code)

    await _settle(ledger, user_id, cost, "/v1/keywords/questions", f'People Also Ask: "{keyword}"', 1)
    return {"data": {"questions": questions}, "credits_used": float(cost)}
