"""Credit ledger: balance checks, atomic deduct/add, transaction history and operation pricing."""

import math
from decimal import ROUND_DOWN, ROUND_UP, Decimal, InvalidOperation

from app.core.config import get_settings
from app.core.exceptions import InvalidAmountError
from app.core.logging import get_logger
from app.models.ledger import (
    CREDIT_KINDS,
    CREDIT_SCALE,
    CreditReceipt,
    CreditTransaction,
    TransactionKind,
    UsageRecord,
    units_to_credits,
)
from app.storage.base import LedgerStore

log = get_logger(__name__)

WELCOME_BONUS_REFERENCE = "welcome_bonus:{user_id}"


def to_units(amount, rounding: str = ROUND_UP) -> int:
    """Convert a credit amount to integer hundredths; raise InvalidAmountError unless it is > 0."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal, str)):
        raise InvalidAmountError(f"Credit amount must be a number, got {type(amount).__name__}")
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidAmountError(f"Credit amount must be a number, got {amount!r}")
    if not value.is_finite():
        raise InvalidAmountError("Credit amount must be finite")
    units = int((value * CREDIT_SCALE).to_integral_value(rounding=rounding))
    if units <= 0:
        raise InvalidAmountError("Credit amount must be positive")
    return units


class CreditLedger:
    """Per-user credit balance backed by a LedgerStore.

    Mutations are atomic in the store; this layer validates amounts, converts
    between credits and storage units, and logs. It never retries.
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    async def has_sufficient_balance(self, user_id: str, amount) -> bool:
        """Optimistic pre-check. A lookup failure reads as False; a bad amount raises InvalidAmountError."""
        units = to_units(amount)
        try:
            return await self.store.has_credits(user_id, units)
        except Exception as e:
            log.warning("credits_check_failed", user_id=user_id, amount=str(amount), error=str(e))
            return False

    async def get_balance(self, user_id: str) -> Decimal:
        return units_to_credits(await self.store.get_credit_balance(user_id))

    async def deduct_balance(self, user_id: str, amount, description: str | None = None) -> CreditReceipt:
        """Spend credits. Raises InsufficientBalanceError if the atomic check fails."""
        units = to_units(amount, ROUND_UP)
        tx, balance = await self.store.deduct_credits(user_id, units, description)
        log.info("credits_deducted", user_id=user_id, amount=str(tx.amount), balance=str(units_to_credits(balance)))
        return CreditReceipt(balance=units_to_credits(balance), transaction=tx)

    async def add_balance(
        self,
        user_id: str,
        amount,
        kind: TransactionKind | str,
        description: str | None = None,
        external_reference: str | None = None,
    ) -> CreditReceipt:
        """Add credits of kind purchase, bonus or refund.

        A repeated external_reference credits nothing and returns the original
        transaction with ``duplicate=True``.
        """
        try:
            kind = TransactionKind(kind)
        except ValueError:
            raise InvalidAmountError(f"Unknown transaction kind: {kind!r}")
        if kind not in CREDIT_KINDS:
            raise InvalidAmountError(f"Transaction kind {kind.value!r} cannot add credits")
        units = to_units(amount, ROUND_DOWN)
        tx, balance, applied = await self.store.add_credits(
            user_id, units, kind, description, external_reference
        )
        if not applied:
            log.info("credits_add_duplicate", user_id=user_id, external_reference=external_reference)
            return CreditReceipt(balance=units_to_credits(balance), transaction=tx, duplicate=True)
        log.info(
            "credits_added",
            user_id=user_id,
            kind=kind.value,
            amount=str(tx.amount),
            balance=str(units_to_credits(balance)),
        )
        return CreditReceipt(balance=units_to_credits(balance), transaction=tx)

    async def list_transactions(self, user_id: str, limit: int = 50, offset: int = 0) -> list[CreditTransaction]:
        return await self.store.list_transactions(user_id, limit, offset)

    async def record_usage(
        self,
        user_id: str,
        endpoint: str,
        credits_used,
        keywords_count: int | None = None,
        response_status: int = 200,
    ) -> None:
        await self.store.record_usage(
            UsageRecord(
                user_id=user_id,
                endpoint=endpoint,
                credits_used=Decimal(str(credits_used)),
                keywords_count=keywords_count,
                response_status=response_status,
            )
        )


async def grant_welcome_bonus(ledger: CreditLedger, user_id: str) -> CreditReceipt:
    """Grant the one-time sign-up bonus; later calls are duplicates."""
    return await ledger.add_balance(
        user_id,
        get_settings().welcome_bonus_credits,
        TransactionKind.BONUS,
        description="Welcome bonus",
        external_reference=WELCOME_BONUS_REFERENCE.format(user_id=user_id),
    )


def _credits(value: float) -> Decimal:
    return Decimal(str(value))


def calculate_search_credits(keyword_count: int) -> Decimal:
    """1 credit covers up to 10 keywords; each keyword beyond that adds 0.1."""
    s = get_settings()
    base = _credits(s.credits_per_search)
    extra = max(0, keyword_count - s.search_keywords_included)
    return base + extra * _credits(s.credits_per_extra_search_keyword)


def calculate_bulk_credits(keyword_count: int) -> Decimal:
    """1 credit per started block of 25 keywords."""
    s = get_settings()
    return math.ceil(keyword_count / s.bulk_keywords_per_block) * _credits(s.credits_per_bulk_block)


def calculate_suggestions_credits() -> Decimal:
    return _credits(get_settings().credits_per_suggestions)


def calculate_questions_credits() -> Decimal:
    return _credits(get_settings().credits_per_questions)


def get_pricing():
    s = get_settings()
    return {
        "search": {
            "base": s.credits_per_search,
            "keywords_included": s.search_keywords_included,
            "per_extra_keyword": s.credits_per_extra_search_keyword,
            "max_keywords": s.max_search_keywords,
        },
        "bulk": {
            "per_block": s.credits_per_bulk_block,
            "keywords_per_block": s.bulk_keywords_per_block,
            "max_keywords": s.max_bulk_keywords,
        },
        "suggestions": s.credits_per_suggestions,
        "questions": s.credits_per_questions,
        "welcome_bonus": s.welcome_bonus_credits,
    }
