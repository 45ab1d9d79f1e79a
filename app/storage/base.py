from abc import ABC, abstractmethod
from typing import Any

from app.core.config import Settings, get_settings
from app.models.ledger import CreditTransaction, TransactionKind, UsageRecord


class LedgerStore(ABC):
    """Per-user balances and the append-only transaction log, in integer credit units.

    Every mutation must check, apply and log in one indivisible step and be
    serialisable per user.
    """

    @abstractmethod
    async def has_credits(self, user_id: str, units: int) -> bool:
        ...

    @abstractmethod
    async def get_credit_balance(self, user_id: str) -> int:
        """Current balance; 0 for a user with no history."""
        ...

    @abstractmethod
    async def deduct_credits(
        self, user_id: str, units: int, description: str | None = None
    ) -> tuple[CreditTransaction, int]:
        """Check balance >= units, decrement, log a usage record; return (record, new balance).

        Raises InsufficientBalanceError when the check fails at execution time.
        """
        ...

    @abstractmethod
    async def add_credits(
        self,
        user_id: str,
        units: int,
        kind: TransactionKind,
        description: str | None = None,
        external_reference: str | None = None,
    ) -> tuple[CreditTransaction, int, bool]:
        """Increment and log; return (record, new balance, applied).

        When external_reference was already recorded nothing changes and the
        original record is returned with applied=False.
        """
        ...

    @abstractmethod
    async def list_transactions(self, user_id: str, limit: int, offset: int) -> list[CreditTransaction]:
        """Newest first."""
        ...

    @abstractmethod
    async def record_usage(self, record: UsageRecord) -> None:
        ...


class KeywordCacheStore(ABC):
    @abstractmethod
    async def get_many(
        self, keywords: list[str], location_code: int, language_code: str
    ) -> dict[str, dict[str, Any]]:
        """Fresh entries keyed by lower-cased keyword."""
        ...

    @abstractmethod
    async def put(self, keyword: str, location_code: int, language_code: str, data: dict[str, Any]) -> None:
        ...


def get_ledger_store(settings: Settings | None = None) -> LedgerStore:
    settings = settings or get_settings()
    if settings.data_backend == "memory":
        from app.storage.memory import MemoryLedgerStore
        return MemoryLedgerStore()
    from app.storage.mongo import MongoLedgerStore
    return MongoLedgerStore()


def get_keyword_cache(settings: Settings | None = None) -> KeywordCacheStore:
    settings = settings or get_settings()
    if settings.data_backend == "memory":
        from app.storage.memory import MemoryKeywordCache
        return MemoryKeywordCache(ttl_hours=settings.keyword_cache_ttl_hours)
    from app.storage.mongo import MongoKeywordCache
    return MongoKeywordCache(ttl_hours=settings.keyword_cache_ttl_hours)
