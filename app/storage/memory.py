"""In-process backend: per-user asyncio locks stand in for the database's atomic update.

Only correct when a single process serves all requests (local dev, tests).
Locks are created per user id on first use and never evicted.
"""

import asyncio
import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any

from app.core.exceptions import InsufficientBalanceError, ReferenceConflictError
from app.models.ledger import CreditTransaction, TransactionKind, UsageRecord, units_to_credits
from app.storage.base import KeywordCacheStore, LedgerStore


class MemoryLedgerStore(LedgerStore):
    def __init__(self) -> None:
        self._balances: dict[str, int] = {}
        self._transactions: list[CreditTransaction] = []
        self._by_reference: dict[str, CreditTransaction] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.usage: list[UsageRecord] = []

    def _record(
        self,
        user_id: str,
        units: int,
        balance_after: int,
        kind: TransactionKind,
        description: str | None,
        external_reference: str | None = None,
    ) -> CreditTransaction:
        tx = CreditTransaction(
            id=uuid.uuid4().hex,
            user_id=user_id,
            amount=units_to_credits(units),
            kind=kind,
            balance_after=units_to_credits(balance_after),
            description=description,
            external_reference=external_reference,
            created_at=datetime.utcnow(),
        )
        self._transactions.append(tx)
        if external_reference:
            self._by_reference[external_reference] = tx
        return tx

    async def has_credits(self, user_id: str, units: int) -> bool:
        return self._balances.get(user_id, 0) >= units

    async def get_credit_balance(self, user_id: str) -> int:
        return self._balances.get(user_id, 0)

    async def deduct_credits(
        self, user_id: str, units: int, description: str | None = None
    ) -> tuple[CreditTransaction, int]:
        async with self._locks[user_id]:
            balance = self._balances.get(user_id, 0)
            if balance < units:
                raise InsufficientBalanceError(units_to_credits(units))
            balance -= units
            self._balances[user_id] = balance
            tx = self._record(user_id, -units, balance, TransactionKind.USAGE, description)
            return tx, balance

    async def add_credits(
        self,
        user_id: str,
        units: int,
        kind: TransactionKind,
        description: str | None = None,
        external_reference: str | None = None,
    ) -> tuple[CreditTransaction, int, bool]:
        async with self._locks[user_id]:
            if external_reference and external_reference in self._by_reference:
                existing = self._by_reference[external_reference]
                if existing.user_id != user_id:
                    raise ReferenceConflictError(external_reference)
                return existing, self._balances.get(user_id, 0), False
            balance = self._balances.get(user_id, 0) + units
            self._balances[user_id] = balance
            tx = self._record(user_id, units, balance, kind, description, external_reference)
            return tx, balance, True

    async def list_transactions(self, user_id: str, limit: int, offset: int) -> list[CreditTransaction]:
        mine = [tx for tx in reversed(self._transactions) if tx.user_id == user_id]
        return mine[offset:offset + limit]

    async def record_usage(self, record: UsageRecord) -> None:
        self.usage.append(record)


class MemoryKeywordCache(KeywordCacheStore):
    def __init__(self, ttl_hours: int = 24) -> None:
        self.ttl = timedelta(hours=ttl_hours)
        self._entries: dict[tuple[str, int, str], tuple[datetime, dict[str, Any]]] = {}

    async def get_many(
        self, keywords: list[str], location_code: int, language_code: str
    ) -> dict[str, dict[str, Any]]:
        cutoff = datetime.utcnow() - self.ttl
        found: dict[str, dict[str, Any]] = {}
        for keyword in keywords:
            key = (keyword.lower(), location_code, language_code)
            entry = self._entries.get(key)
            if entry and entry[0] >= cutoff:
                found[key[0]] = entry[1]
        return found

    async def put(self, keyword: str, location_code: int, language_code: str, data: dict[str, Any]) -> None:
        self._entries[(keyword.lower(), location_code, language_code)] = (datetime.utcnow(), data)
