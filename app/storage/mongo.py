"""MongoDB backend for the ledger and keyword cache.

Balance changes run inside a multi-document transaction: the conditional
``$inc`` on ``credit_balances`` and the ``credit_ledger`` insert commit together
or not at all. Transactions need a replica set (Atlas, or ``mongod --replSet``).
"""

from datetime import datetime, timedelta
from typing import Any

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.exceptions import InsufficientBalanceError, ReferenceConflictError, StorageUnavailableError
from app.core.logging import get_logger
from app.models.api_usage import ApiUsage
from app.models.credit_balance import CreditBalance
from app.models.credit_ledger import CreditLedgerEntry
from app.models.keyword_cache import KeywordCacheEntry
from app.models.ledger import CreditTransaction, TransactionKind, UsageRecord, units_to_credits
from app.storage.base import KeywordCacheStore, LedgerStore

log = get_logger(__name__)


def _entry_from_raw(doc: dict[str, Any]) -> CreditTransaction:
    return CreditTransaction(
        id=str(doc["_id"]),
        user_id=doc["user_id"],
        amount=units_to_credits(doc["amount_units"]),
        kind=TransactionKind(doc["kind"]),
        balance_after=units_to_credits(doc["balance_after_units"]),
        description=doc.get("description"),
        external_reference=doc.get("external_reference"),
        created_at=doc["created_at"],
    )


def _check_reference_owner(doc: dict[str, Any], user_id: str) -> None:
    if doc["user_id"] != user_id:
        raise ReferenceConflictError(doc["external_reference"])


class MongoLedgerStore(LedgerStore):
    def __init__(self) -> None:
        self._balances = CreditBalance.get_motor_collection()
        self._ledger = CreditLedgerEntry.get_motor_collection()

    async def has_credits(self, user_id: str, units: int) -> bool:
        return await self.get_credit_balance(user_id) >= units

    async def get_credit_balance(self, user_id: str) -> int:
        try:
            doc = await self._balances.find_one({"user_id": user_id}, {"balance_units": 1})
        except PyMongoError as e:
            raise StorageUnavailableError() from e
        return doc["balance_units"] if doc else 0

    def _ledger_doc(
        self,
        user_id: str,
        units: int,
        balance_after: int,
        kind: TransactionKind,
        description: str | None,
        external_reference: str | None = None,
    ) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "_id": ObjectId(),
            "user_id": user_id,
            "amount_units": units,
            "balance_after_units": balance_after,
            "kind": kind.value,
            "description": description,
            "created_at": datetime.utcnow(),
        }
        # Absent (not null) so the partial unique index ignores it
        if external_reference is not None:
            doc["external_reference"] = external_reference
        return doc

    async def deduct_credits(
        self, user_id: str, units: int, description: str | None = None
    ) -> tuple[CreditTransaction, int]:
        async def txn(session):
            updated = await self._balances.find_one_and_update(
                {"user_id": user_id, "balance_units": {"$gte": units}},
                {"$inc": {"balance_units": -units}, "$set": {"updated_at": datetime.utcnow()}},
                return_document=ReturnDocument.AFTER,
                session=session,
            )
            if updated is None:
                raise InsufficientBalanceError(units_to_credits(units))
            doc = self._ledger_doc(
                user_id, -units, updated["balance_units"], TransactionKind.USAGE, description
            )
            await self._ledger.insert_one(doc, session=session)
            return doc

        try:
            async with await self._balances.database.client.start_session() as session:
                doc = await session.with_transaction(txn)
        except PyMongoError as e:
            raise StorageUnavailableError() from e
        return _entry_from_raw(doc), doc["balance_after_units"]

    async def add_credits(
        self,
        user_id: str,
        units: int,
        kind: TransactionKind,
        description: str | None = None,
        external_reference: str | None = None,
    ) -> tuple[CreditTransaction, int, bool]:
        async def txn(session):
            if external_reference is not None:
                existing = await self._ledger.find_one(
                    {"external_reference": external_reference}, session=session
                )
                if existing:
                    _check_reference_owner(existing, user_id)
                    return existing, False
            now = datetime.utcnow()
            updated = await self._balances.find_one_and_update(
                {"user_id": user_id},
                {
                    "$inc": {"balance_units": units},
                    "$set": {"updated_at": now},
                    "$setOnInsert": {"created_at": now},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
                session=session,
            )
            doc = self._ledger_doc(
                user_id, units, updated["balance_units"], kind, description, external_reference
            )
            await self._ledger.insert_one(doc, session=session)
            return doc, True

        try:
            async with await self._balances.database.client.start_session() as session:
                doc, applied = await session.with_transaction(txn)
        except DuplicateKeyError as e:
            # Concurrent delivery with the same reference committed first
            try:
                existing = await self._ledger.find_one({"external_reference": external_reference})
            except PyMongoError as lookup_error:
                raise StorageUnavailableError() from lookup_error
            if existing is None:
                raise StorageUnavailableError() from e
            _check_reference_owner(existing, user_id)
            doc, applied = existing, False
        except PyMongoError as e:
            raise StorageUnavailableError() from e
        if applied:
            return _entry_from_raw(doc), doc["balance_after_units"], True
        return _entry_from_raw(doc), await self.get_credit_balance(user_id), False

    async def list_transactions(self, user_id: str, limit: int, offset: int) -> list[CreditTransaction]:
        try:
            entries = (
                await CreditLedgerEntry.find(CreditLedgerEntry.user_id == user_id)
                .sort(-CreditLedgerEntry.created_at)
                .skip(offset)
                .limit(limit)
                .to_list()
            )
        except PyMongoError as e:
            raise StorageUnavailableError() from e
        return [e.to_domain() for e in entries]

    async def record_usage(self, record: UsageRecord) -> None:
        try:
            await ApiUsage(
                user_id=record.user_id,
                endpoint=record.endpoint,
                credits_used=float(record.credits_used),
                keywords_count=record.keywords_count,
                response_status=record.response_status,
                created_at=record.created_at,
            ).insert()
        except PyMongoError as e:
            raise StorageUnavailableError() from e


class MongoKeywordCache(KeywordCacheStore):
    def __init__(self, ttl_hours: int = 24) -> None:
        self.ttl = timedelta(hours=ttl_hours)

    async def get_many(
        self, keywords: list[str], location_code: int, language_code: str
    ) -> dict[str, dict[str, Any]]:
        cutoff = datetime.utcnow() - self.ttl
        entries = await KeywordCacheEntry.find(
            {
                "keyword": {"$in": [k.lower() for k in keywords]},
                "location_code": location_code,
                "language_code": language_code,
                "fetched_at": {"$gte": cutoff},
            }
        ).to_list()
        return {e.keyword: e.data for e in entries}

    async def put(self, keyword: str, location_code: int, language_code: str, data: dict[str, Any]) -> None:
        await KeywordCacheEntry.get_motor_collection().update_one(
            {"keyword": keyword.lower(), "location_code": location_code, "language_code": language_code},
            {"$set": {"data": data, "fetched_at": datetime.utcnow()}},
            upsert=True,
        )
