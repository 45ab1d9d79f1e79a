from datetime import datetime

from beanie import Document
from pydantic import Field
from pymongo import ASCENDING, DESCENDING, IndexModel

from app.models.ledger import CreditTransaction, TransactionKind, units_to_credits


class CreditLedgerEntry(Document):
    user_id: str
    amount_units: int  # positive = credit, negative = debit
    balance_after_units: int
    kind: TransactionKind
    description: str | None = None
    external_reference: str | None = None  # payment order id, bonus key
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "credit_ledger"
        indexes = [
            IndexModel([("user_id", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel(
                [("external_reference", ASCENDING)],
                unique=True,
                partialFilterExpression={"external_reference": {"$type": "string"}},
            ),
        ]

    def to_domain(self) -> CreditTransaction:
        return CreditTransaction(
            id=str(self.id),
            user_id=self.user_id,
            amount=units_to_credits(self.amount_units),
            kind=self.kind,
            balance_after=units_to_credits(self.balance_after_units),
            description=self.description,
            external_reference=self.external_reference,
            created_at=self.created_at,
        )
