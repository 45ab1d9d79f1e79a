"""Credit ledger domain types shared by every storage backend.

Balances and transaction amounts are kept as integer hundredths of a credit
("units") in storage so fractional operation prices stay exact; the domain
types expose them as ``Decimal`` credits.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

CREDIT_SCALE = 100
_QUANTUM = Decimal("0.01")


def units_to_credits(units: int) -> Decimal:
    return (Decimal(units) / CREDIT_SCALE).quantize(_QUANTUM)


class TransactionKind(str, Enum):
    PURCHASE = "purchase"
    USAGE = "usage"
    BONUS = "bonus"
    REFUND = "refund"


CREDIT_KINDS = frozenset({TransactionKind.PURCHASE, TransactionKind.BONUS, TransactionKind.REFUND})


class CreditTransaction(BaseModel):
    """One immutable balance change. Positive amount = credit added, negative = credit spent."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    amount: Decimal
    kind: TransactionKind
    balance_after: Decimal
    description: str | None = None
    external_reference: str | None = None
    created_at: datetime


class CreditReceipt(BaseModel):
    """Result of a balance mutation.

    ``duplicate`` is set when ``add_balance`` found its external reference already
    applied; nothing was credited and ``transaction`` is the original record.
    """

    model_config = ConfigDict(frozen=True)

    balance: Decimal
    transaction: CreditTransaction | None = None
    duplicate: bool = False


class UsageRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    endpoint: str
    credits_used: Decimal
    keywords_count: int | None = None
    response_status: int | None = 200
    created_at: datetime = Field(default_factory=datetime.utcnow)
