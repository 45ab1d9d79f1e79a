from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class CreditBalance(Document):
    """Current balance per user in hundredths of a credit; only the ledger store writes it."""
    user_id: Indexed(str, unique=True)
    balance_units: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "credit_balances"
