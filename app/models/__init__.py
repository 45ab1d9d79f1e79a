from app.models.user import User
from app.models.credit_balance import CreditBalance
from app.models.credit_ledger import CreditLedgerEntry
from app.models.api_usage import ApiUsage
from app.models.keyword_cache import KeywordCacheEntry
from app.models.payment_order import PaymentOrder
from app.models.project import Project
from app.models.saved_keyword import SavedKeyword

__all__ = [
    "User",
    "CreditBalance",
    "CreditLedgerEntry",
    "ApiUsage",
    "KeywordCacheEntry",
    "PaymentOrder",
    "Project",
    "SavedKeyword",
]
