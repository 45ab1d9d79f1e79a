import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from app.core.config import get_settings
from app.models.api_usage import ApiUsage
from app.models.credit_balance import CreditBalance
from app.models.credit_ledger import CreditLedgerEntry
from app.models.keyword_cache import KeywordCacheEntry
from app.models.payment_order import PaymentOrder
from app.models.project import Project
from app.models.saved_keyword import SavedKeyword
from app.models.user import User

DOCUMENT_MODELS = [
    User,
    CreditBalance,
    CreditLedgerEntry,
    ApiUsage,
    KeywordCacheEntry,
    PaymentOrder,
    Project,
    SavedKeyword,
]


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true). Avoids TLS for plain mongodb:// in CI."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


def create_client(uri: str, **kwargs) -> AsyncIOMotorClient:
    # Atlas in Docker: tlsCAFile + tlsDisableOCSPEndpointCheck avoid TLSV1_ALERT_INTERNAL_ERROR
    if _use_tls(uri):
        kwargs.setdefault("tlsCAFile", certifi.where())
        kwargs.setdefault("tlsDisableOCSPEndpointCheck", True)
    return AsyncIOMotorClient(uri, **kwargs)


async def init_db(db_name: str | None = None) -> AsyncIOMotorClient:
    settings = get_settings()
    client = create_client(settings.mongodb_uri)
    database = client[db_name or settings.mongodb_db_name]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    return client
