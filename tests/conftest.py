import os
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from beanie import PydanticObjectId
from httpx import ASGITransport, AsyncClient

# Settings are cached on first import, so the environment goes first
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGODB_DB_NAME", "keywordpeek_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-min-32-characters-long")
os.environ.setdefault("DATA_BACKEND", "memory")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("DATAFORSEO_LOGIN", "")
os.environ.setdefault("DATAFORSEO_PASSWORD", "")

from app.services.credits import CreditLedger  # noqa: E402
from app.services.dataforseo import DataForSEOClient  # noqa: E402
from app.storage.memory import MemoryKeywordCache, MemoryLedgerStore  # noqa: E402


@pytest.fixture
def ledger_store() -> MemoryLedgerStore:
    return MemoryLedgerStore()


@pytest.fixture
def ledger(ledger_store) -> CreditLedger:
    return CreditLedger(ledger_store)


@pytest.fixture
def keyword_cache() -> MemoryKeywordCache:
    return MemoryKeywordCache(ttl_hours=24)


@pytest.fixture
def current_user():
    return SimpleNamespace(id=PydanticObjectId(), email="user@example.com", name="Test")


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    from app.main import app
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def override(current_user, ledger, keyword_cache):
    """Wire the app to in-memory collaborators; returns a setter for the provider client."""
    from app.deps import get_current_user, get_dataforseo, get_keyword_cache, get_ledger
    from app.main import app

    app.dependency_overrides[get_current_user] = lambda: current_user
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_keyword_cache] = lambda: keyword_cache

    def set_provider(provider: DataForSEOClient) -> None:
        app.dependency_overrides[get_dataforseo] = lambda: provider

    return set_provider
