"""Shared FastAPI dependencies."""

from fastapi import Request

from app.core.exceptions import BadRequestError, UnauthorizedError
from app.core.logging import bind_user_id
from app.core.security import load_session_cookie
from app.models.user import User
from app.services.credits import CreditLedger
from app.services.dataforseo import DataForSEOClient
from app.storage.base import KeywordCacheStore

SESSION_COOKIE_NAME = "keywordpeek_session"


async def get_current_user(request: Request) -> User:
    """Dependency: load session from cookie and return User."""
    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    if not cookie:
        raise UnauthorizedError("Not authenticated")
    payload = load_session_cookie(cookie)
    if not payload:
        raise UnauthorizedError("Invalid or expired session")
    user_id = payload.get("user_id")
    if not user_id:
        raise UnauthorizedError("Invalid session")
    user = await User.get(user_id)
    if not user:
        raise UnauthorizedError("User not found")
    if payload.get("session_version") != user.session_version:
        raise UnauthorizedError("Session invalidated")
    bind_user_id(str(user.id))
    return user


def get_ledger(request: Request) -> CreditLedger:
    return request.app.state.ledger


def get_keyword_cache(request: Request) -> KeywordCacheStore | None:
    return getattr(request.app.state, "keyword_cache", None)


def get_dataforseo(request: Request) -> DataForSEOClient:
    client = getattr(request.app.state, "dataforseo", None)
    if client is None:
        raise BadRequestError("Keyword data provider not configured")
    return client
