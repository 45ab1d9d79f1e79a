from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse


class AppError(Exception):
    """Base application error with consistent schema."""

    def __init__(
        self,
        message: str,
        code: str = "ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, code="UNAUTHORIZED", status_code=status.HTTP_401_UNAUTHORIZED)


class NotFoundError(AppError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND", status_code=status.HTTP_404_NOT_FOUND)


class BadRequestError(AppError):
    def __init__(self, message: str = "Bad request", details: dict[str, Any] | None = None):
        super().__init__(message, code="BAD_REQUEST", status_code=status.HTTP_400_BAD_REQUEST, details=details)


class InsufficientBalanceError(AppError):
    """Expected outcome: the user must top up before retrying."""

    def __init__(self, credits_needed: Any = None, message: str = "Insufficient credits"):
        details = {"credits_needed": float(credits_needed)} if credits_needed is not None else {}
        super().__init__(
            message,
            code="INSUFFICIENT_CREDITS",
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            details=details,
        )


class InvalidAmountError(AppError):
    def __init__(self, message: str = "Invalid credit amount"):
        super().__init__(message, code="INVALID_AMOUNT", status_code=status.HTTP_400_BAD_REQUEST)


class ReferenceConflictError(AppError):
    """External reference already recorded against a different user."""

    def __init__(self, external_reference: str):
        super().__init__(
            "External reference belongs to another account",
            code="REFERENCE_CONFLICT",
            status_code=status.HTTP_409_CONFLICT,
            details={"external_reference": external_reference},
        )


class StorageUnavailableError(AppError):
    """Ledger storage failed; safe for the caller to retry with backoff."""

    def __init__(self, message: str = "Credit storage unavailable"):
        super().__init__(message, code="STORAGE_UNAVAILABLE", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


class ProviderError(AppError):
    """Keyword data provider (DataForSEO) request failed."""

    def __init__(self, message: str, provider_code: int = 0, http_status: int = 0):
        self.provider_code = provider_code
        self.http_status = http_status
        super().__init__(
            message,
            code="PROVIDER_ERROR",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"provider_code": provider_code, "http_status": http_status},
        )

    def is_rate_limited(self) -> bool:
        return self.provider_code == 40200 or self.http_status == 429

    def is_auth_error(self) -> bool:
        return self.provider_code == 40100 or self.http_status == 401

    def is_quota_error(self) -> bool:
        return self.provider_code == 40201


def error_response(request: Request, exc: AppError) -> ORJSONResponse:
    body = {
        "error": {
            "message": exc.message,
            "code": exc.code,
            "details": exc.details,
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(status_code=exc.status_code, content=body)


async def app_exception_handler(request: Request, exc: AppError) -> ORJSONResponse:
    return error_response(request, exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    body = {
        "error": {
            "message": "Validation error",
            "code": "VALIDATION_ERROR",
            "details": {"errors": exc.errors()},
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    from app.core.logging import get_logger
    get_logger(__name__).exception("unhandled_exception", exc_info=exc)
    body = {
        "error": {
            "message": "Internal server error",
            "code": "INTERNAL_ERROR",
            "details": {},
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body,
    )
