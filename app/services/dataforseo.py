"""DataForSEO HTTP client (Basic auth, JSON task arrays)."""

from dataclasses import dataclass
from typing import Any

import httpx

from app.core.config import Settings
from app.core.exceptions import ProviderError
from app.core.logging import get_logger

log = get_logger(__name__)

STATUS_OK = 20000


@dataclass(frozen=True)
class DataForSEOConfig:
    login: str
    password: str
    base_url: str = "https://api.dataforseo.com"
    timeout_seconds: float = 60.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "DataForSEOConfig | None":
        """None when credentials are not configured."""
        if not settings.dataforseo_login or not settings.dataforseo_password:
            return None
        return cls(
            login=settings.dataforseo_login,
            password=settings.dataforseo_password,
            base_url=settings.dataforseo_api_url,
            timeout_seconds=settings.dataforseo_timeout_seconds,
        )


class DataForSEOClient:
    """One pooled httpx client per process; created at startup, closed at shutdown."""

    def __init__(self, config: DataForSEOConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            auth=httpx.BasicAuth(config.login, config.password),
            timeout=config.timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def post(self, endpoint: str, tasks: list[dict[str, Any]]) -> dict[str, Any]:
        """POST a task array; return the decoded body or raise ProviderError."""
        try:
            response = await self._http.post(endpoint, json=tasks)
        except httpx.HTTPError as e:
            log.warning("dataforseo_request_failed", endpoint=endpoint, error=str(e))
            raise ProviderError(str(e) or "Request failed", 0, 0) from e

        if response.is_error:
            code, message = self._error_details(response)
            log.warning("dataforseo_http_error", endpoint=endpoint, http_status=response.status_code, code=code)
            raise ProviderError(message, code, response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError("Invalid JSON from keyword data provider", 0, 0) from e

        if body.get("status_code") != STATUS_OK:
            log.warning(
                "dataforseo_api_error",
                endpoint=endpoint,
                code=body.get("status_code"),
                message=body.get("status_message"),
            )
            raise ProviderError(
                body.get("status_message") or "Provider request failed",
                body.get("status_code") or 0,
                response.status_code,
            )
        return body

    @staticmethod
    def _error_details(response: httpx.Response) -> tuple[int, str]:
        try:
            data = response.json()
        except ValueError:
            return response.status_code, response.reason_phrase or "Request failed"
        return (
            data.get("status_code") or response.status_code,
            data.get("status_message") or response.reason_phrase or "Request failed",
        )


def iter_results(body: dict[str, Any]):
    """Yield every result item across the response's tasks."""
    for task in body.get("tasks") or []:
        for item in task.get("result") or []:
            yield item
