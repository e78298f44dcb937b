"""
Logs Search API client.

Thin async wrapper over httpx for POST /api/v2/logs/events/search. It only
forwards credentials as headers and decodes the response; it never retries.
Every failure is surfaced as RemoteRequestError with the provider message
unchanged.

Usage:
    async with LogsApiClient("datadoghq.eu", api_key, app_key) as client:
        page = await client.list_logs(body)
"""

import logging
from typing import Any, Optional

import httpx
import orjson
import pydantic

from apps.exporter.errors import RemoteRequestError
from utils.schemas import LogsListResponse

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/v2/logs/events/search"


def base_url(site: str) -> str:
    """Regional API host for a Datadog site such as datadoghq.com."""
    return f"https://api.{site.strip().strip('/')}"


class LogsApiClient:
    """Async client for the Logs Search endpoint."""

    def __init__(
        self,
        site: str,
        api_key: str,
        app_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            site: Datadog site, selects the regional API host
            api_key: Datadog API key
            app_key: Datadog application key
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.base_url = base_url(site)
        self._headers = {
            "DD-API-KEY": api_key,
            "DD-APPLICATION-KEY": app_key,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        self._timeout = timeout
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def connect(self) -> None:
        if self.client is None:
            self.client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None

    async def __aenter__(self) -> "LogsApiClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def list_logs(self, body: dict[str, Any]) -> LogsListResponse:
        """Run one search request.

        Args:
            body: Search request body (filter, page, sort)

        Returns:
            Decoded page of results

        Raises:
            RemoteRequestError: On network errors, non-2xx responses or an
                undecodable payload
        """
        if self.client is None:
            await self.connect()

        try:
            response = await self.client.post(SEARCH_PATH, content=orjson.dumps(body))
        except httpx.HTTPError as e:
            raise RemoteRequestError(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise RemoteRequestError(
                f"HTTP {response.status_code} from {SEARCH_PATH}: {response.text}",
                status_code=response.status_code,
            )

        try:
            return LogsListResponse.model_validate(orjson.loads(response.content))
        except (orjson.JSONDecodeError, pydantic.ValidationError) as e:
            raise RemoteRequestError(
                f"Invalid response payload from {SEARCH_PATH}: {e}",
                status_code=response.status_code,
            ) from e
