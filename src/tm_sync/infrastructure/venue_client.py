"""Async client for the external market venue (read-only market lookups).

Retries rate limits (429), server errors (5xx) and transport timeouts with
exponential backoff; 404 maps to VenueMarketNotFoundError and every other
failure to VenueUnavailableError. Requests are signed when both an API key
and a private key are configured; public market reads work without them.
"""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from config.settings import settings
from src.tm_common.errors import VenueMarketNotFoundError, VenueUnavailableError
from src.tm_sync.domain.models import VenueMarket
from src.tm_sync.infrastructure.signing import VenueRequestSigner, load_private_key

logger = logging.getLogger(__name__)


class VenueClientConfig:
    """Retry and pooling constants."""

    MAX_RETRIES = 3
    BACKOFF_BASE_SECONDS = 1.0
    MAX_CONNECTIONS = 20
    MAX_KEEPALIVE_CONNECTIONS = 5


class KalshiVenueClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        private_key_pem: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = VenueClientConfig.MAX_RETRIES,
        backoff_base: float = VenueClientConfig.BACKOFF_BASE_SECONDS,
    ) -> None:
        self._base_url = (base_url or settings.VENUE_BASE_URL).rstrip("/")
        self._timeout = timeout or settings.VENUE_TIMEOUT_SECONDS
        self._transport = transport
        self._max_retries = max_retries
        self._backoff_base = backoff_base

        api_key = api_key if api_key is not None else settings.VENUE_API_KEY
        pem = private_key_pem if private_key_pem is not None else settings.VENUE_PRIVATE_KEY
        self._auth: httpx.Auth | None = None
        if api_key and pem:
            self._auth = VenueRequestSigner(api_key, load_private_key(pem))

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            auth=self._auth,
            transport=self._transport,
            limits=httpx.Limits(
                max_connections=VenueClientConfig.MAX_CONNECTIONS,
                max_keepalive_connections=VenueClientConfig.MAX_KEEPALIVE_CONNECTIONS,
            ),
        )

    async def _get(self, path: str, not_found_key: str) -> dict[str, Any]:
        attempt = 0
        async with self._client() as client:
            while True:
                attempt += 1
                try:
                    response = await client.get(path)
                    if response.status_code == 404:
                        raise VenueMarketNotFoundError(not_found_key)
                    response.raise_for_status()
                    return response.json()
                except httpx.HTTPStatusError as exc:
                    status = exc.response.status_code
                    retryable = status == 429 or status >= 500
                    if not retryable or attempt >= self._max_retries:
                        raise VenueUnavailableError(f"{path}: HTTP {status}") from exc
                    logger.warning(
                        "Venue %s returned %d, retry %d/%d", path, status, attempt,
                        self._max_retries,
                    )
                except httpx.TimeoutException as exc:
                    if attempt >= self._max_retries:
                        raise VenueUnavailableError(f"{path}: timeout") from exc
                    logger.warning("Venue %s timed out, retry %d/%d", path, attempt,
                                   self._max_retries)
                except (httpx.HTTPError, ValueError) as exc:
                    raise VenueUnavailableError(f"{path}: {exc}") from exc
                await asyncio.sleep(self._backoff_base * (2 ** (attempt - 1)))

    async def get_market(self, ticker: str) -> VenueMarket:
        payload = await self._get(f"/markets/{ticker}", ticker)
        try:
            return VenueMarket.model_validate(payload["market"])
        except (KeyError, TypeError, PydanticValidationError) as exc:
            raise VenueUnavailableError(f"malformed market payload for {ticker}") from exc
