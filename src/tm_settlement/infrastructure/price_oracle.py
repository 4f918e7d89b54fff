"""HTTP price oracle over the public v8 chart endpoint (daily bars, no API key).

GET {base}/v8/finance/chart/{ticker}?interval=1d&range=1d|5d

    chart.result[0].meta.regularMarketPrice / chartPreviousClose
    chart.result[0].indicators.quote[0].open[] / close[]
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from config.settings import settings
from src.tm_common.errors import OracleUnavailableError
from src.tm_settlement.domain.models import DailyQuote, PriceBar

logger = logging.getLogger(__name__)

_USER_AGENT = "Mozilla/5.0 (compatible; token-markets/0.1)"


def _price(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


class YahooPriceOracle:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url or settings.PRICE_ORACLE_BASE_URL
        self._timeout = timeout or settings.ORACLE_TIMEOUT_SECONDS
        self._transport = transport

    async def _chart(self, ticker: str, range_: str) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"User-Agent": _USER_AGENT},
                transport=self._transport,
            ) as client:
                response = await client.get(
                    f"/v8/finance/chart/{ticker}",
                    params={"interval": "1d", "range": range_},
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise OracleUnavailableError(
                f"{ticker}: HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise OracleUnavailableError(f"{ticker}: {exc}") from exc

        try:
            return payload["chart"]["result"][0]
        except (KeyError, IndexError, TypeError) as exc:
            raise OracleUnavailableError(f"{ticker}: malformed chart payload") from exc

    @staticmethod
    def _series(result: dict[str, Any], name: str) -> list[Any]:
        try:
            return list(result["indicators"]["quote"][0].get(name) or [])
        except (KeyError, IndexError, TypeError):
            return []

    async def get_daily_quote(self, ticker: str) -> DailyQuote:
        result = await self._chart(ticker, "1d")
        meta = result.get("meta") or {}
        opens = self._series(result, "open")
        closes = self._series(result, "close")

        open_ = _price(opens[-1]) if opens else None
        close = (_price(closes[-1]) if closes else None) or _price(
            meta.get("regularMarketPrice")
        )
        if open_ is None or close is None:
            raise OracleUnavailableError(f"{ticker}: missing open/close")
        previous_close = _price(meta.get("chartPreviousClose") or meta.get("previousClose"))
        logger.debug("Quote %s open=%s close=%s", ticker, open_, close)
        return DailyQuote(ticker=ticker, open=open_, close=close, previous_close=previous_close)

    async def get_recent_bars(self, ticker: str, days: int) -> list[PriceBar]:
        result = await self._chart(ticker, f"{days}d")
        opens = self._series(result, "open")
        closes = self._series(result, "close")
        bars: list[PriceBar] = []
        for raw_open, raw_close in zip(opens, closes):
            open_, close = _price(raw_open), _price(raw_close)
            if open_ is None or close is None:
                continue
            bars.append(PriceBar(open=open_, close=close))
        if not bars:
            raise OracleUnavailableError(f"{ticker}: no complete daily bars")
        return bars
