"""Read-only price oracle contract.

Implementations raise OracleUnavailableError for every failure mode
(transport error, HTTP error, missing or non-numeric open/close values),
so automated resolution can defer a market without inspecting causes.
"""

from typing import Protocol

from src.tm_settlement.domain.models import DailyQuote, PriceBar


class PriceOracleProtocol(Protocol):
    async def get_daily_quote(self, ticker: str) -> DailyQuote: ...

    async def get_recent_bars(self, ticker: str, days: int) -> list[PriceBar]: ...
