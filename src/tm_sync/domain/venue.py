"""External market venue contract.

get_market raises VenueMarketNotFoundError for unknown tickers and
VenueUnavailableError for every other failure.
"""

from typing import Protocol

from src.tm_sync.domain.models import VenueMarket


class VenueClientProtocol(Protocol):
    async def get_market(self, ticker: str) -> VenueMarket: ...
