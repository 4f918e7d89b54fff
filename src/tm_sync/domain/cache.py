"""Per-ticker TTL cache for venue market metadata.

Owned by the adapter instance that creates it (no module-level state), with
an injectable clock so expiry is testable. Used for display and mirroring
only; resolution decisions always read the venue fresh.

Expired entries are dropped on every write, so a long-lived instance holds
at most the tickers seen within one TTL.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

from src.tm_sync.domain.models import VenueMarket


@dataclass
class _Entry:
    market: VenueMarket
    stored_at: float


class MarketMetadataCache:
    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    def _expired(self, entry: _Entry, now: float) -> bool:
        return now - entry.stored_at >= self._ttl

    def get(self, ticker: str) -> VenueMarket | None:
        entry = self._entries.get(ticker)
        if entry is None:
            return None
        if self._expired(entry, self._clock()):
            del self._entries[ticker]
            return None
        return entry.market

    def put(self, market: VenueMarket) -> None:
        now = self._clock()
        stale = [t for t, entry in self._entries.items() if self._expired(entry, now)]
        for ticker in stale:
            del self._entries[ticker]
        self._entries[market.ticker] = _Entry(market=market, stored_at=now)
