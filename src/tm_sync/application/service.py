"""OutcomeSyncService: the only component that talks to the market venue.

Metadata reads are cache-aside through an instance-owned TTL cache. Outcome
reconciliation always reads the venue fresh and hands a final result to
SettlementService.resolve, so venue outcomes pay out through the same
exactly-once path as any other resolution.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tm_common.datetime_utils import ensure_utc, utc_now
from src.tm_common.enums import MarketSource
from src.tm_common.errors import (
    AlreadyResolvedError,
    InvalidMarketSpecError,
    PersistenceFailureError,
    VenueMarketNotFoundError,
    VenueMarketNotOpenError,
    VenueUnavailableError,
)
from src.tm_market.application.schemas import MarketDetail
from src.tm_market.application.service import MarketApplicationService
from src.tm_market.domain.models import NewMarket
from src.tm_market.domain.repository import MarketRepositoryProtocol
from src.tm_market.infrastructure.persistence import MarketRepository
from src.tm_settlement.application.service import SettlementService
from src.tm_sync.application.schemas import MirrorResponse
from src.tm_sync.domain.cache import MarketMetadataCache
from src.tm_sync.domain.models import VenueMarket, VenueSyncReport
from src.tm_sync.domain.venue import VenueClientProtocol
from src.tm_sync.infrastructure.venue_client import KalshiVenueClient

logger = logging.getLogger(__name__)

VENUE_SYNC = "venue-sync"
VENUE_CATEGORY = "kalshi"
MIRROR_MIN_BET = 10
MIRROR_MAX_BET = 10000


def resolution_source(ticker: str, outcome: str) -> str:
    return f"Kalshi: {ticker} finalized {outcome.upper()}"


class OutcomeSyncService:
    def __init__(
        self,
        venue: VenueClientProtocol | None = None,
        cache: MarketMetadataCache | None = None,
        settlement: SettlementService | None = None,
        markets: MarketRepositoryProtocol | None = None,
        market_service: MarketApplicationService | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._venue: VenueClientProtocol = venue or KalshiVenueClient()
        self._cache = cache or MarketMetadataCache(settings.VENUE_CACHE_TTL_SECONDS)
        self._settlement = settlement or SettlementService()
        self._markets: MarketRepositoryProtocol = markets or MarketRepository()
        self._market_service = market_service or MarketApplicationService(
            repo=self._markets, clock=clock
        )
        self._clock = clock

    async def get_market_metadata(self, ticker: str) -> VenueMarket:
        cached = self._cache.get(ticker)
        if cached is not None:
            return cached
        market = await self._venue.get_market(ticker)
        self._cache.put(market)
        return market

    async def mirror_market(self, db: AsyncSession, ticker: str) -> MirrorResponse:
        """Create the local venue-sourced market for `ticker`, or return the existing one."""
        existing = await self._markets.find_by_source_ticker(db, MarketSource.VENUE, ticker)
        if existing is not None:
            return MirrorResponse(market=MarketDetail.from_domain(existing), created=False)

        venue_market = await self.get_market_metadata(ticker)
        if not venue_market.is_open:
            raise VenueMarketNotOpenError(ticker, venue_market.status or "unknown")
        if venue_market.close_time is None:
            raise InvalidMarketSpecError(f"venue market {ticker} has no close time")

        now = self._clock()
        closes_at = ensure_utc(venue_market.close_time)
        resolves_at = closes_at
        if venue_market.expiration_time is not None:
            resolves_at = max(closes_at, ensure_utc(venue_market.expiration_time))
        yes_multiplier, no_multiplier = venue_market.multipliers()

        spec = NewMarket(
            category=VENUE_CATEGORY,
            subcategory=venue_market.event_ticker or None,
            title=venue_market.display_title,
            description=venue_market.subtitle or None,
            ticker=ticker,
            source=MarketSource.VENUE,
            parameters={"event_ticker": venue_market.event_ticker},
            yes_multiplier=yes_multiplier,
            no_multiplier=no_multiplier,
            min_bet=MIRROR_MIN_BET,
            max_bet=MIRROR_MAX_BET,
            opens_at=now,
            closes_at=closes_at,
            resolves_at=resolves_at,
        )
        detail = await self._market_service.create_market(db, spec, VENUE_SYNC)
        return MirrorResponse(market=detail, created=True)

    async def sync_resolutions(self, db: AsyncSession) -> VenueSyncReport:
        """One reconciliation pass over unresolved venue markets with live wagers."""
        report = VenueSyncReport()
        candidates = await self._markets.list_unresolved_with_active_wagers(
            db, MarketSource.VENUE
        )
        # End the read transaction before the venue calls
        await db.commit()

        for market in candidates:
            report.checked += 1
            ticker = market.ticker or ""
            try:
                venue_market = await self._venue.get_market(ticker)
            except (VenueUnavailableError, VenueMarketNotFoundError) as exc:
                logger.warning("Deferring venue market %d (%s): %s", market.id, ticker,
                               exc.message)
                report.deferred.append(market.id)
                continue
            self._cache.put(venue_market)

            outcome = venue_market.final_outcome
            if outcome is None:
                report.pending.append(market.id)
                continue

            try:
                settled = await self._settlement.resolve(
                    db, market.id, outcome, resolution_source(ticker, outcome.value),
                    VENUE_SYNC,
                )
            except AlreadyResolvedError:
                report.skipped.append(market.id)
                continue
            except PersistenceFailureError as exc:
                logger.warning("Deferring venue market %d: %s", market.id, exc.message)
                report.deferred.append(market.id)
                continue

            report.resolved.append(market.id)
            report.total_paid_out += settled.total_paid_out

        logger.info(
            "Venue sync pass: %d checked, %d resolved, %d pending, %d deferred, %d skipped",
            report.checked,
            len(report.resolved),
            len(report.pending),
            len(report.deferred),
            len(report.skipped),
        )
        return report
