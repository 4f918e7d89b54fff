"""MarketApplicationService: market registry operations.

Reads are plain repository calls. create_market, sweep_statuses and
generate_markets each run as one transaction (commit / rollback-and-reraise).
"""

import logging
from collections.abc import Callable
from datetime import date, datetime

import pytz
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tm_common.database import persistence_guard
from src.tm_common.datetime_utils import utc_now
from src.tm_common.enums import MarketStatus
from src.tm_common.errors import MarketNotFoundError
from src.tm_market.application.schemas import (
    GenerateResponse,
    MarketDetail,
    MarketListItem,
    SweepResponse,
)
from src.tm_market.domain.generator import markets_to_generate
from src.tm_market.domain.lifecycle import derive_status, validate_new_market
from src.tm_market.domain.models import NewMarket
from src.tm_market.domain.repository import MarketRepositoryProtocol
from src.tm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


class MarketApplicationService:
    def __init__(
        self,
        repo: MarketRepositoryProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()
        self._clock = clock

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        featured: bool | None,
        limit: int,
    ) -> list[MarketListItem]:
        # status=None → default open; status='all' → no filter
        sql_status = None if status == "all" else (status or MarketStatus.OPEN.value)
        markets = await self._repo.list_markets(db, sql_status, category, featured, limit)
        return [MarketListItem.from_domain(m) for m in markets]

    async def get_market(self, db: AsyncSession, market_id: int) -> MarketDetail:
        market = await self._repo.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return MarketDetail.from_domain(market)

    async def create_market(
        self, db: AsyncSession, spec: NewMarket, created_by: str
    ) -> MarketDetail:
        now = self._clock()
        validate_new_market(spec, now)
        status = derive_status(MarketStatus.UPCOMING, spec.opens_at, spec.closes_at, now)
        try:
            with persistence_guard("create_market"):
                market = await self._repo.insert_market(db, spec, status)
                await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Market %d created by %s: %s", market.id, created_by, market.title)
        return MarketDetail.from_domain(market)

    async def sweep_statuses(
        self, db: AsyncSession, now: datetime | None = None
    ) -> SweepResponse:
        """Apply due upcoming→open and →closed transitions in one pass.

        Idempotent: with no boundary crossed since the last pass, both lists are empty.
        """
        now = now or self._clock()
        try:
            with persistence_guard("sweep_statuses"):
                opened = await self._repo.open_due(db, now)
                closed = await self._repo.close_due(db, now)
                await db.commit()
        except Exception:
            await db.rollback()
            raise
        if opened or closed:
            logger.info("Status sweep: opened=%s closed=%s", opened, closed)
        return SweepResponse(opened=opened, closed=closed)

    async def generate_markets(
        self, db: AsyncSession, today: date | None = None
    ) -> GenerateResponse:
        """Create the scheduled daily/weekly markets, skipping ones that already exist."""
        now = self._clock()
        if today is None:
            today = now.astimezone(pytz.timezone(settings.MARKET_TIMEZONE)).date()

        created: list[int] = []
        skipped = 0
        try:
            with persistence_guard("generate_markets"):
                for spec in markets_to_generate(today, settings.MARKET_TIMEZONE):
                    if await self._repo.exists_scheduled(
                        db, spec.ticker or "", spec.subcategory or "", spec.resolves_at
                    ):
                        skipped += 1
                        continue
                    status = derive_status(
                        MarketStatus.UPCOMING, spec.opens_at, spec.closes_at, now
                    )
                    market = await self._repo.insert_market(db, spec, status)
                    created.append(market.id)
                await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Market generator (%s): %d created, %d skipped", today, len(created), skipped)
        return GenerateResponse(created=created, skipped=skipped)
