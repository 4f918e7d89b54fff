"""Repository Protocol: dependency inversion for testability."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.enums import MarketSource, MarketStatus, Outcome, Position
from src.tm_market.domain.models import Market, NewMarket


class MarketRepositoryProtocol(Protocol):
    async def get_market(self, db: AsyncSession, market_id: int) -> Market | None: ...

    async def lock_market(self, db: AsyncSession, market_id: int) -> Market | None: ...

    async def insert_market(
        self, db: AsyncSession, spec: NewMarket, status: MarketStatus
    ) -> Market: ...

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        featured: bool | None,
        limit: int,
    ) -> list[Market]: ...

    async def exists_scheduled(
        self, db: AsyncSession, ticker: str, subcategory: str, resolves_at: datetime
    ) -> bool: ...

    async def find_by_source_ticker(
        self, db: AsyncSession, source: MarketSource, ticker: str
    ) -> Market | None: ...

    async def record_bet_volume(
        self, db: AsyncSession, market_id: int, position: Position, tokens: int
    ) -> None: ...

    async def mark_resolved(
        self,
        db: AsyncSession,
        market_id: int,
        outcome: Outcome,
        resolution_source: str,
        resolved_by: str,
        resolved_at: datetime,
    ) -> None: ...

    async def open_due(self, db: AsyncSession, now: datetime) -> list[int]: ...

    async def close_due(self, db: AsyncSession, now: datetime) -> list[int]: ...

    async def list_due_for_auto_resolution(
        self,
        db: AsyncSession,
        now: datetime,
        subcategories: list[str],
        limit: int,
        after: tuple[datetime, int] | None = None,
    ) -> list[Market]: ...

    async def list_unresolved_with_active_wagers(
        self, db: AsyncSession, source: MarketSource
    ) -> list[Market]: ...
