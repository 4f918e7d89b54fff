"""Repository Protocol: dependency inversion for testability."""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_betting.domain.models import Wager, WagerView
from src.tm_common.enums import Position, WagerStatus


class WagerRepositoryProtocol(Protocol):
    async def get_for_user_market(
        self, db: AsyncSession, user_key: str, market_id: int
    ) -> Wager | None: ...

    async def insert_wager(
        self,
        db: AsyncSession,
        user_key: str,
        market_id: int,
        position: Position,
        tokens_wagered: int,
        potential_payout: int,
        payout_multiplier: Decimal,
    ) -> Wager: ...

    async def lock_active_for_market(
        self, db: AsyncSession, market_id: int
    ) -> list[Wager]: ...

    async def mark_settled(
        self,
        db: AsyncSession,
        wager_id: int,
        status: WagerStatus,
        tokens_won: int,
        settled_at: datetime,
    ) -> None: ...

    async def list_by_user(
        self,
        db: AsyncSession,
        user_key: str,
        status: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[WagerView]: ...
