"""BetPlacementService: atomic wager placement.

place_bet runs as ONE transaction with a fixed lock order, market row first,
then account row. Settlement takes the same order, so bets and resolutions on
the same market serialise on the market lock instead of deadlocking.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_betting.application.schemas import (
    BetHistoryItem,
    BetHistoryResponse,
    PlaceBetResponse,
    WagerResponse,
)
from src.tm_betting.domain.repository import WagerRepositoryProtocol
from src.tm_betting.domain.rules import (
    check_amount,
    check_bounds,
    parse_position,
    potential_payout,
)
from src.tm_betting.infrastructure.persistence import WagerRepository
from src.tm_common.database import apply_lock_timeout, persistence_guard
from src.tm_common.datetime_utils import utc_now
from src.tm_common.enums import LedgerEntryType, Position
from src.tm_common.errors import (
    DuplicateBetError,
    InsufficientFundsError,
    MarketClosedError,
    MarketNotFoundError,
)
from src.tm_common.pagination import cursor_decode, cursor_encode
from src.tm_ledger.domain.repository import LedgerRepositoryProtocol
from src.tm_ledger.infrastructure.persistence import LedgerRepository
from src.tm_market.domain.lifecycle import accepts_bets
from src.tm_market.domain.repository import MarketRepositoryProtocol
from src.tm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


class BetPlacementService:
    def __init__(
        self,
        markets: MarketRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
        wagers: WagerRepositoryProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._markets: MarketRepositoryProtocol = markets or MarketRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._wagers: WagerRepositoryProtocol = wagers or WagerRepository()
        self._clock = clock

    async def place_bet(
        self,
        db: AsyncSession,
        user_key: str,
        market_id: int,
        position: Position | str,
        tokens_wagered: int,
    ) -> PlaceBetResponse:
        side = parse_position(position)
        amount = check_amount(tokens_wagered)

        try:
            with persistence_guard("place_bet"):
                await apply_lock_timeout(db)

                market = await self._markets.lock_market(db, market_id)
                if market is None:
                    raise MarketNotFoundError(market_id)
                if not accepts_bets(market, self._clock()):
                    raise MarketClosedError(market_id, market.status)
                check_bounds(market, amount)
                if await self._wagers.get_for_user_market(db, user_key, market_id):
                    raise DuplicateBetError(market_id)

                account = await self._ledger.lock_account(db, user_key)
                if account.balance < amount:
                    raise InsufficientFundsError(amount, account.balance)

                multiplier = market.multiplier_for(side)
                wager = await self._wagers.insert_wager(
                    db,
                    user_key,
                    market_id,
                    side,
                    amount,
                    potential_payout(amount, multiplier),
                    multiplier,
                )
                account, _ = await self._ledger.debit(
                    db,
                    user_key,
                    amount,
                    LedgerEntryType.BET_STAKE,
                    "WAGER",
                    str(wager.id),
                    f"Bet {side.value.upper()} on market {market_id}",
                )
                await self._markets.record_bet_volume(db, market_id, side, amount)
                await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Wager %d: %s bet %d on market %d %s (payout %d)",
            wager.id, user_key, amount, market_id, side.value, wager.potential_payout,
        )
        return PlaceBetResponse(
            wager=WagerResponse.from_domain(wager), balance_after=account.balance
        )

    async def list_bets(
        self,
        db: AsyncSession,
        user_key: str,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> BetHistoryResponse:
        cursor_id = cursor_decode(cursor)
        views = await self._wagers.list_by_user(db, user_key, status, cursor_id, limit + 1)
        has_more = len(views) > limit
        page = views[:limit]
        next_cursor = cursor_encode(page[-1].wager.id) if has_more and page else None
        return BetHistoryResponse(
            items=[BetHistoryItem.from_view(v) for v in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
