"""SettlementService: exactly-once market resolution and payout.

resolve() runs as ONE transaction:
  1. lock the market row (FOR UPDATE); a resolved market is rejected, which is
     what makes repeated or racing resolutions pay out only once
  2. stamp status/outcome/provenance on the market
  3. lock the market's active wagers in id order
  4. winners: wager -> won, credit potential_payout, total_won += net profit
     losers:  wager -> lost, total_lost += stake
Any failure rolls the whole settlement back; a partial payout is never visible.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_betting.domain.repository import WagerRepositoryProtocol
from src.tm_betting.infrastructure.persistence import WagerRepository
from src.tm_common.database import apply_lock_timeout, persistence_guard
from src.tm_common.datetime_utils import utc_now
from src.tm_common.enums import LedgerEntryType, MarketStatus, Outcome, WagerStatus
from src.tm_common.errors import (
    AlreadyResolvedError,
    InvalidOutcomeError,
    MarketNotFoundError,
    MarketNotResolvableError,
)
from src.tm_ledger.domain.repository import LedgerRepositoryProtocol
from src.tm_ledger.infrastructure.persistence import LedgerRepository
from src.tm_market.domain.repository import MarketRepositoryProtocol
from src.tm_market.infrastructure.persistence import MarketRepository
from src.tm_settlement.domain.models import SettlementReport

logger = logging.getLogger(__name__)

DEFAULT_RESOLUTION_SOURCE = "Manual resolution"


def parse_outcome(value: object) -> Outcome:
    if isinstance(value, Outcome):
        return value
    if isinstance(value, str):
        try:
            return Outcome(value.strip().lower())
        except ValueError:
            pass
    raise InvalidOutcomeError(value)


class SettlementService:
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

    async def resolve(
        self,
        db: AsyncSession,
        market_id: int,
        outcome: Outcome | str,
        source: str | None,
        resolved_by: str,
    ) -> SettlementReport:
        result = parse_outcome(outcome)
        resolution_source = source or DEFAULT_RESOLUTION_SOURCE
        resolved_at = self._clock()
        report = SettlementReport(
            market_id=market_id,
            outcome=result.value,
            resolution_source=resolution_source,
            resolved_by=resolved_by,
            resolved_at=resolved_at,
        )

        try:
            with persistence_guard("resolve"):
                await apply_lock_timeout(db)

                market = await self._markets.lock_market(db, market_id)
                if market is None:
                    raise MarketNotFoundError(market_id)
                if market.status == MarketStatus.RESOLVED:
                    raise AlreadyResolvedError(market_id)
                if market.status == MarketStatus.UPCOMING:
                    raise MarketNotResolvableError(market_id, market.status)

                await self._markets.mark_resolved(
                    db, market_id, result, resolution_source, resolved_by, resolved_at
                )

                for wager in await self._wagers.lock_active_for_market(db, market_id):
                    if wager.position == result.value:
                        await self._wagers.mark_settled(
                            db, wager.id, WagerStatus.WON, wager.potential_payout, resolved_at
                        )
                        if wager.potential_payout > 0:
                            await self._ledger.credit(
                                db,
                                wager.user_key,
                                wager.potential_payout,
                                LedgerEntryType.BET_PAYOUT,
                                "WAGER",
                                str(wager.id),
                                f"Won market {market_id} ({result.value.upper()})",
                            )
                        await self._ledger.record_win(
                            db, wager.user_key, wager.potential_payout - wager.tokens_wagered
                        )
                        report.winners += 1
                        report.total_paid_out += wager.potential_payout
                    else:
                        await self._wagers.mark_settled(
                            db, wager.id, WagerStatus.LOST, 0, resolved_at
                        )
                        await self._ledger.record_loss(db, wager.user_key, wager.tokens_wagered)
                        report.losers += 1

                await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Market %d resolved %s by %s: %d bets (%d won, %d lost), %d tokens paid out",
            market_id,
            result.value,
            resolved_by,
            report.bets_processed,
            report.winners,
            report.losers,
            report.total_paid_out,
        )
        return report
