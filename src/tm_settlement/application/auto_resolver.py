"""AutoResolver: one scheduled pass of oracle-driven resolution.

Candidates are internal markets that are closed, unresolved, past
resolves_at and in a subcategory with a registered resolver. They are read in
keyset-ordered pages so markets that keep failing cannot crowd the rest out.
Each one goes through its subcategory resolver and then through
SettlementService.resolve, the same path as a manual resolution.

A market whose resolver fails is left untouched: oracle outages are retried
on the next pass, unusable parameters are reported for manual resolution.
Nothing is retried within a pass, and one market's failure never stops the
others.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.datetime_utils import utc_now
from src.tm_common.errors import (
    AlreadyResolvedError,
    ManualResolutionRequiredError,
    OracleUnavailableError,
    PersistenceFailureError,
)
from src.tm_market.domain.models import Market
from src.tm_market.domain.repository import MarketRepositoryProtocol
from src.tm_market.infrastructure.persistence import MarketRepository
from src.tm_settlement.application.service import SettlementService
from src.tm_settlement.domain.models import AutoResolutionReport
from src.tm_settlement.domain.oracle import PriceOracleProtocol
from src.tm_settlement.domain.resolvers import RESOLVERS, get_resolver
from src.tm_settlement.infrastructure.price_oracle import YahooPriceOracle

logger = logging.getLogger(__name__)

AUTO_RESOLVER = "auto-resolver"


class AutoResolver:
    def __init__(
        self,
        oracle: PriceOracleProtocol | None = None,
        settlement: SettlementService | None = None,
        markets: MarketRepositoryProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
        batch_size: int = 100,
    ) -> None:
        self._oracle: PriceOracleProtocol = oracle or YahooPriceOracle()
        self._settlement = settlement or SettlementService()
        self._markets: MarketRepositoryProtocol = markets or MarketRepository()
        self._clock = clock
        self._batch_size = batch_size

    async def run_pass(
        self, db: AsyncSession, now: datetime | None = None
    ) -> AutoResolutionReport:
        now = now or self._clock()
        report = AutoResolutionReport()
        subcategories = sorted(RESOLVERS)
        after: tuple[datetime, int] | None = None

        while True:
            page = await self._markets.list_due_for_auto_resolution(
                db, now, subcategories, self._batch_size, after
            )
            # End the read transaction before the (slow) oracle calls
            await db.commit()
            for market in page:
                await self._resolve_one(db, market, report)
            if len(page) < self._batch_size:
                break
            last = page[-1]
            after = (last.resolves_at, last.id)

        logger.info(
            "Auto-resolution pass: %d resolved, %d deferred, %d manual, %d skipped",
            len(report.resolved),
            len(report.deferred),
            len(report.manual),
            len(report.skipped),
        )
        return report

    async def _resolve_one(
        self, db: AsyncSession, market: Market, report: AutoResolutionReport
    ) -> None:
        resolver = get_resolver(market.subcategory)
        if resolver is None:
            logger.info(
                "Market %d (%s) requires manual resolution", market.id, market.subcategory
            )
            report.manual.append(market.id)
            return

        try:
            decision = await resolver(market, self._oracle)
        except ManualResolutionRequiredError as exc:
            logger.warning("Market %d left for manual resolution: %s", market.id, exc.message)
            report.manual.append(market.id)
            return
        except OracleUnavailableError as exc:
            logger.warning("Deferring market %d: %s", market.id, exc.message)
            report.deferred.append(market.id)
            return
        except Exception:
            logger.exception("Resolver for market %d failed, deferring", market.id)
            report.deferred.append(market.id)
            return

        try:
            settled = await self._settlement.resolve(
                db, market.id, decision.outcome, decision.source, AUTO_RESOLVER
            )
        except AlreadyResolvedError:
            # resolved concurrently (e.g. by an admin) since the candidate read
            report.skipped.append(market.id)
            return
        except PersistenceFailureError as exc:
            logger.warning("Deferring market %d: %s", market.id, exc.message)
            report.deferred.append(market.id)
            return

        report.resolved.append(market.id)
        report.total_paid_out += settled.total_paid_out
