"""Scheduled passes using APScheduler.

Jobs:
  - status sweep      every STATUS_SWEEP_INTERVAL_SECONDS
  - market generator  daily at GENERATOR_CRON_HOUR (MARKET_TIMEZONE)
  - auto-resolution   every AUTO_RESOLVE_INTERVAL_MINUTES
  - venue sync        every VENUE_SYNC_INTERVAL_MINUTES

Each pass opens its own session. A failing pass is logged and retried on the
next tick; passes never overlap with themselves (max_instances=1).

Runs inside the API process when SCHEDULER_ENABLED is set, or standalone:
    python -m src.tm_jobs.scheduler
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tm_common.database import async_session_factory
from src.tm_common.errors import AppError
from src.tm_market.application.service import MarketApplicationService
from src.tm_settlement.application.auto_resolver import AutoResolver
from src.tm_settlement.application.service import SettlementService
from src.tm_sync.application.service import OutcomeSyncService

logger = logging.getLogger(__name__)

_markets = MarketApplicationService()
_settlement = SettlementService()
_auto_resolver = AutoResolver(settlement=_settlement)
_sync = OutcomeSyncService(settlement=_settlement)


async def _run_pass(name: str, work: Callable[[AsyncSession], Awaitable[object]]) -> None:
    async with async_session_factory() as db:
        try:
            await work(db)
        except AppError as exc:
            logger.warning("%s pass failed (%d): %s", name, exc.code, exc.message)
        except Exception:
            logger.exception("%s pass crashed", name)


async def status_sweep_job() -> None:
    await _run_pass("Status sweep", _markets.sweep_statuses)


async def market_generator_job() -> None:
    await _run_pass("Market generator", _markets.generate_markets)


async def auto_resolve_job() -> None:
    await _run_pass("Auto-resolution", _auto_resolver.run_pass)


async def venue_sync_job() -> None:
    await _run_pass("Venue sync", _sync.sync_resolutions)


def build_scheduler() -> AsyncIOScheduler:
    """Create the scheduler with every pass registered (not started)."""
    tz = pytz.timezone(settings.MARKET_TIMEZONE)
    scheduler = AsyncIOScheduler(
        timezone=tz,
        job_defaults={"coalesce": True, "max_instances": 1},
    )

    scheduler.add_job(
        status_sweep_job,
        IntervalTrigger(seconds=settings.STATUS_SWEEP_INTERVAL_SECONDS),
        id="status-sweep",
        name="Markets: status sweep",
    )
    scheduler.add_job(
        market_generator_job,
        CronTrigger(hour=settings.GENERATOR_CRON_HOUR, minute=0, timezone=tz),
        id="market-generator",
        name="Markets: daily generator",
    )
    scheduler.add_job(
        auto_resolve_job,
        IntervalTrigger(minutes=settings.AUTO_RESOLVE_INTERVAL_MINUTES),
        id="auto-resolve",
        name="Settlement: auto-resolution",
    )
    scheduler.add_job(
        venue_sync_job,
        IntervalTrigger(minutes=settings.VENUE_SYNC_INTERVAL_MINUTES),
        id="venue-sync",
        name="Venue: outcome sync",
    )
    logger.info("Registered %d scheduled jobs", len(scheduler.get_jobs()))
    return scheduler


async def _serve() -> None:
    scheduler = build_scheduler()
    scheduler.start()
    logger.info("Scheduler started")
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(_serve())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Received interrupt signal")


if __name__ == "__main__":
    main()
