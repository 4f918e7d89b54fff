"""Automated resolution predicates, keyed by market subcategory.

Only subcategories with an unambiguous rule are registered:

  close_green  yes iff today's close > today's open (a flat day is NO)
  range        yes iff |last close - first open| / first open >= range_pct %

Anything else returns None from get_resolver and is left for manual resolution,
as is a registered market whose parameters the predicate cannot use.
"""

from collections.abc import Awaitable, Callable

from src.tm_common.enums import Outcome
from src.tm_common.errors import (
    InvalidMarketSpecError,
    ManualResolutionRequiredError,
    OracleUnavailableError,
)
from src.tm_market.domain.lifecycle import parse_range_pct
from src.tm_market.domain.models import Market
from src.tm_settlement.domain.models import ResolverDecision
from src.tm_settlement.domain.oracle import PriceOracleProtocol

Resolver = Callable[[Market, PriceOracleProtocol], Awaitable[ResolverDecision]]

WEEKLY_BAR_COUNT = 5


def _ticker(market: Market) -> str:
    ticker = market.ticker or market.parameters.get("ticker")
    if not ticker:
        raise ManualResolutionRequiredError(market.id, market.subcategory)
    return str(ticker)


async def resolve_close_green(market: Market, oracle: PriceOracleProtocol) -> ResolverDecision:
    ticker = _ticker(market)
    quote = await oracle.get_daily_quote(ticker)
    outcome = Outcome.YES if quote.close > quote.open else Outcome.NO
    source = (
        f"Price oracle: {ticker} open ${quote.open:.2f}, close ${quote.close:.2f} "
        f"({quote.change_pct:.2f}%)"
    )
    return ResolverDecision(outcome=outcome, source=source)


async def resolve_weekly_range(market: Market, oracle: PriceOracleProtocol) -> ResolverDecision:
    ticker = _ticker(market)
    try:
        target = parse_range_pct(market.parameters)
    except InvalidMarketSpecError as exc:
        raise ManualResolutionRequiredError(market.id, market.subcategory) from exc
    bars = await oracle.get_recent_bars(ticker, WEEKLY_BAR_COUNT)
    if not bars:
        raise OracleUnavailableError(f"no daily bars for {ticker}")
    week_open = bars[0].open
    week_close = bars[-1].close
    change_pct = (week_close - week_open) / week_open * 100
    outcome = Outcome.YES if abs(change_pct) >= target else Outcome.NO
    source = (
        f"Price oracle: {ticker} week open ${week_open:.2f}, close ${week_close:.2f} "
        f"({change_pct:.2f}% vs ±{target}% target)"
    )
    return ResolverDecision(outcome=outcome, source=source)


RESOLVERS: dict[str, Resolver] = {
    "close_green": resolve_close_green,
    "range": resolve_weekly_range,
}


def get_resolver(subcategory: str | None) -> Resolver | None:
    if subcategory is None:
        return None
    return RESOLVERS.get(subcategory)
