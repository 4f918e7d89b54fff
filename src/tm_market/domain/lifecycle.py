"""Market lifecycle: upcoming -> open -> closed -> resolved.

Time-driven transitions are computed here as a pure function and applied in
bulk by the status sweep. `resolved` is never reached by time alone; only the
settlement engine writes it.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from src.tm_common.enums import MarketStatus
from src.tm_common.errors import InvalidMarketSpecError
from src.tm_market.domain.models import Market, NewMarket

PRICE_SUBCATEGORIES = frozenset({"close_green", "range"})
DEFAULT_RANGE_PCT = Decimal("5")


def derive_status(
    status: MarketStatus | str,
    opens_at: datetime,
    closes_at: datetime,
    now: datetime,
) -> MarketStatus:
    """Status a market should hold at `now`, given its current status.

    closed and resolved are sticky. An upcoming market whose whole window has
    already elapsed goes straight to closed.
    """
    current = MarketStatus(status)
    if current in (MarketStatus.CLOSED, MarketStatus.RESOLVED):
        return current
    if now >= closes_at:
        return MarketStatus.CLOSED
    if current is MarketStatus.UPCOMING and opens_at <= now:
        return MarketStatus.OPEN
    return current


def accepts_bets(market: Market, now: datetime) -> bool:
    return market.status == MarketStatus.OPEN and now < market.closes_at


def validate_new_market(spec: NewMarket, now: datetime) -> None:
    """Reject inconsistent definitions before anything is written."""
    if not spec.title.strip():
        raise InvalidMarketSpecError("title is required")
    if not (spec.opens_at <= spec.closes_at <= spec.resolves_at):
        raise InvalidMarketSpecError("expected opens_at <= closes_at <= resolves_at")
    if spec.closes_at <= now:
        raise InvalidMarketSpecError("closes_at must be in the future")
    if spec.yes_multiplier <= Decimal("0") or spec.no_multiplier <= Decimal("0"):
        raise InvalidMarketSpecError("multipliers must be positive")
    if not (1 <= spec.min_bet <= spec.max_bet):
        raise InvalidMarketSpecError("expected 1 <= min_bet <= max_bet")
    _check_resolution_parameters(spec)


def parse_range_pct(parameters: dict[str, Any]) -> Decimal:
    """The `range` threshold in percent; defaults to DEFAULT_RANGE_PCT when absent."""
    raw = parameters.get("range_pct", DEFAULT_RANGE_PCT)
    if isinstance(raw, bool):
        raise InvalidMarketSpecError(f"range_pct must be a number, got {raw!r}")
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        raise InvalidMarketSpecError(f"range_pct must be a number, got {raw!r}") from None
    if not value.is_finite() or value <= 0:
        raise InvalidMarketSpecError(f"range_pct must be positive, got {raw!r}")
    return value


def _check_resolution_parameters(spec: NewMarket) -> None:
    # Price-driven markets are resolved by the oracle and need what it reads
    if spec.subcategory not in PRICE_SUBCATEGORIES:
        return
    if not (spec.ticker or spec.parameters.get("ticker")):
        raise InvalidMarketSpecError(f"{spec.subcategory} markets require a ticker")
    if spec.subcategory == "range":
        parse_range_pct(spec.parameters)
