"""Scheduled market definitions: daily "close green" and weekly "±N% range".

Pure calendar logic; persistence and duplicate checks live in the service.
All session times are exchange-local (America/New_York by default) and are
converted to UTC before they leave this module.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytz

from src.tm_market.domain.models import NewMarket

# NYSE full-day closures
MARKET_HOLIDAYS: frozenset[date] = frozenset({
    date(2025, 1, 1), date(2025, 1, 20), date(2025, 2, 17), date(2025, 4, 18),
    date(2025, 5, 26), date(2025, 6, 19), date(2025, 7, 4), date(2025, 9, 1),
    date(2025, 11, 27), date(2025, 12, 25),
    date(2026, 1, 1), date(2026, 1, 19), date(2026, 2, 16), date(2026, 4, 3),
    date(2026, 5, 25), date(2026, 6, 19), date(2026, 7, 3), date(2026, 9, 7),
    date(2026, 11, 26), date(2026, 12, 25),
})


@dataclass(frozen=True)
class DailyTicker:
    ticker: str
    name: str
    featured: bool = False


@dataclass(frozen=True)
class WeeklyRangeTicker:
    ticker: str
    range_pct: int
    featured: bool = False


DAILY_TICKERS: tuple[DailyTicker, ...] = (
    DailyTicker("TSLA", "Tesla", featured=True),
    DailyTicker("NVDA", "NVIDIA", featured=True),
    DailyTicker("AAPL", "Apple"),
    DailyTicker("SPY", "S&P 500 ETF", featured=True),
    DailyTicker("QQQ", "NASDAQ ETF"),
    DailyTicker("AMZN", "Amazon"),
    DailyTicker("GOOGL", "Google"),
    DailyTicker("META", "Meta"),
    DailyTicker("MSFT", "Microsoft"),
    DailyTicker("AMD", "AMD", featured=True),
)

WEEKLY_RANGE_TICKERS: tuple[WeeklyRangeTicker, ...] = (
    WeeklyRangeTicker("NVDA", 5, featured=True),
    WeeklyRangeTicker("TSLA", 7, featured=True),
    WeeklyRangeTicker("QQQ", 3),
    WeeklyRangeTicker("SPY", 2),
)

DAILY_MULTIPLIER = Decimal("1.90")
DEFAULT_MIN_BET = 10
DEFAULT_MAX_BET = 10000


def is_trading_day(day: date) -> bool:
    return day.weekday() < 5 and day not in MARKET_HOLIDAYS


def next_trading_day(after: date) -> date:
    candidate = after + timedelta(days=1)
    while not is_trading_day(candidate):
        candidate += timedelta(days=1)
    return candidate


def friday_of_week(day: date) -> date:
    return day + timedelta(days=4 - day.weekday())


def session_time(day: date, hour: int, minute: int, tz_name: str) -> datetime:
    """Exchange-local wall clock time on `day`, returned as aware UTC."""
    tz = pytz.timezone(tz_name)
    local = tz.localize(datetime(day.year, day.month, day.day, hour, minute))
    return local.astimezone(pytz.utc)


def weekly_multipliers(range_pct: int) -> tuple[Decimal, Decimal]:
    if range_pct >= 5:
        return Decimal("2.20"), Decimal("1.80")
    return Decimal("2.00"), Decimal("1.90")


def daily_close_green_markets(trading_day: date, tz_name: str) -> list[NewMarket]:
    """Betting opens 20:00 the evening before, closes at the 09:30 open, resolves 16:30."""
    opens_at = session_time(trading_day - timedelta(days=1), 20, 0, tz_name)
    closes_at = session_time(trading_day, 9, 30, tz_name)
    resolves_at = session_time(trading_day, 16, 30, tz_name)
    day_str = trading_day.strftime("%a, %b %d")

    return [
        NewMarket(
            category="daily",
            subcategory="close_green",
            title=f"Will {t.ticker} close green today?",
            description=(
                f"Predict whether {t.name} ({t.ticker}) will close higher than its opening "
                f"price on {day_str}. Betting closes at market open (9:30am ET)."
            ),
            ticker=t.ticker,
            parameters={"type": "close_green", "ticker": t.ticker},
            yes_multiplier=DAILY_MULTIPLIER,
            no_multiplier=DAILY_MULTIPLIER,
            min_bet=DEFAULT_MIN_BET,
            max_bet=DEFAULT_MAX_BET,
            opens_at=opens_at,
            closes_at=closes_at,
            resolves_at=resolves_at,
            featured=t.featured,
        )
        for t in DAILY_TICKERS
    ]


def weekly_range_markets(monday: date, tz_name: str) -> list[NewMarket]:
    """Opens Sunday 20:00, closes at Monday's open, resolves Friday 16:30."""
    friday = friday_of_week(monday)
    opens_at = session_time(monday - timedelta(days=1), 20, 0, tz_name)
    closes_at = session_time(monday, 9, 30, tz_name)
    resolves_at = session_time(friday, 16, 30, tz_name)
    week_str = f"{monday.strftime('%b %d')} - {friday.strftime('%b %d')}"

    markets = []
    for t in WEEKLY_RANGE_TICKERS:
        yes_mult, no_mult = weekly_multipliers(t.range_pct)
        markets.append(
            NewMarket(
                category="weekly",
                subcategory="range",
                title=f"Will {t.ticker} move ±{t.range_pct}% this week?",
                description=(
                    f"Predict whether {t.ticker} will have a weekly range of at least "
                    f"{t.range_pct}% in either direction from Monday open to Friday close "
                    f"({week_str})."
                ),
                ticker=t.ticker,
                parameters={
                    "type": "weekly_range",
                    "ticker": t.ticker,
                    "range_pct": t.range_pct,
                },
                yes_multiplier=yes_mult,
                no_multiplier=no_mult,
                min_bet=DEFAULT_MIN_BET,
                max_bet=DEFAULT_MAX_BET,
                opens_at=opens_at,
                closes_at=closes_at,
                resolves_at=resolves_at,
                featured=t.featured,
            )
        )
    return markets


def markets_to_generate(today: date, tz_name: str) -> list[NewMarket]:
    """Everything the generator should (idempotently) ensure exists when run on `today`."""
    markets = daily_close_green_markets(next_trading_day(today), tz_name)
    if today.weekday() == 6:  # Sunday
        markets.extend(weekly_range_markets(today + timedelta(days=1), tz_name))
    return markets
