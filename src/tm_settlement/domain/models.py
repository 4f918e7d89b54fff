"""Domain models for tm_settlement."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.tm_common.enums import Outcome


@dataclass
class SettlementReport:
    market_id: int
    outcome: str
    resolution_source: str
    resolved_by: str
    resolved_at: datetime
    winners: int = 0
    losers: int = 0
    total_paid_out: int = 0

    @property
    def bets_processed(self) -> int:
        return self.winners + self.losers


@dataclass(frozen=True)
class DailyQuote:
    ticker: str
    open: Decimal
    close: Decimal
    previous_close: Decimal | None = None

    @property
    def change_pct(self) -> Decimal:
        return (self.close - self.open) / self.open * 100


@dataclass(frozen=True)
class PriceBar:
    open: Decimal
    close: Decimal


@dataclass(frozen=True)
class ResolverDecision:
    outcome: Outcome
    source: str


@dataclass
class AutoResolutionReport:
    resolved: list[int] = field(default_factory=list)
    deferred: list[int] = field(default_factory=list)
    manual: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    total_paid_out: int = 0
