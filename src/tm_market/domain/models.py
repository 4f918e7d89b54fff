"""Domain models for tm_market: pure dataclasses, no business logic."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from src.tm_common.enums import MarketSource, Position


@dataclass
class Market:
    id: int
    category: str
    subcategory: str | None
    title: str
    description: str | None
    ticker: str | None
    source: str                      # MarketSource value
    parameters: dict[str, Any]
    yes_multiplier: Decimal
    no_multiplier: Decimal
    min_bet: int
    max_bet: int
    opens_at: datetime
    closes_at: datetime
    resolves_at: datetime
    status: str                      # MarketStatus value
    outcome: str | None = None       # Outcome value once resolved
    resolution_source: str | None = None
    resolved_at: datetime | None = None
    resolved_by: str | None = None
    total_yes_tokens: int = 0
    total_no_tokens: int = 0
    total_bettors: int = 0
    featured: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def multiplier_for(self, position: Position) -> Decimal:
        if position is Position.YES:
            return self.yes_multiplier
        return self.no_multiplier


@dataclass
class NewMarket:
    """A market definition that has not been persisted yet."""

    category: str
    title: str
    opens_at: datetime
    closes_at: datetime
    resolves_at: datetime
    yes_multiplier: Decimal = Decimal("2.00")
    no_multiplier: Decimal = Decimal("2.00")
    min_bet: int = 10
    max_bet: int = 10000
    subcategory: str | None = None
    description: str | None = None
    ticker: str | None = None
    source: MarketSource = MarketSource.INTERNAL
    parameters: dict[str, Any] = field(default_factory=dict)
    featured: bool = False


@dataclass
class SweepResult:
    opened: list[int]
    closed: list[int]
