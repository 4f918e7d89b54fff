"""Pydantic schemas for tm_market API."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from src.tm_market.domain.models import Market, NewMarket

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateMarketRequest(BaseModel):
    category: str = Field(..., min_length=1, max_length=50)
    subcategory: str | None = Field(None, max_length=50)
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    ticker: str | None = Field(None, max_length=64)
    parameters: dict[str, Any] = Field(default_factory=dict)
    yes_multiplier: Decimal = Field(Decimal("2.00"), gt=0, max_digits=6, decimal_places=2)
    no_multiplier: Decimal = Field(Decimal("2.00"), gt=0, max_digits=6, decimal_places=2)
    min_bet: int = Field(10, ge=1)
    max_bet: int = Field(10000, ge=1)
    opens_at: datetime
    closes_at: datetime
    resolves_at: datetime
    featured: bool = False

    def to_domain(self) -> NewMarket:
        return NewMarket(
            category=self.category,
            subcategory=self.subcategory,
            title=self.title,
            description=self.description,
            ticker=self.ticker,
            parameters=self.parameters,
            yes_multiplier=self.yes_multiplier,
            no_multiplier=self.no_multiplier,
            min_bet=self.min_bet,
            max_bet=self.max_bet,
            opens_at=self.opens_at,
            closes_at=self.closes_at,
            resolves_at=self.resolves_at,
            featured=self.featured,
        )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class MarketListItem(BaseModel):
    id: int
    category: str
    subcategory: str | None
    title: str
    ticker: str | None
    status: str
    yes_multiplier: float
    no_multiplier: float
    min_bet: int
    max_bet: int
    closes_at: str
    resolves_at: str
    total_yes_tokens: int
    total_no_tokens: int
    total_bettors: int
    featured: bool

    @classmethod
    def from_domain(cls, m: Market) -> "MarketListItem":
        return cls(
            id=m.id,
            category=m.category,
            subcategory=m.subcategory,
            title=m.title,
            ticker=m.ticker,
            status=m.status,
            yes_multiplier=float(m.yes_multiplier),
            no_multiplier=float(m.no_multiplier),
            min_bet=m.min_bet,
            max_bet=m.max_bet,
            closes_at=m.closes_at.isoformat(),
            resolves_at=m.resolves_at.isoformat(),
            total_yes_tokens=m.total_yes_tokens,
            total_no_tokens=m.total_no_tokens,
            total_bettors=m.total_bettors,
            featured=m.featured,
        )


class MarketDetail(MarketListItem):
    description: str | None
    source: str
    parameters: dict[str, Any]
    opens_at: str
    outcome: str | None
    resolution_source: str | None
    resolved_at: str | None
    resolved_by: str | None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketDetail":
        base = MarketListItem.from_domain(m).model_dump()
        return cls(
            **base,
            description=m.description,
            source=m.source,
            parameters=m.parameters,
            opens_at=m.opens_at.isoformat(),
            outcome=m.outcome,
            resolution_source=m.resolution_source,
            resolved_at=m.resolved_at.isoformat() if m.resolved_at else None,
            resolved_by=m.resolved_by,
        )


class SweepResponse(BaseModel):
    opened: list[int]
    closed: list[int]


class GenerateResponse(BaseModel):
    created: list[int]
    skipped: int
