"""Pydantic schemas for tm_betting API."""

from pydantic import BaseModel, Field

from src.tm_betting.domain.models import Wager, WagerView


class PlaceBetRequest(BaseModel):
    market_id: int = Field(..., gt=0)
    # Validated by the service so that bad values map to the 4xxx error codes
    position: str
    tokens_wagered: int


class WagerResponse(BaseModel):
    id: int
    market_id: int
    position: str
    tokens_wagered: int
    potential_payout: int
    payout_multiplier: float
    status: str
    tokens_won: int
    placed_at: str | None
    settled_at: str | None

    @classmethod
    def from_domain(cls, w: Wager) -> "WagerResponse":
        return cls(
            id=w.id,
            market_id=w.market_id,
            position=w.position,
            tokens_wagered=w.tokens_wagered,
            potential_payout=w.potential_payout,
            payout_multiplier=float(w.payout_multiplier),
            status=w.status,
            tokens_won=w.tokens_won,
            placed_at=w.placed_at.isoformat() if w.placed_at else None,
            settled_at=w.settled_at.isoformat() if w.settled_at else None,
        )


class PlaceBetResponse(BaseModel):
    wager: WagerResponse
    balance_after: int


class BetHistoryItem(WagerResponse):
    market_title: str
    market_category: str
    market_ticker: str | None
    market_status: str
    market_outcome: str | None
    closes_at: str
    resolves_at: str

    @classmethod
    def from_view(cls, v: WagerView) -> "BetHistoryItem":
        return cls(
            **WagerResponse.from_domain(v.wager).model_dump(),
            market_title=v.market_title,
            market_category=v.market_category,
            market_ticker=v.market_ticker,
            market_status=v.market_status,
            market_outcome=v.market_outcome,
            closes_at=v.closes_at.isoformat(),
            resolves_at=v.resolves_at.isoformat(),
        )


class BetHistoryResponse(BaseModel):
    items: list[BetHistoryItem]
    next_cursor: str | None
    has_more: bool
