"""Pydantic schemas for venue endpoints."""

from pydantic import BaseModel

from src.tm_market.application.schemas import MarketDetail
from src.tm_sync.domain.models import VenueMarket, VenueSyncReport


class VenueMarketResponse(BaseModel):
    ticker: str
    event_ticker: str
    title: str
    status: str
    result: str
    yes_price: float
    yes_multiplier: float
    no_multiplier: float
    close_time: str | None
    expiration_time: str | None

    @classmethod
    def from_domain(cls, m: VenueMarket) -> "VenueMarketResponse":
        yes_multiplier, no_multiplier = m.multipliers()
        return cls(
            ticker=m.ticker,
            event_ticker=m.event_ticker,
            title=m.display_title,
            status=m.status,
            result=m.result,
            yes_price=float(m.yes_price),
            yes_multiplier=float(yes_multiplier),
            no_multiplier=float(no_multiplier),
            close_time=m.close_time.isoformat() if m.close_time else None,
            expiration_time=m.expiration_time.isoformat() if m.expiration_time else None,
        )


class MirrorResponse(BaseModel):
    market: MarketDetail
    created: bool


class VenueSyncResponse(BaseModel):
    checked: int
    resolved: list[int]
    pending: list[int]
    deferred: list[int]
    skipped: list[int]
    total_paid_out: int

    @classmethod
    def from_report(cls, r: VenueSyncReport) -> "VenueSyncResponse":
        return cls(
            checked=r.checked,
            resolved=r.resolved,
            pending=r.pending,
            deferred=r.deferred,
            skipped=r.skipped,
            total_paid_out=r.total_paid_out,
        )
