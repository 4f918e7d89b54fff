"""Pydantic schemas for settlement endpoints."""

from typing import Literal

from pydantic import BaseModel, Field

from src.tm_settlement.domain.models import AutoResolutionReport, SettlementReport


class ResolveRequest(BaseModel):
    outcome: Literal["yes", "no"]
    source: str | None = Field(None, max_length=500)


class SettlementReportResponse(BaseModel):
    market_id: int
    outcome: str
    resolution_source: str
    resolved_by: str
    resolved_at: str
    bets_processed: int
    winners: int
    losers: int
    total_paid_out: int

    @classmethod
    def from_report(cls, r: SettlementReport) -> "SettlementReportResponse":
        return cls(
            market_id=r.market_id,
            outcome=r.outcome,
            resolution_source=r.resolution_source,
            resolved_by=r.resolved_by,
            resolved_at=r.resolved_at.isoformat(),
            bets_processed=r.bets_processed,
            winners=r.winners,
            losers=r.losers,
            total_paid_out=r.total_paid_out,
        )


class AutoResolutionResponse(BaseModel):
    resolved: list[int]
    deferred: list[int]
    manual: list[int]
    skipped: list[int]
    total_paid_out: int

    @classmethod
    def from_report(cls, r: AutoResolutionReport) -> "AutoResolutionResponse":
        return cls(
            resolved=r.resolved,
            deferred=r.deferred,
            manual=r.manual,
            skipped=r.skipped,
            total_paid_out=r.total_paid_out,
        )
