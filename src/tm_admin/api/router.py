"""Admin-only REST endpoints (every route depends on require_admin).

POST /admin/markets                     — create a market
POST /admin/markets/{market_id}/resolve — manual resolution and payout
GET  /admin/payouts/pending             — payouts awaiting review or completion
POST /admin/payouts/{payout_id}/review  — approve / complete / reject
POST /admin/funds-in                    — record a completed purchase (exactly once)
POST /admin/jobs/{job}                  — run one pass of a scheduled job now
"""

from enum import Enum
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.database import get_db_session
from src.tm_common.enums import PayoutStatus
from src.tm_common.response import ApiResponse, ok
from src.tm_gateway.auth.dependencies import require_admin
from src.tm_ledger.application.schemas import FundsInRequest
from src.tm_ledger.application.service import LedgerApplicationService
from src.tm_market.application.schemas import CreateMarketRequest
from src.tm_market.application.service import MarketApplicationService
from src.tm_payout.application.schemas import PayoutReviewRequest
from src.tm_payout.application.service import PayoutService
from src.tm_settlement.application.auto_resolver import AutoResolver
from src.tm_settlement.application.schemas import (
    AutoResolutionResponse,
    ResolveRequest,
    SettlementReportResponse,
)
from src.tm_settlement.application.service import SettlementService
from src.tm_sync.application.schemas import VenueSyncResponse
from src.tm_sync.application.service import OutcomeSyncService

router = APIRouter(prefix="/admin", tags=["admin"])

_markets = MarketApplicationService()
_settlement = SettlementService()
_payouts = PayoutService()
_ledger = LedgerApplicationService()
_auto_resolver = AutoResolver(settlement=_settlement)
_sync = OutcomeSyncService(settlement=_settlement)


class Job(str, Enum):
    SWEEP = "sweep"
    GENERATE = "generate"
    AUTO_RESOLVE = "auto-resolve"
    SYNC = "sync"


@router.post("/markets", status_code=201)
async def create_market(
    body: CreateMarketRequest,
    admin_key: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    market = await _markets.create_market(db, body.to_domain(), admin_key)
    return ok(market.model_dump(), request)


@router.post("/markets/{market_id}/resolve")
async def resolve_market(
    market_id: int,
    body: ResolveRequest,
    admin_key: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    report = await _settlement.resolve(db, market_id, body.outcome, body.source, admin_key)
    return ok(SettlementReportResponse.from_report(report).model_dump(), request)


@router.get("/payouts/pending")
async def list_pending_payouts(
    admin_key: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(100, ge=1, le=500),
    status: PayoutStatus | None = Query(None),
) -> ApiResponse:
    items = await _payouts.list_pending_payouts(db, limit, status)
    return ok([i.model_dump() for i in items], request)


@router.post("/payouts/{payout_id}/review")
async def review_payout(
    payout_id: int,
    body: PayoutReviewRequest,
    admin_key: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    payout = await _payouts.review_payout(
        db,
        payout_id,
        body.decision,
        admin_key,
        transaction_reference=body.transaction_reference,
        rejection_reason=body.rejection_reason,
    )
    return ok(payout.model_dump(), request)


@router.post("/funds-in")
async def record_funds_in(
    body: FundsInRequest,
    admin_key: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _ledger.record_funds_in(
        db,
        body.user_key,
        body.external_reference,
        package_id=body.package_id,
        tokens=body.tokens,
    )
    return ok(result.model_dump(), request)


@router.post("/jobs/{job}")
async def run_job(
    job: Job,
    admin_key: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    if job is Job.SWEEP:
        data = (await _markets.sweep_statuses(db)).model_dump()
    elif job is Job.GENERATE:
        data = (await _markets.generate_markets(db)).model_dump()
    elif job is Job.AUTO_RESOLVE:
        report = await _auto_resolver.run_pass(db)
        data = AutoResolutionResponse.from_report(report).model_dump()
    else:
        sync_report = await _sync.sync_resolutions(db)
        data = VenueSyncResponse.from_report(sync_report).model_dump()
    return ok(data, request)
