"""tm_ledger REST API.

GET /account/balance    — balance and lifetime counters (creates the account lazily)
GET /account/ledger     — audit trail with cursor pagination
GET /account/packages   — funds-in catalogue
GET /leaderboard        — public ranking by net profit
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.database import get_db_session
from src.tm_common.response import ApiResponse, ok
from src.tm_gateway.auth.dependencies import get_current_user_key
from src.tm_ledger.application.service import LedgerApplicationService

router = APIRouter(tags=["account"])

_service = LedgerApplicationService()


@router.get("/account/balance")
async def get_balance(
    user_key: Annotated[str, Depends(get_current_user_key)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, user_key)
    return ok(data.model_dump(), request)


@router.get("/account/ledger")
async def list_ledger(
    user_key: Annotated[str, Depends(get_current_user_key)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    entry_type: str | None = Query(None, description="Filter by LedgerEntryType"),
) -> ApiResponse:
    data = await _service.list_ledger(db, user_key, cursor, limit, entry_type)
    return ok(data.model_dump(), request)


@router.get("/account/packages")
async def list_packages(request: Request) -> ApiResponse:
    return ok([p.model_dump() for p in _service.list_packages()], request)


@router.get("/leaderboard")
async def leaderboard(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    items = await _service.leaderboard(db, limit)
    return ok([i.model_dump() for i in items], request)
