"""tm_payout REST endpoints.

POST /payouts  — request a withdrawal (tokens are debited immediately)
GET  /payouts  — caller's payout requests, newest first
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.database import get_db_session
from src.tm_common.response import ApiResponse, ok
from src.tm_gateway.auth.dependencies import get_current_user_key
from src.tm_payout.application.schemas import PayoutCreateRequest
from src.tm_payout.application.service import PayoutService

router = APIRouter(prefix="/payouts", tags=["payouts"])

_service = PayoutService()


@router.post("", status_code=201)
async def request_payout(
    body: PayoutCreateRequest,
    user_key: Annotated[str, Depends(get_current_user_key)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.request_payout(
        db, user_key, body.tokens, body.method, body.destination
    )
    return ok(data.model_dump(), request)


@router.get("")
async def list_payouts(
    user_key: Annotated[str, Depends(get_current_user_key)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    items = await _service.list_payouts(db, user_key, limit)
    return ok([i.model_dump() for i in items], request)
