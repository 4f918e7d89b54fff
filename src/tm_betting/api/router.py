"""tm_betting REST endpoints.

POST /bets  — place a wager
GET  /bets  — caller's wagers joined with market info, newest first
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_betting.application.schemas import PlaceBetRequest
from src.tm_betting.application.service import BetPlacementService
from src.tm_common.database import get_db_session
from src.tm_common.response import ApiResponse, ok
from src.tm_gateway.auth.dependencies import get_current_user_key

router = APIRouter(prefix="/bets", tags=["bets"])

_service = BetPlacementService()


@router.post("", status_code=201)
async def place_bet(
    body: PlaceBetRequest,
    user_key: Annotated[str, Depends(get_current_user_key)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.place_bet(
        db, user_key, body.market_id, body.position, body.tokens_wagered
    )
    return ok(data.model_dump(), request)


@router.get("")
async def list_bets(
    user_key: Annotated[str, Depends(get_current_user_key)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: str | None = Query(None, description="active | won | lost | cancelled"),
    cursor: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await _service.list_bets(db, user_key, status, cursor, limit)
    return ok(data.model_dump(), request)
