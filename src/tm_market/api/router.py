"""tm_market REST endpoints.

GET /markets              — list (default status=open; status=all for no filter)
GET /markets/{market_id}  — full detail
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.database import get_db_session
from src.tm_common.response import ApiResponse, ok
from src.tm_market.application.service import MarketApplicationService

router = APIRouter(prefix="/markets", tags=["markets"])

_service = MarketApplicationService()


@router.get("")
async def list_markets(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(
        None, description="Filter by status. Default: open. Use all for no filter."
    ),
    category: str | None = Query(None),
    featured: bool | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    items = await _service.list_markets(db, status, category, featured, limit)
    return ok([i.model_dump() for i in items], request)


@router.get("/{market_id}")
async def get_market(
    market_id: int,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_market(db, market_id)
    return ok(result.model_dump(), request)
