"""tm_sync REST endpoints.

GET  /venue/markets/{ticker}         — venue metadata (cached up to the TTL)
POST /venue/markets/{ticker}/mirror  — create (or return) the local venue market
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.database import get_db_session
from src.tm_common.response import ApiResponse, ok
from src.tm_gateway.auth.dependencies import get_current_user_key
from src.tm_sync.application.schemas import VenueMarketResponse
from src.tm_sync.application.service import OutcomeSyncService

router = APIRouter(prefix="/venue", tags=["venue"])

_service = OutcomeSyncService()


@router.get("/markets/{ticker}")
async def get_venue_market(
    ticker: str,
    request: Request,
    user_key: Annotated[str, Depends(get_current_user_key)],
) -> ApiResponse:
    market = await _service.get_market_metadata(ticker.upper())
    return ok(VenueMarketResponse.from_domain(market).model_dump(), request)


@router.post("/markets/{ticker}/mirror")
async def mirror_venue_market(
    ticker: str,
    request: Request,
    user_key: Annotated[str, Depends(get_current_user_key)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.mirror_market(db, ticker.upper())
    return ok(result.model_dump(), request)
