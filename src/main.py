"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.tm_admin.api.router import router as admin_router
from src.tm_betting.api.router import router as bets_router
from src.tm_common.database import engine
from src.tm_common.errors import AppError, RateLimitError
from src.tm_common.redis_client import close_redis, get_redis
from src.tm_common.response import error_response
from src.tm_gateway.middleware.rate_limit import RateLimitMiddleware
from src.tm_gateway.middleware.request_log import RequestLogMiddleware
from src.tm_jobs.scheduler import build_scheduler
from src.tm_ledger.api.router import router as account_router
from src.tm_market.api.router import router as market_router
from src.tm_payout.api.router import router as payout_router
from src.tm_sync.api.router import router as venue_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: logging, DB + Redis checks, optional scheduler. Shutdown: dispose."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    if settings.RATE_LIMIT_ENABLED:
        await get_redis()

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = build_scheduler()
        scheduler.start()
        logger.info("In-process scheduler started")
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# Starlette runs the last-added middleware first: request ids exist before rate limiting
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
        headers=headers,
    )


app.include_router(account_router, prefix="/api/v1")
app.include_router(market_router, prefix="/api/v1")
app.include_router(bets_router, prefix="/api/v1")
app.include_router(payout_router, prefix="/api/v1")
app.include_router(venue_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
