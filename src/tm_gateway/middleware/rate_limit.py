"""Fixed-window rate limiting backed by Redis.

Rules (per identity, per minute):
  - write requests (POST/PUT/PATCH/DELETE): RATE_LIMIT_WRITE_PER_MINUTE
  - read requests:                          RATE_LIMIT_READ_PER_MINUTE

The identity is the bearer token subject when the token verifies, otherwise
the client IP (first X-Forwarded-For hop when behind a proxy). Counting uses
INCR + EXPIRE on "ratelimit:{identity}:{group}:{window}". A request over the
limit gets the standard error envelope with code 9001, HTTP 429 and a
Retry-After header.

When Redis is unreachable the request is let through and a warning logged;
balances and settlement never depend on Redis.
"""

import logging
import time

from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from config.settings import settings
from src.tm_common.errors import InvalidCredentialsError, RateLimitError
from src.tm_common.redis_client import get_redis
from src.tm_common.response import error_response
from src.tm_gateway.auth.jwt_handler import decode_token

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60
_WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_EXEMPT_PATHS = frozenset({"/health", "/docs", "/openapi.json"})


def client_identity(request: Request) -> str:
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        try:
            subject = decode_token(auth[7:].strip()).get("sub")
        except InvalidCredentialsError:
            subject = None
        if subject:
            return f"user:{subject.lower()}"
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


def limit_for(method: str) -> tuple[str, int]:
    if method.upper() in _WRITE_METHODS:
        return "write", settings.RATE_LIMIT_WRITE_PER_MINUTE
    return "read", settings.RATE_LIMIT_READ_PER_MINUTE


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not settings.RATE_LIMIT_ENABLED or request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        group, limit = limit_for(request.method)
        window = int(time.time()) // WINDOW_SECONDS
        key = f"ratelimit:{client_identity(request)}:{group}:{window}"
        try:
            redis = await get_redis()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, WINDOW_SECONDS)
        except RedisError as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return await call_next(request)

        if count > limit:
            retry_after = WINDOW_SECONDS - int(time.time()) % WINDOW_SECONDS
            exc = RateLimitError(retry_after=retry_after)
            body = error_response(exc.code, exc.message)
            body.request_id = getattr(request.state, "request_id", body.request_id)
            return JSONResponse(
                status_code=exc.http_status,
                content=body.model_dump(),
                headers={"Retry-After": str(exc.retry_after)},
            )
        return await call_next(request)
