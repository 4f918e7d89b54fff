"""Integration-test fixtures (requires a migrated PostgreSQL: alembic upgrade head).

All integration tests share a single event loop so that the module-level
SQLAlchemy async engine pool (created at import time) remains valid across
the entire test session. Tests are skipped when the database is unreachable.
"""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError

from src.main import app
from src.tm_common.database import async_session_factory, engine
from src.tm_common.datetime_utils import utc_now
from src.tm_ledger.application.service import LedgerApplicationService
from src.tm_market.application.service import MarketApplicationService
from src.tm_market.domain.models import NewMarket


@pytest_asyncio.fixture(loop_scope="session", scope="session", autouse=True)
async def _database() -> None:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM markets LIMIT 1"))
    except (OSError, DBAPIError, OperationalError) as exc:
        pytest.skip(f"PostgreSQL not available: {exc}")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Session-scoped async HTTP client: keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _unique_user() -> str:
    return f"user_{uuid.uuid4().hex[:10]}@example.com"


async def _fund(user_key: str, tokens: int) -> None:
    async with async_session_factory() as db:
        await LedgerApplicationService().record_funds_in(
            db, user_key, f"it-{uuid.uuid4().hex}", tokens=tokens
        )


async def _open_market(**kwargs: object) -> int:
    now = utc_now()
    fields: dict = {
        "category": "custom",
        "title": f"Integration market {uuid.uuid4().hex[:6]}",
        "opens_at": now - timedelta(minutes=1),
        "closes_at": now + timedelta(hours=1),
        "resolves_at": now + timedelta(hours=2),
    }
    fields.update(kwargs)
    async with async_session_factory() as db:
        detail = await MarketApplicationService().create_market(
            db, NewMarket(**fields), "integration-tests"
        )
    return detail.id


@pytest.fixture
def fund() -> Callable[[str, int], Awaitable[None]]:
    return _fund


@pytest.fixture
def open_market() -> Callable[..., Awaitable[int]]:
    return _open_market


@pytest_asyncio.fixture(loop_scope="session")
async def funded_user() -> str:
    """A fresh user key holding 1000 tokens."""
    user_key = _unique_user()
    await _fund(user_key, 1000)
    return user_key


@pytest.fixture
def new_user() -> Callable[[], str]:
    return _unique_user
