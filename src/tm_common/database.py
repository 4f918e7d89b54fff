from collections.abc import AsyncGenerator, Iterator
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings
from src.tm_common.errors import PersistenceFailureError

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# is_local=true scopes the setting to the current transaction
_SET_LOCK_TIMEOUT_SQL = text("SELECT set_config('lock_timeout', :value, true)")


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    async with async_session_factory() as session:
        yield session


async def apply_lock_timeout(db: AsyncSession, timeout_ms: int | None = None) -> None:
    """Bound row-lock waits for the transaction that is about to take locks."""
    value = timeout_ms if timeout_ms is not None else settings.LOCK_TIMEOUT_MS
    await db.execute(_SET_LOCK_TIMEOUT_SQL, {"value": f"{value}ms"})


@contextmanager
def persistence_guard(operation: str) -> Iterator[None]:
    """Translate driver-level failures (lock timeouts included) into PersistenceFailureError."""
    try:
        yield
    except DBAPIError as exc:
        raise PersistenceFailureError(f"{operation}: {exc.orig!s}") from exc
