"""MarketRepository: concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
JSONB is bound as a JSON string and may come back as str; _load_parameters normalises it.
"""

import json
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.enums import MarketSource, MarketStatus, Outcome, Position
from src.tm_common.errors import InternalError
from src.tm_market.domain.models import Market, NewMarket

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, category, subcategory, title, description, ticker, source, parameters,
    yes_multiplier, no_multiplier, min_bet, max_bet,
    opens_at, closes_at, resolves_at,
    status, outcome, resolution_source, resolved_at, resolved_by,
    total_yes_tokens, total_no_tokens, total_bettors, featured,
    created_at, updated_at
"""

_GET_MARKET_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
""")

_LOCK_MARKET_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
    FOR UPDATE
""")

_INSERT_MARKET_SQL = text(f"""
    INSERT INTO markets
        (category, subcategory, title, description, ticker, source, parameters,
         yes_multiplier, no_multiplier, min_bet, max_bet,
         opens_at, closes_at, resolves_at, status, featured)
    VALUES
        (:category, :subcategory, :title, :description, :ticker, :source,
         CAST(:parameters AS JSONB),
         :yes_multiplier, :no_multiplier, :min_bet, :max_bet,
         :opens_at, :closes_at, :resolves_at, :status, :featured)
    RETURNING {_MARKET_COLUMNS}
""")

# Featured first, then soonest to close
_LIST_MARKETS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE
        (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
        AND (CAST(:category AS TEXT) IS NULL OR category = CAST(:category AS TEXT))
        AND (CAST(:featured AS BOOLEAN) IS NULL OR featured = CAST(:featured AS BOOLEAN))
    ORDER BY featured DESC, closes_at ASC, id ASC
    LIMIT :limit
""")

_EXISTS_SCHEDULED_SQL = text("""
    SELECT 1
    FROM markets
    WHERE ticker = :ticker
      AND subcategory = :subcategory
      AND resolves_at = :resolves_at
    LIMIT 1
""")

_FIND_BY_SOURCE_TICKER_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE source = :source AND ticker = :ticker
    ORDER BY id DESC
    LIMIT 1
""")

_ADD_YES_VOLUME_SQL = text("""
    UPDATE markets
    SET total_yes_tokens = total_yes_tokens + :tokens,
        total_bettors = total_bettors + 1
    WHERE id = :market_id
""")

_ADD_NO_VOLUME_SQL = text("""
    UPDATE markets
    SET total_no_tokens = total_no_tokens + :tokens,
        total_bettors = total_bettors + 1
    WHERE id = :market_id
""")

_MARK_RESOLVED_SQL = text("""
    UPDATE markets
    SET status = 'resolved',
        outcome = :outcome,
        resolution_source = :resolution_source,
        resolved_at = :resolved_at,
        resolved_by = :resolved_by
    WHERE id = :market_id AND status <> 'resolved'
""")

_OPEN_DUE_SQL = text("""
    UPDATE markets
    SET status = 'open'
    WHERE status = 'upcoming'
      AND opens_at <= :now
      AND closes_at > :now
    RETURNING id
""")

_CLOSE_DUE_SQL = text("""
    UPDATE markets
    SET status = 'closed'
    WHERE status IN ('upcoming', 'open')
      AND closes_at <= :now
    RETURNING id
""")

_DUE_FOR_AUTO_RESOLUTION_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE status = 'closed'
      AND outcome IS NULL
      AND source = 'internal'
      AND resolves_at <= :now
      AND subcategory = ANY(CAST(:subcategories AS TEXT[]))
      AND (
          CAST(:after_resolves_at AS TIMESTAMPTZ) IS NULL
          OR (resolves_at, id) > (
              CAST(:after_resolves_at AS TIMESTAMPTZ), CAST(:after_id AS BIGINT)
          )
      )
    ORDER BY resolves_at ASC, id ASC
    LIMIT :limit
""")

_UNRESOLVED_WITH_ACTIVE_WAGERS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets m
    WHERE m.source = :source
      AND m.status <> 'resolved'
      AND m.ticker IS NOT NULL
      AND EXISTS (
          SELECT 1 FROM wagers w
          WHERE w.market_id = m.id AND w.status = 'active'
      )
    ORDER BY m.id ASC
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _load_parameters(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


def _row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        category=row.category,  # type: ignore[attr-defined]
        subcategory=row.subcategory,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        ticker=row.ticker,  # type: ignore[attr-defined]
        source=row.source,  # type: ignore[attr-defined]
        parameters=_load_parameters(row.parameters),  # type: ignore[attr-defined]
        yes_multiplier=row.yes_multiplier,  # type: ignore[attr-defined]
        no_multiplier=row.no_multiplier,  # type: ignore[attr-defined]
        min_bet=row.min_bet,  # type: ignore[attr-defined]
        max_bet=row.max_bet,  # type: ignore[attr-defined]
        opens_at=row.opens_at,  # type: ignore[attr-defined]
        closes_at=row.closes_at,  # type: ignore[attr-defined]
        resolves_at=row.resolves_at,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        outcome=row.outcome,  # type: ignore[attr-defined]
        resolution_source=row.resolution_source,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        resolved_by=row.resolved_by,  # type: ignore[attr-defined]
        total_yes_tokens=row.total_yes_tokens,  # type: ignore[attr-defined]
        total_no_tokens=row.total_no_tokens,  # type: ignore[attr-defined]
        total_bettors=row.total_bettors,  # type: ignore[attr-defined]
        featured=row.featured,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class MarketRepository:
    """Concrete repository. Locking reads and mutations run in the caller's transaction."""

    async def get_market(self, db: AsyncSession, market_id: int) -> Market | None:
        result = await db.execute(_GET_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def lock_market(self, db: AsyncSession, market_id: int) -> Market | None:
        result = await db.execute(_LOCK_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def insert_market(
        self, db: AsyncSession, spec: NewMarket, status: MarketStatus
    ) -> Market:
        result = await db.execute(
            _INSERT_MARKET_SQL,
            {
                "category": spec.category,
                "subcategory": spec.subcategory,
                "title": spec.title,
                "description": spec.description,
                "ticker": spec.ticker,
                "source": MarketSource(spec.source).value,
                "parameters": json.dumps(spec.parameters),
                "yes_multiplier": spec.yes_multiplier,
                "no_multiplier": spec.no_multiplier,
                "min_bet": spec.min_bet,
                "max_bet": spec.max_bet,
                "opens_at": spec.opens_at,
                "closes_at": spec.closes_at,
                "resolves_at": spec.resolves_at,
                "status": status.value,
                "featured": spec.featured,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Market insert returned no rows: this should never happen")
        return _row_to_market(row)

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        featured: bool | None,
        limit: int,
    ) -> list[Market]:
        result = await db.execute(
            _LIST_MARKETS_SQL,
            {"status": status, "category": category, "featured": featured, "limit": limit},
        )
        return [_row_to_market(row) for row in result.fetchall()]

    async def exists_scheduled(
        self, db: AsyncSession, ticker: str, subcategory: str, resolves_at: datetime
    ) -> bool:
        result = await db.execute(
            _EXISTS_SCHEDULED_SQL,
            {"ticker": ticker, "subcategory": subcategory, "resolves_at": resolves_at},
        )
        return result.fetchone() is not None

    async def find_by_source_ticker(
        self, db: AsyncSession, source: MarketSource, ticker: str
    ) -> Market | None:
        result = await db.execute(
            _FIND_BY_SOURCE_TICKER_SQL, {"source": source.value, "ticker": ticker}
        )
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def record_bet_volume(
        self, db: AsyncSession, market_id: int, position: Position, tokens: int
    ) -> None:
        if position is Position.YES:
            await db.execute(_ADD_YES_VOLUME_SQL, {"market_id": market_id, "tokens": tokens})
        else:
            await db.execute(_ADD_NO_VOLUME_SQL, {"market_id": market_id, "tokens": tokens})

    async def mark_resolved(
        self,
        db: AsyncSession,
        market_id: int,
        outcome: Outcome,
        resolution_source: str,
        resolved_by: str,
        resolved_at: datetime,
    ) -> None:
        await db.execute(
            _MARK_RESOLVED_SQL,
            {
                "market_id": market_id,
                "outcome": outcome.value,
                "resolution_source": resolution_source,
                "resolved_by": resolved_by,
                "resolved_at": resolved_at,
            },
        )

    async def open_due(self, db: AsyncSession, now: datetime) -> list[int]:
        result = await db.execute(_OPEN_DUE_SQL, {"now": now})
        return [row.id for row in result.fetchall()]

    async def close_due(self, db: AsyncSession, now: datetime) -> list[int]:
        result = await db.execute(_CLOSE_DUE_SQL, {"now": now})
        return [row.id for row in result.fetchall()]

    async def list_due_for_auto_resolution(
        self,
        db: AsyncSession,
        now: datetime,
        subcategories: list[str],
        limit: int,
        after: tuple[datetime, int] | None = None,
    ) -> list[Market]:
        """One page of candidates, keyset-ordered by (resolves_at, id) after `after`."""
        after_resolves_at, after_id = after if after is not None else (None, None)
        result = await db.execute(
            _DUE_FOR_AUTO_RESOLUTION_SQL,
            {
                "now": now,
                "subcategories": subcategories,
                "after_resolves_at": after_resolves_at,
                "after_id": after_id,
                "limit": limit,
            },
        )
        return [_row_to_market(row) for row in result.fetchall()]

    async def list_unresolved_with_active_wagers(
        self, db: AsyncSession, source: MarketSource
    ) -> list[Market]:
        result = await db.execute(_UNRESOLVED_WITH_ACTIVE_WAGERS_SQL, {"source": source.value})
        return [_row_to_market(row) for row in result.fetchall()]
