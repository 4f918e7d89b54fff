"""WagerRepository: concrete implementation of WagerRepositoryProtocol.

The UNIQUE (user_key, market_id) constraint backs the duplicate-bet check
made under the market row lock; a violation surfaces as DuplicateBetError.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_betting.domain.models import Wager, WagerView
from src.tm_common.enums import Position, WagerStatus
from src.tm_common.errors import DuplicateBetError, InternalError

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_WAGER_COLUMNS = """
    id, user_key, market_id, position, tokens_wagered, potential_payout,
    payout_multiplier, status, tokens_won, placed_at, settled_at
"""

_GET_FOR_USER_MARKET_SQL = text(f"""
    SELECT {_WAGER_COLUMNS}
    FROM wagers
    WHERE user_key = :user_key AND market_id = :market_id
""")

_INSERT_WAGER_SQL = text(f"""
    INSERT INTO wagers
        (user_key, market_id, position, tokens_wagered, potential_payout, payout_multiplier)
    VALUES
        (:user_key, :market_id, :position, :tokens_wagered, :potential_payout,
         :payout_multiplier)
    RETURNING {_WAGER_COLUMNS}
""")

# id order keeps account lock acquisition deterministic across settlements
_LOCK_ACTIVE_FOR_MARKET_SQL = text(f"""
    SELECT {_WAGER_COLUMNS}
    FROM wagers
    WHERE market_id = :market_id AND status = 'active'
    ORDER BY id ASC
    FOR UPDATE
""")

_MARK_SETTLED_SQL = text("""
    UPDATE wagers
    SET status = :status,
        tokens_won = :tokens_won,
        settled_at = :settled_at
    WHERE id = :wager_id AND status = 'active'
""")

_LIST_BY_USER_SQL = text("""
    SELECT w.id, w.user_key, w.market_id, w.position, w.tokens_wagered,
           w.potential_payout, w.payout_multiplier, w.status, w.tokens_won,
           w.placed_at, w.settled_at,
           m.title      AS market_title,
           m.category   AS market_category,
           m.ticker     AS market_ticker,
           m.status     AS market_status,
           m.outcome    AS market_outcome,
           m.closes_at, m.resolves_at
    FROM wagers w
    JOIN markets m ON m.id = w.market_id
    WHERE w.user_key = :user_key
      AND (CAST(:status AS TEXT) IS NULL OR w.status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR w.id < CAST(:cursor_id AS BIGINT))
    ORDER BY w.id DESC
    LIMIT :limit
""")


def _row_to_wager(row: object) -> Wager:
    return Wager(
        id=row.id,  # type: ignore[attr-defined]
        user_key=row.user_key,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        position=row.position,  # type: ignore[attr-defined]
        tokens_wagered=row.tokens_wagered,  # type: ignore[attr-defined]
        potential_payout=row.potential_payout,  # type: ignore[attr-defined]
        payout_multiplier=row.payout_multiplier,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        tokens_won=row.tokens_won,  # type: ignore[attr-defined]
        placed_at=row.placed_at,  # type: ignore[attr-defined]
        settled_at=row.settled_at,  # type: ignore[attr-defined]
    )


def _row_to_view(row: object) -> WagerView:
    return WagerView(
        wager=_row_to_wager(row),
        market_title=row.market_title,  # type: ignore[attr-defined]
        market_category=row.market_category,  # type: ignore[attr-defined]
        market_ticker=row.market_ticker,  # type: ignore[attr-defined]
        market_status=row.market_status,  # type: ignore[attr-defined]
        market_outcome=row.market_outcome,  # type: ignore[attr-defined]
        closes_at=row.closes_at,  # type: ignore[attr-defined]
        resolves_at=row.resolves_at,  # type: ignore[attr-defined]
    )


class WagerRepository:
    async def get_for_user_market(
        self, db: AsyncSession, user_key: str, market_id: int
    ) -> Wager | None:
        result = await db.execute(
            _GET_FOR_USER_MARKET_SQL, {"user_key": user_key, "market_id": market_id}
        )
        row = result.fetchone()
        return _row_to_wager(row) if row else None

    async def insert_wager(
        self,
        db: AsyncSession,
        user_key: str,
        market_id: int,
        position: Position,
        tokens_wagered: int,
        potential_payout: int,
        payout_multiplier: Decimal,
    ) -> Wager:
        try:
            result = await db.execute(
                _INSERT_WAGER_SQL,
                {
                    "user_key": user_key,
                    "market_id": market_id,
                    "position": position.value,
                    "tokens_wagered": tokens_wagered,
                    "potential_payout": potential_payout,
                    "payout_multiplier": payout_multiplier,
                },
            )
        except IntegrityError as exc:
            raise DuplicateBetError(market_id) from exc
        row = result.fetchone()
        if row is None:
            raise InternalError("Wager insert returned no rows: this should never happen")
        return _row_to_wager(row)

    async def lock_active_for_market(
        self, db: AsyncSession, market_id: int
    ) -> list[Wager]:
        result = await db.execute(_LOCK_ACTIVE_FOR_MARKET_SQL, {"market_id": market_id})
        return [_row_to_wager(row) for row in result.fetchall()]

    async def mark_settled(
        self,
        db: AsyncSession,
        wager_id: int,
        status: WagerStatus,
        tokens_won: int,
        settled_at: datetime,
    ) -> None:
        await db.execute(
            _MARK_SETTLED_SQL,
            {
                "wager_id": wager_id,
                "status": status.value,
                "tokens_won": tokens_won,
                "settled_at": settled_at,
            },
        )

    async def list_by_user(
        self,
        db: AsyncSession,
        user_key: str,
        status: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[WagerView]:
        result = await db.execute(
            _LIST_BY_USER_SQL,
            {"user_key": user_key, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_view(row) for row in result.fetchall()]
