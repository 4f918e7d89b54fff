"""PayoutRepository: concrete implementation of PayoutRepositoryProtocol.

Review takes the request row lock (FOR UPDATE) before the account lock, so
two reviewers of the same request serialise and the second one sees the
terminal status. Transaction ownership stays with the caller.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.enums import PayoutMethod, PayoutStatus
from src.tm_common.errors import InternalError
from src.tm_payout.domain.models import PayoutRequest

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_PAYOUT_COLUMNS = """
    id, user_key, tokens_amount, usd_amount, method, destination, status,
    reviewed_by, reviewed_at, rejection_reason, transaction_reference,
    completed_at, created_at
"""

_INSERT_REQUEST_SQL = text(f"""
    INSERT INTO payout_requests
        (user_key, tokens_amount, usd_amount, method, destination)
    VALUES
        (:user_key, :tokens_amount, :usd_amount, :method, :destination)
    RETURNING {_PAYOUT_COLUMNS}
""")

_LOCK_REQUEST_SQL = text(f"""
    SELECT {_PAYOUT_COLUMNS}
    FROM payout_requests
    WHERE id = :payout_id
    FOR UPDATE
""")

_APPLY_REVIEW_SQL = text(f"""
    UPDATE payout_requests
    SET status = :status,
        reviewed_by = :reviewed_by,
        reviewed_at = :reviewed_at,
        rejection_reason = COALESCE(CAST(:rejection_reason AS TEXT), rejection_reason),
        transaction_reference = COALESCE(
            CAST(:transaction_reference AS TEXT), transaction_reference
        ),
        completed_at = COALESCE(CAST(:completed_at AS TIMESTAMPTZ), completed_at)
    WHERE id = :payout_id
    RETURNING {_PAYOUT_COLUMNS}
""")

_LIST_BY_USER_SQL = text(f"""
    SELECT {_PAYOUT_COLUMNS}
    FROM payout_requests
    WHERE user_key = :user_key
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_BY_STATUS_SQL = text(f"""
    SELECT {_PAYOUT_COLUMNS}
    FROM payout_requests
    WHERE status = ANY(CAST(:statuses AS TEXT[]))
    ORDER BY created_at ASC, id ASC
    LIMIT :limit
""")


def _row_to_payout(row: object) -> PayoutRequest:
    return PayoutRequest(
        id=row.id,  # type: ignore[attr-defined]
        user_key=row.user_key,  # type: ignore[attr-defined]
        tokens_amount=row.tokens_amount,  # type: ignore[attr-defined]
        usd_amount=Decimal(row.usd_amount),  # type: ignore[attr-defined]
        method=row.method,  # type: ignore[attr-defined]
        destination=row.destination,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        reviewed_by=row.reviewed_by,  # type: ignore[attr-defined]
        reviewed_at=row.reviewed_at,  # type: ignore[attr-defined]
        rejection_reason=row.rejection_reason,  # type: ignore[attr-defined]
        transaction_reference=row.transaction_reference,  # type: ignore[attr-defined]
        completed_at=row.completed_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class PayoutRepository:
    async def insert_request(
        self,
        db: AsyncSession,
        user_key: str,
        tokens: int,
        usd_amount: Decimal,
        method: PayoutMethod,
        destination: str,
    ) -> PayoutRequest:
        result = await db.execute(
            _INSERT_REQUEST_SQL,
            {
                "user_key": user_key,
                "tokens_amount": tokens,
                "usd_amount": usd_amount,
                "method": method.value,
                "destination": destination,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Payout insert returned no rows")
        return _row_to_payout(row)

    async def lock_request(self, db: AsyncSession, payout_id: int) -> PayoutRequest | None:
        result = await db.execute(_LOCK_REQUEST_SQL, {"payout_id": payout_id})
        row = result.fetchone()
        return _row_to_payout(row) if row else None

    async def apply_review(
        self,
        db: AsyncSession,
        payout_id: int,
        status: PayoutStatus,
        reviewed_by: str,
        reviewed_at: datetime,
        rejection_reason: str | None,
        transaction_reference: str | None,
        completed_at: datetime | None,
    ) -> PayoutRequest:
        result = await db.execute(
            _APPLY_REVIEW_SQL,
            {
                "payout_id": payout_id,
                "status": status.value,
                "reviewed_by": reviewed_by,
                "reviewed_at": reviewed_at,
                "rejection_reason": rejection_reason,
                "transaction_reference": transaction_reference,
                "completed_at": completed_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Payout {payout_id} vanished during review")
        return _row_to_payout(row)

    async def list_by_user(
        self, db: AsyncSession, user_key: str, limit: int
    ) -> list[PayoutRequest]:
        result = await db.execute(_LIST_BY_USER_SQL, {"user_key": user_key, "limit": limit})
        return [_row_to_payout(row) for row in result.fetchall()]

    async def list_by_status(
        self, db: AsyncSession, statuses: list[PayoutStatus], limit: int
    ) -> list[PayoutRequest]:
        result = await db.execute(
            _LIST_BY_STATUS_SQL,
            {"statuses": [s.value for s in statuses], "limit": limit},
        )
        return [_row_to_payout(row) for row in result.fetchall()]
