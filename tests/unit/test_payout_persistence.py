"""Unit tests for PayoutRepository using a mocked AsyncSession."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.tm_common.enums import PayoutStatus
from src.tm_payout.infrastructure.persistence import PayoutRepository

NOW = datetime(2026, 3, 10, 15, 0, tzinfo=UTC)


def _make_payout_row(**kwargs: object) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", 1)
    row.user_key = "alice@example.com"
    row.tokens_amount = 5000
    row.usd_amount = "50.00"
    row.method = "zelle"
    row.destination = "alice@bank.example"
    row.status = kwargs.get("status", "pending")
    row.reviewed_by = None
    row.reviewed_at = None
    row.rejection_reason = None
    row.transaction_reference = None
    row.completed_at = None
    row.created_at = NOW
    return row


@pytest.fixture
def db() -> MagicMock:
    return MagicMock()


def _returning(db: MagicMock, row: object | None = None, rows: list | None = None) -> None:
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = rows or []
    db.execute = AsyncMock(return_value=result)


class TestListByStatus:
    async def test_approved_payouts_are_listed(self, db: MagicMock) -> None:
        _returning(db, rows=[
            _make_payout_row(id=1, status="pending"),
            _make_payout_row(id=2, status="approved"),
        ])

        payouts = await PayoutRepository().list_by_status(
            db, [PayoutStatus.PENDING, PayoutStatus.APPROVED], 100
        )

        assert [(p.id, p.status) for p in payouts] == [(1, "pending"), (2, "approved")]
        assert payouts[1].usd_amount == Decimal("50.00")
        params = db.execute.call_args.args[1]
        assert params["statuses"] == ["pending", "approved"]
        assert params["limit"] == 100

    async def test_oldest_first(self, db: MagicMock) -> None:
        _returning(db, rows=[])
        await PayoutRepository().list_by_status(db, [PayoutStatus.APPROVED], 10)
        sql = str(db.execute.call_args.args[0])
        assert "status = ANY" in sql
        assert "ORDER BY created_at ASC, id ASC" in sql
        assert db.execute.call_args.args[1]["statuses"] == ["approved"]
