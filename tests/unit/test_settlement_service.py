"""Unit tests for SettlementService.resolve using mock repositories."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.tm_betting.domain.models import Wager
from src.tm_common.enums import LedgerEntryType, Outcome, WagerStatus
from src.tm_common.errors import (
    AlreadyResolvedError,
    InvalidOutcomeError,
    MarketNotFoundError,
    MarketNotResolvableError,
)
from src.tm_market.domain.models import Market
from src.tm_settlement.application.service import (
    DEFAULT_RESOLUTION_SOURCE,
    SettlementService,
    parse_outcome,
)

NOW = datetime(2026, 3, 10, 21, 0, tzinfo=UTC)


def _make_market(status: str = "closed") -> Market:
    return Market(
        id=1, category="daily", subcategory="close_green", title="SPY green?",
        description=None, ticker="SPY", source="internal", parameters={},
        yes_multiplier=Decimal("2.00"), no_multiplier=Decimal("2.00"),
        min_bet=10, max_bet=500, opens_at=NOW - timedelta(hours=8),
        closes_at=NOW - timedelta(hours=6), resolves_at=NOW, status=status,
    )


def _wager(wager_id: int, user: str, position: str, tokens: int, payout: int) -> Wager:
    return Wager(
        id=wager_id, user_key=user, market_id=1, position=position, tokens_wagered=tokens,
        potential_payout=payout, payout_multiplier=Decimal("2.00"), status="active",
    )


@pytest.fixture
def markets() -> AsyncMock:
    repo = AsyncMock()
    repo.lock_market.return_value = _make_market()
    return repo


@pytest.fixture
def ledger() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def wagers() -> AsyncMock:
    repo = AsyncMock()
    repo.lock_active_for_market.return_value = [
        _wager(1, "alice@x.com", "yes", 100, 200),
        _wager(2, "bob@x.com", "no", 50, 100),
        _wager(3, "carol@x.com", "yes", 33, 66),
    ]
    return repo


@pytest.fixture
def svc(markets: AsyncMock, ledger: AsyncMock, wagers: AsyncMock) -> SettlementService:
    return SettlementService(markets=markets, ledger=ledger, wagers=wagers, clock=lambda: NOW)


class TestParseOutcome:
    def test_accepts_case_insensitive(self) -> None:
        assert parse_outcome("YES") is Outcome.YES
        assert parse_outcome(Outcome.NO) is Outcome.NO

    def test_rejects(self) -> None:
        with pytest.raises(InvalidOutcomeError):
            parse_outcome("void")


class TestResolve:
    async def test_pays_winners_and_marks_losers(
        self, svc: SettlementService, markets: AsyncMock, ledger: AsyncMock, wagers: AsyncMock
    ) -> None:
        db = AsyncMock()

        report = await svc.resolve(db, 1, "yes", "SPY closed up", "admin@x.com")

        assert report.winners == 2
        assert report.losers == 1
        assert report.bets_processed == 3
        # sum of payouts over winners equals sum of potential payouts
        assert report.total_paid_out == 200 + 66
        markets.mark_resolved.assert_awaited_once_with(
            db, 1, Outcome.YES, "SPY closed up", "admin@x.com", NOW
        )
        credited = [(c.args[1], c.args[2], c.args[3]) for c in ledger.credit.call_args_list]
        assert credited == [
            ("alice@x.com", 200, LedgerEntryType.BET_PAYOUT),
            ("carol@x.com", 66, LedgerEntryType.BET_PAYOUT),
        ]
        ledger.record_win.assert_any_await(db, "alice@x.com", 100)
        ledger.record_win.assert_any_await(db, "carol@x.com", 33)
        ledger.record_loss.assert_awaited_once_with(db, "bob@x.com", 50)
        settled = {c.args[1]: (c.args[2], c.args[3]) for c in wagers.mark_settled.call_args_list}
        assert settled == {
            1: (WagerStatus.WON, 200),
            2: (WagerStatus.LOST, 0),
            3: (WagerStatus.WON, 66),
        }
        db.commit.assert_awaited_once()

    async def test_default_source(self, svc: SettlementService) -> None:
        report = await svc.resolve(AsyncMock(), 1, "no", None, "admin@x.com")
        assert report.resolution_source == DEFAULT_RESOLUTION_SOURCE

    async def test_no_wagers(self, svc: SettlementService, wagers: AsyncMock) -> None:
        wagers.lock_active_for_market.return_value = []
        report = await svc.resolve(AsyncMock(), 1, "no", None, "admin")
        assert report.bets_processed == 0
        assert report.total_paid_out == 0

    async def test_open_market_can_be_resolved_early(
        self, svc: SettlementService, markets: AsyncMock
    ) -> None:
        markets.lock_market.return_value = _make_market(status="open")
        report = await svc.resolve(AsyncMock(), 1, "yes", None, "admin")
        assert report.outcome == "yes"

    async def test_already_resolved_changes_nothing(
        self, svc: SettlementService, markets: AsyncMock, ledger: AsyncMock
    ) -> None:
        markets.lock_market.return_value = _make_market(status="resolved")
        db = AsyncMock()
        with pytest.raises(AlreadyResolvedError):
            await svc.resolve(db, 1, "yes", None, "admin")
        markets.mark_resolved.assert_not_awaited()
        ledger.credit.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_upcoming_rejected(self, svc: SettlementService, markets: AsyncMock) -> None:
        markets.lock_market.return_value = _make_market(status="upcoming")
        with pytest.raises(MarketNotResolvableError):
            await svc.resolve(AsyncMock(), 1, "yes", None, "admin")

    async def test_not_found(self, svc: SettlementService, markets: AsyncMock) -> None:
        markets.lock_market.return_value = None
        with pytest.raises(MarketNotFoundError):
            await svc.resolve(AsyncMock(), 1, "yes", None, "admin")

    async def test_invalid_outcome_before_any_lock(
        self, svc: SettlementService, markets: AsyncMock
    ) -> None:
        with pytest.raises(InvalidOutcomeError):
            await svc.resolve(AsyncMock(), 1, "push", None, "admin")
        markets.lock_market.assert_not_awaited()

    async def test_failure_mid_payout_rolls_back(
        self, svc: SettlementService, ledger: AsyncMock
    ) -> None:
        ledger.credit.side_effect = [None, RuntimeError("connection lost")]
        db = AsyncMock()
        with pytest.raises(RuntimeError):
            await svc.resolve(db, 1, "yes", None, "admin")
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()
