"""Unit tests for one auto-resolution pass."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.tm_common.enums import Outcome
from src.tm_common.errors import (
    AlreadyResolvedError,
    ManualResolutionRequiredError,
    OracleUnavailableError,
    PersistenceFailureError,
)
from src.tm_market.domain.models import Market
from src.tm_settlement.application.auto_resolver import AUTO_RESOLVER, AutoResolver
from src.tm_settlement.domain.models import DailyQuote, SettlementReport
from src.tm_settlement.domain.resolvers import resolve_weekly_range

NOW = datetime(2026, 3, 10, 21, 0, tzinfo=UTC)


def _market(
    market_id: int,
    subcategory: str | None = "close_green",
    ticker: str | None = "SPY",
    parameters: dict | None = None,
    resolves_at: datetime = NOW,
) -> Market:
    return Market(
        id=market_id, category="daily", subcategory=subcategory, title="t",
        description=None, ticker=ticker, source="internal", parameters=parameters or {},
        yes_multiplier=Decimal("1.90"), no_multiplier=Decimal("1.90"),
        min_bet=10, max_bet=10000, opens_at=NOW - timedelta(hours=12),
        closes_at=NOW - timedelta(hours=8), resolves_at=resolves_at, status="closed",
    )


def _report(market_id: int, paid: int) -> SettlementReport:
    return SettlementReport(
        market_id=market_id, outcome="yes", resolution_source="x",
        resolved_by=AUTO_RESOLVER, resolved_at=NOW, winners=1, total_paid_out=paid,
    )


@pytest.fixture
def oracle() -> AsyncMock:
    oracle = AsyncMock()
    oracle.get_daily_quote.return_value = DailyQuote("SPY", Decimal("500"), Decimal("510"))
    return oracle


@pytest.fixture
def settlement() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def markets() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def resolver(oracle: AsyncMock, settlement: AsyncMock, markets: AsyncMock) -> AutoResolver:
    return AutoResolver(oracle=oracle, settlement=settlement, markets=markets, clock=lambda: NOW)


class TestRunPass:
    async def test_resolves_through_settlement(
        self, resolver: AutoResolver, settlement: AsyncMock, markets: AsyncMock
    ) -> None:
        markets.list_due_for_auto_resolution.return_value = [_market(1)]
        settlement.resolve.return_value = _report(1, 380)
        db = AsyncMock()

        report = await resolver.run_pass(db)

        assert report.resolved == [1]
        assert report.total_paid_out == 380
        args = settlement.resolve.call_args.args
        assert args[1] == 1
        assert args[2] is Outcome.YES
        assert args[4] == AUTO_RESOLVER

    async def test_unknown_subcategory_is_manual(
        self, resolver: AutoResolver, settlement: AsyncMock, markets: AsyncMock
    ) -> None:
        markets.list_due_for_auto_resolution.return_value = [_market(2, subcategory="earnings")]
        report = await resolver.run_pass(AsyncMock())
        assert report.manual == [2]
        settlement.resolve.assert_not_awaited()

    async def test_oracle_failure_defers_and_continues(
        self, resolver: AutoResolver, oracle: AsyncMock, settlement: AsyncMock, markets: AsyncMock
    ) -> None:
        markets.list_due_for_auto_resolution.return_value = [
            _market(3, ticker="BAD"), _market(4),
        ]
        oracle.get_daily_quote.side_effect = [
            OracleUnavailableError("timeout"),
            DailyQuote("SPY", Decimal("500"), Decimal("490")),
        ]
        settlement.resolve.return_value = _report(4, 0)

        report = await resolver.run_pass(AsyncMock())

        assert report.deferred == [3]
        assert report.resolved == [4]
        assert settlement.resolve.await_count == 1

    async def test_concurrent_resolution_is_skipped(
        self, resolver: AutoResolver, settlement: AsyncMock, markets: AsyncMock
    ) -> None:
        markets.list_due_for_auto_resolution.return_value = [_market(5)]
        settlement.resolve.side_effect = AlreadyResolvedError(5)
        report = await resolver.run_pass(AsyncMock())
        assert report.skipped == [5]
        assert report.resolved == []

    async def test_persistence_failure_defers(
        self, resolver: AutoResolver, settlement: AsyncMock, markets: AsyncMock
    ) -> None:
        markets.list_due_for_auto_resolution.return_value = [_market(6)]
        settlement.resolve.side_effect = PersistenceFailureError("lock timeout")
        report = await resolver.run_pass(AsyncMock())
        assert report.deferred == [6]

    async def test_empty_pass(self, resolver: AutoResolver, markets: AsyncMock) -> None:
        markets.list_due_for_auto_resolution.return_value = []
        db = AsyncMock()
        report = await resolver.run_pass(db)
        assert report.resolved == [] and report.deferred == []
        markets.list_due_for_auto_resolution.assert_awaited_once_with(
            db, NOW, ["close_green", "range"], 100, None
        )


class TestFailureIsolation:
    async def test_unusable_range_pct_does_not_block_others(
        self, resolver: AutoResolver, settlement: AsyncMock, markets: AsyncMock
    ) -> None:
        markets.list_due_for_auto_resolution.return_value = [
            _market(1, subcategory="range", parameters={"range_pct": "five"}),
            _market(2),
        ]
        settlement.resolve.return_value = _report(2, 190)

        report = await resolver.run_pass(AsyncMock())

        assert report.manual == [1]
        assert report.resolved == [2]
        assert settlement.resolve.call_args.args[1] == 2

    async def test_missing_ticker_is_manual(
        self, resolver: AutoResolver, settlement: AsyncMock, markets: AsyncMock
    ) -> None:
        markets.list_due_for_auto_resolution.return_value = [_market(3, ticker=None)]
        report = await resolver.run_pass(AsyncMock())
        assert report.manual == [3]
        settlement.resolve.assert_not_awaited()

    async def test_unexpected_resolver_error_defers(
        self, resolver: AutoResolver, oracle: AsyncMock, settlement: AsyncMock,
        markets: AsyncMock,
    ) -> None:
        markets.list_due_for_auto_resolution.return_value = [_market(4), _market(5)]
        oracle.get_daily_quote.side_effect = [
            ZeroDivisionError("open price of zero"),
            DailyQuote("SPY", Decimal("500"), Decimal("501")),
        ]
        settlement.resolve.return_value = _report(5, 0)

        report = await resolver.run_pass(AsyncMock())

        assert report.deferred == [4]
        assert report.resolved == [5]

    async def test_unusable_range_pct_raises_manual(self) -> None:
        with pytest.raises(ManualResolutionRequiredError):
            await resolve_weekly_range(
                _market(6, subcategory="range", parameters={"range_pct": "five"}), AsyncMock()
            )


class TestPaging:
    async def test_reads_every_page(
        self, oracle: AsyncMock, settlement: AsyncMock, markets: AsyncMock
    ) -> None:
        resolver = AutoResolver(
            oracle=oracle, settlement=settlement, markets=markets, clock=lambda: NOW,
            batch_size=2,
        )
        first = [_market(1, resolves_at=NOW - timedelta(hours=2)), _market(2)]
        markets.list_due_for_auto_resolution.side_effect = [first, [_market(3)]]
        settlement.resolve.side_effect = [_report(1, 0), _report(2, 0), _report(3, 0)]
        db = AsyncMock()

        report = await resolver.run_pass(db)

        assert report.resolved == [1, 2, 3]
        calls = markets.list_due_for_auto_resolution.call_args_list
        assert len(calls) == 2
        assert calls[0].args[4] is None
        assert calls[1].args[4] == (NOW, 2)
        assert db.commit.await_count >= 2

    async def test_deferred_markets_do_not_stop_paging(
        self, oracle: AsyncMock, settlement: AsyncMock, markets: AsyncMock
    ) -> None:
        resolver = AutoResolver(
            oracle=oracle, settlement=settlement, markets=markets, clock=lambda: NOW,
            batch_size=2,
        )
        markets.list_due_for_auto_resolution.side_effect = [
            [_market(1, ticker="BAD"), _market(2, ticker="BAD")],
            [_market(3)],
        ]
        oracle.get_daily_quote.side_effect = [
            OracleUnavailableError("delisted"),
            OracleUnavailableError("delisted"),
            DailyQuote("SPY", Decimal("500"), Decimal("510")),
        ]
        settlement.resolve.return_value = _report(3, 0)

        report = await resolver.run_pass(AsyncMock())

        assert report.deferred == [1, 2]
        assert report.resolved == [3]
