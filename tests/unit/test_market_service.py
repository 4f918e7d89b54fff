"""Unit tests for MarketApplicationService using a mock repository."""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.tm_common.enums import MarketStatus
from src.tm_common.errors import InvalidMarketSpecError, MarketNotFoundError
from src.tm_market.application.service import MarketApplicationService
from src.tm_market.domain.generator import DAILY_TICKERS
from src.tm_market.domain.models import Market, NewMarket

NOW = datetime(2026, 3, 10, 15, 0, tzinfo=UTC)


def _make_market(market_id: int = 1, status: str = "open", **kwargs: object) -> Market:
    fields: dict = {
        "id": market_id, "category": "custom", "subcategory": None, "title": "Rain?",
        "description": None, "ticker": None, "source": "internal", "parameters": {},
        "yes_multiplier": Decimal("2.00"), "no_multiplier": Decimal("1.50"),
        "min_bet": 10, "max_bet": 500,
        "opens_at": NOW, "closes_at": NOW + timedelta(days=1),
        "resolves_at": NOW + timedelta(days=2), "status": status,
    }
    fields.update(kwargs)
    return Market(**fields)


def _spec(opens_at: datetime = NOW) -> NewMarket:
    return NewMarket(
        category="custom",
        title="Rain?",
        opens_at=opens_at,
        closes_at=NOW + timedelta(days=1),
        resolves_at=NOW + timedelta(days=2),
    )


@pytest.fixture
def repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def svc(repo: AsyncMock) -> MarketApplicationService:
    return MarketApplicationService(repo=repo, clock=lambda: NOW)


class TestListMarkets:
    async def test_defaults_to_open(self, svc: MarketApplicationService, repo: AsyncMock) -> None:
        repo.list_markets.return_value = [_make_market()]
        items = await svc.list_markets(AsyncMock(), None, None, None, 20)
        repo.list_markets.assert_awaited_once()
        assert repo.list_markets.call_args.args[1] == "open"
        assert items[0].yes_multiplier == 2.0
        assert items[0].no_multiplier == 1.5

    async def test_all_means_no_filter(self, svc: MarketApplicationService, repo: AsyncMock) -> None:
        repo.list_markets.return_value = []
        await svc.list_markets(AsyncMock(), "all", "daily", True, 5)
        args = repo.list_markets.call_args.args
        assert args[1:] == (None, "daily", True, 5)


class TestGetMarket:
    async def test_not_found(self, svc: MarketApplicationService, repo: AsyncMock) -> None:
        repo.get_market.return_value = None
        with pytest.raises(MarketNotFoundError):
            await svc.get_market(AsyncMock(), 99)

    async def test_detail(self, svc: MarketApplicationService, repo: AsyncMock) -> None:
        repo.get_market.return_value = _make_market(7)
        detail = await svc.get_market(AsyncMock(), 7)
        assert detail.id == 7


class TestCreateMarket:
    async def test_opens_immediately_when_window_started(
        self, svc: MarketApplicationService, repo: AsyncMock
    ) -> None:
        repo.insert_market.return_value = _make_market(3)
        db = AsyncMock()

        await svc.create_market(db, _spec(), "admin@example.com")

        assert repo.insert_market.call_args.args[2] is MarketStatus.OPEN
        db.commit.assert_awaited_once()

    async def test_future_window_is_upcoming(
        self, svc: MarketApplicationService, repo: AsyncMock
    ) -> None:
        repo.insert_market.return_value = _make_market(3, status="upcoming")
        await svc.create_market(AsyncMock(), _spec(NOW + timedelta(hours=3)), "admin")
        assert repo.insert_market.call_args.args[2] is MarketStatus.UPCOMING

    async def test_invalid_spec_never_touches_db(
        self, svc: MarketApplicationService, repo: AsyncMock
    ) -> None:
        bad = _spec()
        bad.min_bet = 0
        db = AsyncMock()
        with pytest.raises(InvalidMarketSpecError):
            await svc.create_market(db, bad, "admin")
        repo.insert_market.assert_not_awaited()
        db.commit.assert_not_awaited()

    async def test_rollback_on_failure(self, svc: MarketApplicationService, repo: AsyncMock) -> None:
        repo.insert_market.side_effect = RuntimeError("boom")
        db = AsyncMock()
        with pytest.raises(RuntimeError):
            await svc.create_market(db, _spec(), "admin")
        db.rollback.assert_awaited_once()


class TestSweep:
    async def test_applies_transitions_and_commits(
        self, svc: MarketApplicationService, repo: AsyncMock
    ) -> None:
        repo.open_due.return_value = [1, 2]
        repo.close_due.return_value = [3]
        db = AsyncMock()

        result = await svc.sweep_statuses(db)

        assert result.opened == [1, 2]
        assert result.closed == [3]
        repo.open_due.assert_awaited_once_with(db, NOW)
        db.commit.assert_awaited_once()

    async def test_second_pass_is_noop(self, svc: MarketApplicationService, repo: AsyncMock) -> None:
        repo.open_due.return_value = []
        repo.close_due.return_value = []
        result = await svc.sweep_statuses(AsyncMock())
        assert result.opened == [] and result.closed == []


class TestGenerate:
    async def test_skips_existing(self, svc: MarketApplicationService, repo: AsyncMock) -> None:
        # first ticker already exists
        repo.exists_scheduled.side_effect = [True] + [False] * (len(DAILY_TICKERS) - 1)
        repo.insert_market.side_effect = [
            _make_market(i) for i in range(100, 100 + len(DAILY_TICKERS))
        ]
        db = AsyncMock()

        result = await svc.generate_markets(db, today=date(2026, 3, 10))

        assert result.skipped == 1
        assert len(result.created) == len(DAILY_TICKERS) - 1
        db.commit.assert_awaited_once()

    async def test_new_daily_markets_start_upcoming(
        self, svc: MarketApplicationService, repo: AsyncMock
    ) -> None:
        repo.exists_scheduled.return_value = False
        repo.insert_market.return_value = _make_market(5)
        await svc.generate_markets(AsyncMock(), today=date(2026, 3, 10))
        statuses = {c.args[2] for c in repo.insert_market.call_args_list}
        assert statuses == {MarketStatus.UPCOMING}
