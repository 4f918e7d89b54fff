"""Tests for the pure market lifecycle functions."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from src.tm_common.enums import MarketStatus
from src.tm_common.errors import InvalidMarketSpecError
from src.tm_market.domain.lifecycle import (
    accepts_bets,
    derive_status,
    parse_range_pct,
    validate_new_market,
)
from src.tm_market.domain.models import Market, NewMarket

NOW = datetime(2026, 3, 10, 15, 0, tzinfo=UTC)
OPENS = NOW - timedelta(hours=1)
CLOSES = NOW + timedelta(hours=1)


def _make_market(status: str = "open", closes_at: datetime = CLOSES) -> Market:
    return Market(
        id=1, category="daily", subcategory=None, title="T", description=None,
        ticker=None, source="internal", parameters={},
        yes_multiplier=Decimal("2.00"), no_multiplier=Decimal("2.00"),
        min_bet=10, max_bet=500, opens_at=OPENS, closes_at=closes_at,
        resolves_at=closes_at + timedelta(hours=1), status=status,
    )


def _spec(**kwargs: object) -> NewMarket:
    spec = NewMarket(
        category="custom",
        title="Will it rain?",
        opens_at=NOW,
        closes_at=NOW + timedelta(days=1),
        resolves_at=NOW + timedelta(days=2),
    )
    return replace(spec, **kwargs)


class TestDeriveStatus:
    def test_upcoming_stays_before_open(self) -> None:
        assert derive_status("upcoming", NOW + timedelta(minutes=1), CLOSES, NOW) is (
            MarketStatus.UPCOMING
        )

    def test_upcoming_opens_at_boundary(self) -> None:
        assert derive_status("upcoming", NOW, CLOSES, NOW) is MarketStatus.OPEN

    def test_open_closes_at_boundary(self) -> None:
        assert derive_status("open", OPENS, NOW, NOW) is MarketStatus.CLOSED

    def test_upcoming_past_window_goes_straight_to_closed(self) -> None:
        assert derive_status(
            "upcoming", NOW - timedelta(days=2), NOW - timedelta(days=1), NOW
        ) is MarketStatus.CLOSED

    @pytest.mark.parametrize("sticky", ["closed", "resolved"])
    def test_terminal_states_are_sticky(self, sticky: str) -> None:
        far_future = NOW + timedelta(days=30)
        assert derive_status(sticky, far_future, far_future, NOW) is MarketStatus(sticky)


class TestAcceptsBets:
    def test_open_before_close(self) -> None:
        assert accepts_bets(_make_market(), NOW)

    def test_open_but_past_close(self) -> None:
        # status sweep has not run yet; the time check still rejects
        assert not accepts_bets(_make_market(closes_at=NOW), NOW)

    @pytest.mark.parametrize("status", ["upcoming", "closed", "resolved"])
    def test_other_statuses(self, status: str) -> None:
        assert not accepts_bets(_make_market(status=status), NOW)


class TestValidateNewMarket:
    def test_valid(self) -> None:
        validate_new_market(_spec(), NOW)

    def test_blank_title(self) -> None:
        with pytest.raises(InvalidMarketSpecError):
            validate_new_market(_spec(title="  "), NOW)

    def test_schedule_order(self) -> None:
        with pytest.raises(InvalidMarketSpecError):
            validate_new_market(_spec(resolves_at=NOW + timedelta(hours=1)), NOW)

    def test_closes_in_past(self) -> None:
        with pytest.raises(InvalidMarketSpecError):
            validate_new_market(
                _spec(opens_at=NOW - timedelta(days=2), closes_at=NOW - timedelta(days=1)), NOW
            )

    def test_non_positive_multiplier(self) -> None:
        with pytest.raises(InvalidMarketSpecError):
            validate_new_market(_spec(no_multiplier=Decimal("0")), NOW)

    def test_bounds(self) -> None:
        with pytest.raises(InvalidMarketSpecError):
            validate_new_market(_spec(min_bet=100, max_bet=50), NOW)
        with pytest.raises(InvalidMarketSpecError):
            validate_new_market(_spec(min_bet=0), NOW)


class TestResolutionParameters:
    def test_price_market_requires_ticker(self) -> None:
        with pytest.raises(InvalidMarketSpecError, match="ticker"):
            validate_new_market(_spec(subcategory="close_green"), NOW)

    def test_ticker_from_parameters_accepted(self) -> None:
        validate_new_market(_spec(subcategory="close_green", parameters={"ticker": "SPY"}), NOW)

    @pytest.mark.parametrize("range_pct", ["five", 0, -2, None, True])
    def test_range_rejects_unusable_threshold(self, range_pct: object) -> None:
        spec = _spec(subcategory="range", ticker="NVDA", parameters={"range_pct": range_pct})
        with pytest.raises(InvalidMarketSpecError, match="range_pct"):
            validate_new_market(spec, NOW)

    def test_range_threshold_defaults(self) -> None:
        assert parse_range_pct({}) == Decimal("5")
        assert parse_range_pct({"range_pct": "7.5"}) == Decimal("7.5")

    def test_other_subcategories_unchecked(self) -> None:
        validate_new_market(_spec(subcategory="earnings", parameters={"range_pct": "x"}), NOW)
