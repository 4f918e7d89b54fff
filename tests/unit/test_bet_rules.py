"""Tests for bet validation rules."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from src.tm_betting.domain.rules import check_amount, check_bounds, parse_position, potential_payout
from src.tm_common.enums import Position
from src.tm_common.errors import InvalidBetAmountError, InvalidPositionError, OutOfBoundsError
from src.tm_market.domain.models import Market

NOW = datetime(2026, 3, 10, 15, 0, tzinfo=UTC)


def _market(min_bet: int = 10, max_bet: int = 500) -> Market:
    return Market(
        id=1, category="c", subcategory=None, title="t", description=None, ticker=None,
        source="internal", parameters={}, yes_multiplier=Decimal("2.00"),
        no_multiplier=Decimal("2.00"), min_bet=min_bet, max_bet=max_bet,
        opens_at=NOW, closes_at=NOW + timedelta(hours=1),
        resolves_at=NOW + timedelta(hours=2), status="open",
    )


class TestParsePosition:
    @pytest.mark.parametrize("raw", ["yes", "YES", " Yes "])
    def test_yes(self, raw: str) -> None:
        assert parse_position(raw) is Position.YES

    def test_enum_passthrough(self) -> None:
        assert parse_position(Position.NO) is Position.NO

    @pytest.mark.parametrize("raw", ["maybe", "", None, 1])
    def test_rejects(self, raw: object) -> None:
        with pytest.raises(InvalidPositionError):
            parse_position(raw)


class TestCheckAmount:
    def test_positive_int(self) -> None:
        assert check_amount(100) == 100

    @pytest.mark.parametrize("raw", [0, -5, 1.5, "100", True, None])
    def test_rejects(self, raw: object) -> None:
        with pytest.raises(InvalidBetAmountError):
            check_amount(raw)


class TestBounds:
    def test_inclusive_limits(self) -> None:
        market = _market()
        check_bounds(market, 10)
        check_bounds(market, 500)

    @pytest.mark.parametrize("amount", [9, 501])
    def test_outside(self, amount: int) -> None:
        with pytest.raises(OutOfBoundsError):
            check_bounds(_market(), amount)


class TestPotentialPayout:
    def test_floor(self) -> None:
        assert potential_payout(100, Decimal("1.95")) == 195
        assert potential_payout(33, Decimal("1.90")) == 62
