"""Bet validation rules.

Input-shape checks raise ValidationError subclasses and run before any
transaction. check_bounds needs the locked market row and runs inside one.
"""

from decimal import Decimal

from src.tm_common.enums import Position
from src.tm_common.errors import InvalidBetAmountError, InvalidPositionError, OutOfBoundsError
from src.tm_common.tokens import floor_payout
from src.tm_market.domain.models import Market


def parse_position(value: object) -> Position:
    if isinstance(value, Position):
        return value
    if isinstance(value, str):
        try:
            return Position(value.strip().lower())
        except ValueError:
            pass
    raise InvalidPositionError(value)


def check_amount(tokens: object) -> int:
    # bool is an int subclass; True must not count as a one-token bet
    if isinstance(tokens, bool) or not isinstance(tokens, int) or tokens <= 0:
        raise InvalidBetAmountError(tokens)
    return tokens


def check_bounds(market: Market, tokens: int) -> None:
    """Raise OutOfBoundsError unless min_bet <= tokens <= max_bet (both inclusive)."""
    if not (market.min_bet <= tokens <= market.max_bet):
        raise OutOfBoundsError(tokens, market.min_bet, market.max_bet)


def potential_payout(tokens: int, multiplier: Decimal) -> int:
    return floor_payout(tokens, multiplier)
