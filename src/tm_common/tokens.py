"""Token arithmetic.

Balances, stakes and payouts are int token counts. Multipliers are Decimal
(NUMERIC(6,2) in the DB) and never pass through float.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def to_multiplier(value: Decimal | float | int | str) -> Decimal:
    """Normalise a multiplier to two decimal places."""
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


def floor_payout(tokens: int, multiplier: Decimal) -> int:
    """floor(tokens * multiplier): 100 * 1.95 -> 195, 33 * 1.90 -> 62."""
    return int((Decimal(tokens) * multiplier).to_integral_value(rounding=ROUND_DOWN))


def tokens_to_usd(tokens: int, rate: Decimal) -> Decimal:
    """Convert tokens to a USD amount rounded to cents: 1000 @ 0.004 -> 4.00."""
    return (Decimal(tokens) * rate).quantize(_CENT, rounding=ROUND_HALF_UP)


def tokens_to_display(tokens: int) -> str:
    """12500 -> '12,500 tokens', -100 -> '-100 tokens'."""
    return f"{tokens:,} tokens"
