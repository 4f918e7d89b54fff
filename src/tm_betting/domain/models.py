"""Domain models for tm_betting: pure dataclasses."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Wager:
    id: int
    user_key: str
    market_id: int
    position: str                    # Position value
    tokens_wagered: int
    potential_payout: int            # floor(tokens_wagered * payout_multiplier)
    payout_multiplier: Decimal       # snapshot at placement, never updated
    status: str                      # WagerStatus value
    tokens_won: int = 0
    placed_at: datetime | None = None
    settled_at: datetime | None = None


@dataclass
class WagerView:
    """A wager joined with the market fields shown in a user's bet history."""

    wager: Wager
    market_title: str
    market_category: str
    market_ticker: str | None
    market_status: str
    market_outcome: str | None
    closes_at: datetime
    resolves_at: datetime
