"""Domain models for tm_ledger: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Account:
    id: int
    user_key: str
    balance: int                 # tokens, never negative
    total_purchased: int = 0
    total_won: int = 0           # net profit over winning wagers
    total_lost: int = 0          # stakes forfeited on losing wagers
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def net_profit(self) -> int:
        return self.total_won - self.total_lost


@dataclass
class LedgerEntry:
    id: int                          # BIGSERIAL
    user_key: str
    entry_type: str                  # LedgerEntryType value
    amount: int                      # tokens, positive=credit negative=debit
    balance_after: int
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


@dataclass
class TokenPackage:
    id: str
    name: str
    tokens: int
    price_cents: int


@dataclass
class LeaderboardRow:
    user_key: str
    total_won: int
    total_lost: int
    total_bets: int
    wins: int
    losses: int

    @property
    def net_profit(self) -> int:
        return self.total_won - self.total_lost

    @property
    def win_rate(self) -> float:
        settled = self.wins + self.losses
        if settled == 0:
            return 0.0
        return round(self.wins / settled * 100, 1)

    @property
    def display_name(self) -> str:
        local = self.user_key.split("@", 1)[0]
        return f"{local[:3]}***"
