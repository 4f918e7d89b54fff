"""Pydantic schemas for tm_ledger API."""

from pydantic import BaseModel, Field

from src.tm_common.tokens import tokens_to_display
from src.tm_ledger.domain.models import Account, LeaderboardRow

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class FundsInRequest(BaseModel):
    user_key: str = Field(..., min_length=1, max_length=255)
    external_reference: str = Field(..., min_length=1, max_length=128)
    package_id: str | None = None
    tokens: int | None = Field(None, gt=0, description="Used when no package_id is given")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_key: str
    balance: int
    balance_display: str
    total_purchased: int
    total_won: int
    total_lost: int
    net_profit: int

    @classmethod
    def from_account(cls, account: Account) -> "BalanceResponse":
        return cls(
            user_key=account.user_key,
            balance=account.balance,
            balance_display=tokens_to_display(account.balance),
            total_purchased=account.total_purchased,
            total_won=account.total_won,
            total_lost=account.total_lost,
            net_profit=account.net_profit,
        )


class FundsInResponse(BaseModel):
    user_key: str
    external_reference: str
    tokens_credited: int
    balance: int
    duplicate: bool
    ledger_entry_id: int | None = None


class PackageItem(BaseModel):
    id: str
    name: str
    tokens: int
    price_cents: int


class LedgerEntryItem(BaseModel):
    id: int
    entry_type: str
    amount: int
    balance_after: int
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool


class LeaderboardItem(BaseModel):
    rank: int
    display_name: str
    net_profit: int
    total_won: int
    total_lost: int
    total_bets: int
    wins: int
    losses: int
    win_rate: float

    @classmethod
    def from_row(cls, rank: int, row: LeaderboardRow) -> "LeaderboardItem":
        return cls(
            rank=rank,
            display_name=row.display_name,
            net_profit=row.net_profit,
            total_won=row.total_won,
            total_lost=row.total_lost,
            total_bets=row.total_bets,
            wins=row.wins,
            losses=row.losses,
            win_rate=row.win_rate,
        )
