"""External venue market model and the local reconciliation report."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.tm_common.enums import Outcome
from src.tm_common.tokens import to_multiplier

FINAL_STATUSES = frozenset({"settled", "finalized"})
OPEN_STATUSES = frozenset({"open", "active"})
FALLBACK_MULTIPLIER = Decimal("2.00")


class VenueMarket(BaseModel):
    """Subset of the venue's market payload; unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    ticker: str
    event_ticker: str = ""
    title: str = ""
    subtitle: str = ""
    status: str = ""
    result: str = ""
    yes_bid: int = Field(default=0, ge=0, le=100)
    yes_ask: int = Field(default=0, ge=0, le=100)
    no_bid: int = Field(default=0, ge=0, le=100)
    no_ask: int = Field(default=0, ge=0, le=100)
    last_price: int = Field(default=0, ge=0, le=100)
    volume: int = 0
    open_time: datetime | None = None
    close_time: datetime | None = None
    expiration_time: datetime | None = None

    @field_validator("open_time", "close_time", "expiration_time", mode="before")
    @classmethod
    def _blank_time_is_none(cls, v: object) -> object:
        return v or None

    @field_validator("event_ticker", "title", "subtitle", "status", "result", mode="before")
    @classmethod
    def _null_text_is_blank(cls, v: object) -> object:
        return "" if v is None else v

    @property
    def display_title(self) -> str:
        return self.title or self.subtitle or self.ticker

    @property
    def is_open(self) -> bool:
        return self.status.lower() in OPEN_STATUSES

    @property
    def final_outcome(self) -> Outcome | None:
        """yes/no once the venue has finalized the market; None while undecided."""
        if self.status.lower() not in FINAL_STATUSES:
            return None
        result = self.result.strip().lower()
        if result == "yes":
            return Outcome.YES
        if result == "no":
            return Outcome.NO
        return None

    @property
    def yes_price(self) -> Decimal:
        """Implied YES probability: ask, else last trade, else even odds."""
        cents = self.yes_ask or self.last_price
        if not cents:
            return Decimal("0.5")
        return Decimal(cents) / 100

    def multipliers(self) -> tuple[Decimal, Decimal]:
        """Fixed payout multipliers implied by current prices (payout = 1 / price)."""
        yes_price = self.yes_price
        no_price = 1 - yes_price
        return _inverse(yes_price), _inverse(no_price)


def _inverse(price: Decimal) -> Decimal:
    if price <= 0:
        return FALLBACK_MULTIPLIER
    return to_multiplier(1 / price)


@dataclass
class VenueSyncReport:
    checked: int = 0
    resolved: list[int] = field(default_factory=list)
    pending: list[int] = field(default_factory=list)
    deferred: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    total_paid_out: int = 0
