"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class Position(str, Enum):
    YES = "yes"
    NO = "no"


# A market outcome uses the same two values as a wager position.
Outcome = Position


class MarketStatus(str, Enum):
    UPCOMING = "upcoming"
    OPEN = "open"
    CLOSED = "closed"
    RESOLVED = "resolved"


class MarketSource(str, Enum):
    INTERNAL = "internal"
    VENUE = "venue"


class WagerStatus(str, Enum):
    ACTIVE = "active"
    WON = "won"
    LOST = "lost"
    CANCELLED = "cancelled"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"


class PayoutMethod(str, Enum):
    ZELLE = "zelle"
    PAYPAL = "paypal"


class LedgerEntryType(str, Enum):
    PURCHASE = "PURCHASE"
    BET_STAKE = "BET_STAKE"
    BET_PAYOUT = "BET_PAYOUT"
    PAYOUT_REQUEST = "PAYOUT_REQUEST"
    PAYOUT_REFUND = "PAYOUT_REFUND"
