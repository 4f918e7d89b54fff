"""Domain models for tm_payout."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class PayoutRequest:
    id: int
    user_key: str
    tokens_amount: int
    usd_amount: Decimal
    method: str                      # PayoutMethod value
    destination: str
    status: str                      # PayoutStatus value
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None
    transaction_reference: str | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
