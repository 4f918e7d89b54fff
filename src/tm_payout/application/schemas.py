"""Pydantic schemas for tm_payout API."""

from pydantic import BaseModel, Field

from src.tm_payout.domain.models import PayoutRequest

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PayoutCreateRequest(BaseModel):
    tokens: int = Field(..., description="Tokens to withdraw (minimum 1000)")
    method: str = Field(..., description="zelle | paypal")
    destination: str = Field(..., max_length=255, description="Zelle email/phone or PayPal email")


class PayoutReviewRequest(BaseModel):
    decision: str = Field(..., description="approved | completed | rejected")
    transaction_reference: str | None = Field(None, max_length=128)
    rejection_reason: str | None = Field(None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PayoutResponse(BaseModel):
    id: int
    user_key: str
    tokens_amount: int
    usd_amount: str   # Decimal as string, 2 places
    method: str
    destination: str
    status: str
    reviewed_by: str | None
    reviewed_at: str | None
    rejection_reason: str | None
    transaction_reference: str | None
    completed_at: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, p: PayoutRequest) -> "PayoutResponse":
        return cls(
            id=p.id,
            user_key=p.user_key,
            tokens_amount=p.tokens_amount,
            usd_amount=str(p.usd_amount),
            method=p.method,
            destination=p.destination,
            status=p.status,
            reviewed_by=p.reviewed_by,
            reviewed_at=p.reviewed_at.isoformat() if p.reviewed_at else None,
            rejection_reason=p.rejection_reason,
            transaction_reference=p.transaction_reference,
            completed_at=p.completed_at.isoformat() if p.completed_at else None,
            created_at=p.created_at.isoformat() if p.created_at else None,
        )


class PayoutCreatedResponse(BaseModel):
    payout: PayoutResponse
    balance_after: int
