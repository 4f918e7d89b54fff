"""Repository Protocol: dependency inversion for testability."""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.enums import PayoutMethod, PayoutStatus
from src.tm_payout.domain.models import PayoutRequest


class PayoutRepositoryProtocol(Protocol):
    async def insert_request(
        self,
        db: AsyncSession,
        user_key: str,
        tokens: int,
        usd_amount: Decimal,
        method: PayoutMethod,
        destination: str,
    ) -> PayoutRequest: ...

    async def lock_request(self, db: AsyncSession, payout_id: int) -> PayoutRequest | None: ...

    async def apply_review(
        self,
        db: AsyncSession,
        payout_id: int,
        status: PayoutStatus,
        reviewed_by: str,
        reviewed_at: datetime,
        rejection_reason: str | None,
        transaction_reference: str | None,
        completed_at: datetime | None,
    ) -> PayoutRequest: ...

    async def list_by_user(
        self, db: AsyncSession, user_key: str, limit: int
    ) -> list[PayoutRequest]: ...

    async def list_by_status(
        self, db: AsyncSession, statuses: list[PayoutStatus], limit: int
    ) -> list[PayoutRequest]: ...
