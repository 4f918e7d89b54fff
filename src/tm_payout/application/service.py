"""PayoutService: withdrawal requests and admin review.

A request debits the tokens immediately (PAYOUT_REQUEST entry) and waits for
review. Review is guarded by the payout state machine under the request row
lock; a rejection credits the tokens back (PAYOUT_REFUND entry), and because
rejected is terminal that refund happens at most once.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tm_common.database import apply_lock_timeout, persistence_guard
from src.tm_common.datetime_utils import utc_now
from src.tm_common.enums import LedgerEntryType, PayoutStatus
from src.tm_common.errors import (
    InsufficientFundsError,
    PayoutNotFoundError,
    PayoutNotReviewableError,
)
from src.tm_common.tokens import tokens_to_usd
from src.tm_ledger.domain.repository import LedgerRepositoryProtocol
from src.tm_ledger.infrastructure.persistence import LedgerRepository
from src.tm_payout.application.schemas import PayoutCreatedResponse, PayoutResponse
from src.tm_payout.domain.repository import PayoutRepositoryProtocol
from src.tm_payout.domain.rules import (
    AWAITING_ACTION,
    can_transition,
    check_request,
    parse_decision,
    parse_method,
)
from src.tm_payout.infrastructure.persistence import PayoutRepository

logger = logging.getLogger(__name__)

PAYOUT_REFERENCE = "PAYOUT"


class PayoutService:
    def __init__(
        self,
        payouts: PayoutRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
        minimum_tokens: int | None = None,
        usd_rate: Decimal | None = None,
    ) -> None:
        self._payouts: PayoutRepositoryProtocol = payouts or PayoutRepository()
        self._ledger: LedgerRepositoryProtocol = ledger or LedgerRepository()
        self._clock = clock
        self._minimum = minimum_tokens if minimum_tokens is not None else settings.MIN_PAYOUT_TOKENS
        self._usd_rate = usd_rate if usd_rate is not None else settings.TOKENS_TO_USD_RATE

    async def request_payout(
        self,
        db: AsyncSession,
        user_key: str,
        tokens: int,
        method: str,
        destination: str,
    ) -> PayoutCreatedResponse:
        payout_method = parse_method(method)
        check_request(tokens, destination, self._minimum)
        usd_amount = tokens_to_usd(tokens, self._usd_rate)

        try:
            with persistence_guard("request_payout"):
                await apply_lock_timeout(db)
                account = await self._ledger.lock_account(db, user_key)
                if account.balance < tokens:
                    raise InsufficientFundsError(tokens, account.balance)
                payout = await self._payouts.insert_request(
                    db, user_key, tokens, usd_amount, payout_method, destination.strip()
                )
                account, _ = await self._ledger.debit(
                    db,
                    user_key,
                    tokens,
                    LedgerEntryType.PAYOUT_REQUEST,
                    PAYOUT_REFERENCE,
                    str(payout.id),
                    f"Payout request via {payout_method.value} (${usd_amount})",
                )
                await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Payout %d requested by %s: %d tokens ($%s) via %s",
            payout.id, user_key, tokens, usd_amount, payout_method.value,
        )
        return PayoutCreatedResponse(
            payout=PayoutResponse.from_domain(payout), balance_after=account.balance
        )

    async def review_payout(
        self,
        db: AsyncSession,
        payout_id: int,
        decision: str,
        reviewer: str,
        transaction_reference: str | None = None,
        rejection_reason: str | None = None,
    ) -> PayoutResponse:
        target = parse_decision(decision)
        now = self._clock()

        try:
            with persistence_guard("review_payout"):
                await apply_lock_timeout(db)
                payout = await self._payouts.lock_request(db, payout_id)
                if payout is None:
                    raise PayoutNotFoundError(payout_id)
                if not can_transition(payout.status, target):
                    raise PayoutNotReviewableError(payout_id, payout.status, target.value)

                if target is PayoutStatus.REJECTED:
                    await self._ledger.lock_account(db, payout.user_key)
                    await self._ledger.credit(
                        db,
                        payout.user_key,
                        payout.tokens_amount,
                        LedgerEntryType.PAYOUT_REFUND,
                        PAYOUT_REFERENCE,
                        str(payout.id),
                        f"Payout {payout.id} rejected: {rejection_reason or 'no reason given'}",
                    )

                updated = await self._payouts.apply_review(
                    db,
                    payout_id,
                    target,
                    reviewer,
                    now,
                    rejection_reason if target is PayoutStatus.REJECTED else None,
                    transaction_reference,
                    now if target is PayoutStatus.COMPLETED else None,
                )
                await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Payout %d %s -> %s by %s", payout_id, payout.status, target.value, reviewer
        )
        return PayoutResponse.from_domain(updated)

    async def list_payouts(
        self, db: AsyncSession, user_key: str, limit: int = 50
    ) -> list[PayoutResponse]:
        payouts = await self._payouts.list_by_user(db, user_key, limit)
        return [PayoutResponse.from_domain(p) for p in payouts]

    async def list_pending_payouts(
        self, db: AsyncSession, limit: int = 100, status: PayoutStatus | None = None
    ) -> list[PayoutResponse]:
        """Payouts still awaiting review or completion, oldest first."""
        statuses = [status] if status is not None else list(AWAITING_ACTION)
        payouts = await self._payouts.list_by_status(db, statuses, limit)
        return [PayoutResponse.from_domain(p) for p in payouts]
