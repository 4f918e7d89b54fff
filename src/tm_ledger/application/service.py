"""LedgerApplicationService: balances, funds-in, ledger history, leaderboard.

Mutating operations follow commit-on-success / rollback-and-reraise.
Balance queries also commit because the account row is created lazily.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.database import apply_lock_timeout, persistence_guard
from src.tm_common.enums import LedgerEntryType
from src.tm_common.errors import InvalidAmountError, UnknownPackageError
from src.tm_common.pagination import cursor_decode, cursor_encode
from src.tm_ledger.application.schemas import (
    BalanceResponse,
    FundsInResponse,
    LeaderboardItem,
    LedgerEntryItem,
    LedgerResponse,
    PackageItem,
)
from src.tm_ledger.domain.constants import TOKEN_PACKAGES
from src.tm_ledger.domain.repository import LedgerRepositoryProtocol
from src.tm_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)


class LedgerApplicationService:
    def __init__(self, repo: LedgerRepositoryProtocol | None = None) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()

    async def get_balance(self, db: AsyncSession, user_key: str) -> BalanceResponse:
        try:
            with persistence_guard("get_balance"):
                account = await self._repo.get_or_create(db, user_key)
                await db.commit()
        except Exception:
            await db.rollback()
            raise
        return BalanceResponse.from_account(account)

    async def record_funds_in(
        self,
        db: AsyncSession,
        user_key: str,
        external_reference: str,
        package_id: str | None = None,
        tokens: int | None = None,
    ) -> FundsInResponse:
        """Credit a completed purchase exactly once per external reference.

        Redelivered events (same external_reference) are acknowledged with
        duplicate=True and leave the ledger untouched.
        """
        if package_id is not None:
            package = TOKEN_PACKAGES.get(package_id)
            if package is None:
                raise UnknownPackageError(package_id)
            tokens = package.tokens
        if tokens is None or tokens <= 0:
            raise InvalidAmountError("funds-in requires a package_id or a positive token count")

        try:
            with persistence_guard("record_funds_in"):
                await apply_lock_timeout(db)
                inserted = await self._repo.insert_purchase(
                    db, user_key, package_id, tokens, external_reference
                )
                if not inserted:
                    account = await self._repo.get_or_create(db, user_key)
                    await db.commit()
                    logger.info("Duplicate funds-in %s ignored", external_reference)
                    return FundsInResponse(
                        user_key=user_key,
                        external_reference=external_reference,
                        tokens_credited=0,
                        balance=account.balance,
                        duplicate=True,
                    )
                account, entry = await self._repo.credit(
                    db,
                    user_key,
                    tokens,
                    LedgerEntryType.PURCHASE,
                    "PURCHASE",
                    external_reference,
                    f"Token purchase ({package_id or 'custom'})",
                )
                await self._repo.record_purchase(db, user_key, tokens)
                await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Funds-in %s: %d tokens to %s", external_reference, tokens, user_key)
        return FundsInResponse(
            user_key=user_key,
            external_reference=external_reference,
            tokens_credited=tokens,
            balance=account.balance,
            duplicate=False,
            ledger_entry_id=entry.id,
        )

    def list_packages(self) -> list[PackageItem]:
        return [
            PackageItem(id=p.id, name=p.name, tokens=p.tokens, price_cents=p.price_cents)
            for p in TOKEN_PACKAGES.values()
        ]

    async def list_ledger(
        self,
        db: AsyncSession,
        user_key: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_ledger_entries(
            db, user_key, cursor_id, limit + 1, entry_type
        )
        has_more = len(entries) > limit
        page = entries[:limit]

        items = [
            LedgerEntryItem(
                id=e.id,
                entry_type=e.entry_type,
                amount=e.amount,
                balance_after=e.balance_after,
                reference_type=e.reference_type,
                reference_id=e.reference_id,
                description=e.description,
                created_at=e.created_at.isoformat() if e.created_at else "",
            )
            for e in page
        ]

        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def leaderboard(self, db: AsyncSession, limit: int) -> list[LeaderboardItem]:
        rows = await self._repo.leaderboard(db, limit)
        return [LeaderboardItem.from_row(rank, row) for rank, row in enumerate(rows, start=1)]
