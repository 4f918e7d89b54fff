"""Repository Protocol: dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.enums import LedgerEntryType
from src.tm_ledger.domain.models import Account, LeaderboardRow, LedgerEntry


class LedgerRepositoryProtocol(Protocol):
    async def get_or_create(self, db: AsyncSession, user_key: str) -> Account: ...

    async def lock_account(self, db: AsyncSession, user_key: str) -> Account: ...

    async def debit(
        self,
        db: AsyncSession,
        user_key: str,
        amount: int,
        entry_type: LedgerEntryType,
        ref_type: str | None,
        ref_id: str | None,
        description: str,
    ) -> tuple[Account, LedgerEntry]: ...

    async def credit(
        self,
        db: AsyncSession,
        user_key: str,
        amount: int,
        entry_type: LedgerEntryType,
        ref_type: str | None,
        ref_id: str | None,
        description: str,
    ) -> tuple[Account, LedgerEntry]: ...

    async def record_purchase(self, db: AsyncSession, user_key: str, amount: int) -> None: ...

    async def record_win(self, db: AsyncSession, user_key: str, amount: int) -> None: ...

    async def record_loss(self, db: AsyncSession, user_key: str, amount: int) -> None: ...

    async def insert_purchase(
        self,
        db: AsyncSession,
        user_key: str,
        package_id: str | None,
        tokens: int,
        external_reference: str,
    ) -> bool: ...

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_key: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]: ...

    async def leaderboard(self, db: AsyncSession, limit: int) -> list[LeaderboardRow]: ...
