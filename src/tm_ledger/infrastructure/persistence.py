"""LedgerRepository: concrete implementation of LedgerRepositoryProtocol.

Balance mutations are single UPDATE ... RETURNING statements, which take the
row lock for the rest of the caller's transaction. A debit returning 0 rows
means the balance check failed; the balance is never driven below zero.

Every balance mutation writes exactly one ledger_entries row in the same
transaction. Transaction ownership stays with the CALLER (application service).
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tm_common.enums import LedgerEntryType
from src.tm_common.errors import InsufficientFundsError, InternalError
from src.tm_ledger.domain.models import Account, LeaderboardRow, LedgerEntry

# ---------------------------------------------------------------------------
# SQL: accounts
# ---------------------------------------------------------------------------

_ACCOUNT_COLUMNS = """
    id, user_key, balance, total_purchased, total_won, total_lost, created_at, updated_at
"""

_ENSURE_ACCOUNT_SQL = text("""
    INSERT INTO accounts (user_key)
    VALUES (:user_key)
    ON CONFLICT (user_key) DO NOTHING
""")

_GET_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE user_key = :user_key
""")

_LOCK_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE user_key = :user_key
    FOR UPDATE
""")

_DEBIT_SQL = text(f"""
    UPDATE accounts
    SET balance = balance - :amount
    WHERE user_key = :user_key AND balance >= :amount
    RETURNING {_ACCOUNT_COLUMNS}
""")

_CREDIT_SQL = text(f"""
    INSERT INTO accounts (user_key, balance)
    VALUES (:user_key, :amount)
    ON CONFLICT (user_key) DO UPDATE
        SET balance = accounts.balance + EXCLUDED.balance
    RETURNING {_ACCOUNT_COLUMNS}
""")

_RECORD_PURCHASE_SQL = text("""
    UPDATE accounts SET total_purchased = total_purchased + :amount
    WHERE user_key = :user_key
""")

_RECORD_WIN_SQL = text("""
    UPDATE accounts SET total_won = total_won + :amount
    WHERE user_key = :user_key
""")

_RECORD_LOSS_SQL = text("""
    UPDATE accounts SET total_lost = total_lost + :amount
    WHERE user_key = :user_key
""")

# ---------------------------------------------------------------------------
# SQL: ledger entries / purchases
# ---------------------------------------------------------------------------

_INSERT_LEDGER_SQL = text("""
    INSERT INTO ledger_entries
        (user_key, entry_type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:user_key, :entry_type, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING id, user_key, entry_type, amount, balance_after,
              reference_type, reference_id, description, created_at
""")

_INSERT_PURCHASE_SQL = text("""
    INSERT INTO token_purchases (user_key, package_id, tokens_amount, external_reference)
    VALUES (:user_key, :package_id, :tokens_amount, :external_reference)
    ON CONFLICT (external_reference) DO NOTHING
    RETURNING id
""")

_LIST_LEDGER_SQL = text("""
    SELECT id, user_key, entry_type, amount, balance_after,
           reference_type, reference_id, description, created_at
    FROM ledger_entries
    WHERE user_key = :user_key
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = CAST(:entry_type AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_LEADERBOARD_SQL = text("""
    SELECT a.user_key, a.total_won, a.total_lost,
           COUNT(w.id)                                   AS total_bets,
           COUNT(w.id) FILTER (WHERE w.status = 'won')   AS wins,
           COUNT(w.id) FILTER (WHERE w.status = 'lost')  AS losses
    FROM accounts a
    JOIN wagers w ON w.user_key = a.user_key
    GROUP BY a.user_key, a.total_won, a.total_lost
    HAVING COUNT(w.id) FILTER (WHERE w.status IN ('won', 'lost')) > 0
    ORDER BY (a.total_won - a.total_lost) DESC, a.user_key ASC
    LIMIT :limit
""")


def _row_to_account(row: object) -> Account:
    return Account(
        id=row.id,  # type: ignore[attr-defined]
        user_key=row.user_key,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        total_purchased=row.total_purchased,  # type: ignore[attr-defined]
        total_won=row.total_won,  # type: ignore[attr-defined]
        total_lost=row.total_lost,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_ledger(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_key=row.user_key,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_leaderboard(row: object) -> LeaderboardRow:
    return LeaderboardRow(
        user_key=row.user_key,  # type: ignore[attr-defined]
        total_won=row.total_won,  # type: ignore[attr-defined]
        total_lost=row.total_lost,  # type: ignore[attr-defined]
        total_bets=row.total_bets,  # type: ignore[attr-defined]
        wins=row.wins,  # type: ignore[attr-defined]
        losses=row.losses,  # type: ignore[attr-defined]
    )


class LedgerRepository:
    """Concrete repository: all operations atomic at the SQL level."""

    async def get_or_create(self, db: AsyncSession, user_key: str) -> Account:
        await db.execute(_ENSURE_ACCOUNT_SQL, {"user_key": user_key})
        result = await db.execute(_GET_ACCOUNT_SQL, {"user_key": user_key})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Account not found after upsert for {user_key}")
        return _row_to_account(row)

    async def lock_account(self, db: AsyncSession, user_key: str) -> Account:
        await db.execute(_ENSURE_ACCOUNT_SQL, {"user_key": user_key})
        result = await db.execute(_LOCK_ACCOUNT_SQL, {"user_key": user_key})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Account not found after upsert for {user_key}")
        return _row_to_account(row)

    async def debit(
        self,
        db: AsyncSession,
        user_key: str,
        amount: int,
        entry_type: LedgerEntryType,
        ref_type: str | None,
        ref_id: str | None,
        description: str,
    ) -> tuple[Account, LedgerEntry]:
        result = await db.execute(_DEBIT_SQL, {"user_key": user_key, "amount": amount})
        row = result.fetchone()
        if row is None:
            acc_result = await db.execute(_GET_ACCOUNT_SQL, {"user_key": user_key})
            acc_row = acc_result.fetchone()
            available = acc_row.balance if acc_row else 0
            raise InsufficientFundsError(amount, available)
        account = _row_to_account(row)
        entry = await self._insert_entry(
            db, account, entry_type, -amount, ref_type, ref_id, description
        )
        return account, entry

    async def credit(
        self,
        db: AsyncSession,
        user_key: str,
        amount: int,
        entry_type: LedgerEntryType,
        ref_type: str | None,
        ref_id: str | None,
        description: str,
    ) -> tuple[Account, LedgerEntry]:
        result = await db.execute(_CREDIT_SQL, {"user_key": user_key, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise InternalError("Credit upsert returned no rows: this should never happen")
        account = _row_to_account(row)
        entry = await self._insert_entry(
            db, account, entry_type, amount, ref_type, ref_id, description
        )
        return account, entry

    async def record_purchase(self, db: AsyncSession, user_key: str, amount: int) -> None:
        await db.execute(_RECORD_PURCHASE_SQL, {"user_key": user_key, "amount": amount})

    async def record_win(self, db: AsyncSession, user_key: str, amount: int) -> None:
        await db.execute(_RECORD_WIN_SQL, {"user_key": user_key, "amount": amount})

    async def record_loss(self, db: AsyncSession, user_key: str, amount: int) -> None:
        await db.execute(_RECORD_LOSS_SQL, {"user_key": user_key, "amount": amount})

    async def insert_purchase(
        self,
        db: AsyncSession,
        user_key: str,
        package_id: str | None,
        tokens: int,
        external_reference: str,
    ) -> bool:
        result = await db.execute(
            _INSERT_PURCHASE_SQL,
            {
                "user_key": user_key,
                "package_id": package_id,
                "tokens_amount": tokens,
                "external_reference": external_reference,
            },
        )
        return result.fetchone() is not None

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_key: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_LEDGER_SQL,
            {
                "user_key": user_key,
                "cursor_id": cursor_id,
                "entry_type": entry_type,
                "limit": limit,
            },
        )
        return [_row_to_ledger(row) for row in result.fetchall()]

    async def leaderboard(self, db: AsyncSession, limit: int) -> list[LeaderboardRow]:
        result = await db.execute(_LEADERBOARD_SQL, {"limit": limit})
        return [_row_to_leaderboard(row) for row in result.fetchall()]

    async def _insert_entry(
        self,
        db: AsyncSession,
        account: Account,
        entry_type: LedgerEntryType,
        signed_amount: int,
        ref_type: str | None,
        ref_id: str | None,
        description: str,
    ) -> LedgerEntry:
        ledger_result = await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "user_key": account.user_key,
                "entry_type": entry_type.value,
                "amount": signed_amount,
                "balance_after": account.balance,
                "reference_type": ref_type,
                "reference_id": ref_id,
                "description": description,
            },
        )
        ledger_row = ledger_result.fetchone()
        if ledger_row is None:
            raise InternalError("Ledger insert returned no rows: this should never happen")
        return _row_to_ledger(ledger_row)
