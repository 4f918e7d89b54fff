"""End-to-end ledger scenario for bet placement and settlement over in-memory repositories.

Balance 1000, market yes x2.0 / no x2.0 with bounds 10..500.
"""

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.tm_betting.application.service import BetPlacementService
from src.tm_betting.domain.models import Wager
from src.tm_common.enums import LedgerEntryType, MarketStatus, Outcome, Position, WagerStatus
from src.tm_common.errors import AlreadyResolvedError, DuplicateBetError, InsufficientFundsError
from src.tm_ledger.domain.models import Account, LedgerEntry
from src.tm_market.domain.models import Market
from src.tm_settlement.application.service import SettlementService

NOW = datetime(2026, 3, 10, 15, 0, tzinfo=UTC)
USER = "alice@example.com"


class InMemoryStore:
    """Just enough of the three repositories to run the real services."""

    def __init__(self, balance: int) -> None:
        self.accounts = {USER: Account(id=1, user_key=USER, balance=balance)}
        self.entries: list[LedgerEntry] = []
        self.market = Market(
            id=1, category="custom", subcategory=None, title="Rain?", description=None,
            ticker=None, source="internal", parameters={},
            yes_multiplier=Decimal("2.0"), no_multiplier=Decimal("2.0"),
            min_bet=10, max_bet=500, opens_at=NOW - timedelta(hours=1),
            closes_at=NOW + timedelta(hours=1), resolves_at=NOW + timedelta(hours=2),
            status="open",
        )
        self.wagers: dict[int, Wager] = {}

    # market repository
    async def lock_market(self, db: object, market_id: int) -> Market | None:
        return replace(self.market)

    async def record_bet_volume(self, db: object, market_id: int, position: Position, tokens: int) -> None:
        if position is Position.YES:
            self.market.total_yes_tokens += tokens
        else:
            self.market.total_no_tokens += tokens
        self.market.total_bettors += 1

    async def mark_resolved(
        self, db: object, market_id: int, outcome: Outcome, source: str, by: str, at: datetime
    ) -> None:
        self.market.status = MarketStatus.RESOLVED.value
        self.market.outcome = outcome.value

    # ledger repository
    async def lock_account(self, db: object, user_key: str) -> Account:
        return replace(self.accounts.setdefault(user_key, Account(id=2, user_key=user_key, balance=0)))

    async def _apply(self, user_key: str, amount: int, entry_type: LedgerEntryType) -> tuple[Account, LedgerEntry]:
        account = self.accounts[user_key]
        account.balance += amount
        entry = LedgerEntry(
            id=len(self.entries) + 1, user_key=user_key, entry_type=entry_type.value,
            amount=amount, balance_after=account.balance,
        )
        self.entries.append(entry)
        return replace(account), entry

    async def debit(self, db, user_key, amount, entry_type, ref_type, ref_id, description):  # type: ignore[no-untyped-def]
        if self.accounts[user_key].balance < amount:
            raise InsufficientFundsError(amount, self.accounts[user_key].balance)
        return await self._apply(user_key, -amount, entry_type)

    async def credit(self, db, user_key, amount, entry_type, ref_type, ref_id, description):  # type: ignore[no-untyped-def]
        return await self._apply(user_key, amount, entry_type)

    async def record_win(self, db: object, user_key: str, amount: int) -> None:
        self.accounts[user_key].total_won += amount

    async def record_loss(self, db: object, user_key: str, amount: int) -> None:
        self.accounts[user_key].total_lost += amount

    # wager repository
    async def get_for_user_market(self, db: object, user_key: str, market_id: int) -> Wager | None:
        return next((w for w in self.wagers.values() if w.user_key == user_key), None)

    async def insert_wager(self, db, user_key, market_id, position, tokens, payout, multiplier):  # type: ignore[no-untyped-def]
        wager = Wager(
            id=len(self.wagers) + 1, user_key=user_key, market_id=market_id,
            position=position.value, tokens_wagered=tokens, potential_payout=payout,
            payout_multiplier=multiplier, status="active",
        )
        self.wagers[wager.id] = wager
        return replace(wager)

    async def lock_active_for_market(self, db: object, market_id: int) -> list[Wager]:
        return [replace(w) for w in self.wagers.values() if w.status == "active"]

    async def mark_settled(self, db, wager_id, status, tokens_won, settled_at):  # type: ignore[no-untyped-def]
        wager = self.wagers[wager_id]
        wager.status = status.value
        wager.tokens_won = tokens_won


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore(balance=1000)


@pytest.fixture
def betting(store: InMemoryStore) -> BetPlacementService:
    return BetPlacementService(markets=store, ledger=store, wagers=store, clock=lambda: NOW)  # type: ignore[arg-type]


@pytest.fixture
def settlement(store: InMemoryStore) -> SettlementService:
    return SettlementService(markets=store, ledger=store, wagers=store, clock=lambda: NOW)  # type: ignore[arg-type]


class TestScenario:
    async def test_bet_then_win(
        self, store: InMemoryStore, betting: BetPlacementService, settlement: SettlementService
    ) -> None:
        placed = await betting.place_bet(AsyncMock(), USER, 1, "yes", 100)
        assert placed.balance_after == 900
        assert placed.wager.potential_payout == 200

        report = await settlement.resolve(AsyncMock(), 1, "yes", None, "admin")

        account = store.accounts[USER]
        assert report.total_paid_out == 200
        assert account.balance == 1100
        assert account.total_won == 100
        assert store.wagers[1].status == WagerStatus.WON.value
        assert store.wagers[1].tokens_won == 200

    async def test_bet_then_lose(
        self, store: InMemoryStore, betting: BetPlacementService, settlement: SettlementService
    ) -> None:
        await betting.place_bet(AsyncMock(), USER, 1, "yes", 100)

        await settlement.resolve(AsyncMock(), 1, "no", None, "admin")

        account = store.accounts[USER]
        assert account.balance == 900
        assert account.total_lost == 100
        assert store.wagers[1].status == WagerStatus.LOST.value
        assert store.wagers[1].tokens_won == 0

    async def test_second_resolution_changes_nothing(
        self, store: InMemoryStore, betting: BetPlacementService, settlement: SettlementService
    ) -> None:
        await betting.place_bet(AsyncMock(), USER, 1, "yes", 100)
        await settlement.resolve(AsyncMock(), 1, "yes", None, "admin")
        entries_before = list(store.entries)

        with pytest.raises(AlreadyResolvedError):
            await settlement.resolve(AsyncMock(), 1, "no", None, "admin")

        assert store.entries == entries_before
        assert store.accounts[USER].balance == 1100

    async def test_duplicate_bet_leaves_single_debit(
        self, store: InMemoryStore, betting: BetPlacementService
    ) -> None:
        await betting.place_bet(AsyncMock(), USER, 1, "yes", 100)
        with pytest.raises(DuplicateBetError):
            await betting.place_bet(AsyncMock(), USER, 1, "yes", 100)
        assert store.accounts[USER].balance == 900
        assert len(store.wagers) == 1

    async def test_ledger_entries_reconcile_with_balance(
        self, store: InMemoryStore, betting: BetPlacementService, settlement: SettlementService
    ) -> None:
        await betting.place_bet(AsyncMock(), USER, 1, "no", 250)
        await settlement.resolve(AsyncMock(), 1, "no", None, "admin")
        assert 1000 + sum(e.amount for e in store.entries) == store.accounts[USER].balance
        assert [e.entry_type for e in store.entries] == ["BET_STAKE", "BET_PAYOUT"]
