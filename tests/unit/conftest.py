"""In-memory repositories for engine and service tests.

The fakes honour the same contracts as the SQL repositories: guarded
balance updates, compare-and-set market status writes, commitments leaving
'active' once. FakeSession snapshots the store on the first write of a
transaction and restores it on rollback, so atomicity can be asserted
without a database.
"""

import copy
import itertools
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pytest
from sqlalchemy.exc import OperationalError

from src.pm_account.domain.models import TokenTransaction, UserBalance
from src.pm_commitment.application.service import CommitmentService
from src.pm_commitment.domain.models import Commitment, CommitmentOutcome
from src.pm_common.errors import (
    InsufficientBalanceError,
    InternalError,
    StorageFailureError,
)
from src.pm_market.domain.models import Market, MarketOption
from src.pm_resolution.application.service import ResolutionEngine
from src.pm_resolution.domain.models import (
    CreatorPayout,
    HousePayout,
    Resolution,
    ResolutionLogEntry,
    WinnerPayout,
)


@dataclass
class StoreState:
    markets: dict[str, Market] = field(default_factory=dict)
    commitments: dict[str, Commitment] = field(default_factory=dict)
    balances: dict[str, UserBalance] = field(default_factory=dict)
    transactions: list[TokenTransaction] = field(default_factory=list)
    resolutions: dict[str, Resolution] = field(default_factory=dict)
    winner_payouts: list[WinnerPayout] = field(default_factory=list)
    creator_payouts: list[CreatorPayout] = field(default_factory=list)
    house_payouts: list[HousePayout] = field(default_factory=list)
    logs: list[ResolutionLogEntry] = field(default_factory=list)


class InMemoryStore:
    def __init__(self) -> None:
        self.state = StoreState()
        self._ids = itertools.count(1)

    def next_id(self) -> int:
        return next(self._ids)

    def total_available(self) -> int:
        return sum(b.available_tokens for b in self.state.balances.values())

    def total_committed(self) -> int:
        return sum(b.committed_tokens for b in self.state.balances.values())


class FakeSession:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.fail_on_commit = False
        self.commits = 0
        self.rollbacks = 0
        self._snapshot: StoreState | None = None

    def begin_write(self) -> None:
        if self._snapshot is None:
            self._snapshot = copy.deepcopy(self.store.state)

    async def commit(self) -> None:
        if self.fail_on_commit:
            raise OperationalError("COMMIT", {}, Exception("server closed the connection"))
        self._snapshot = None
        self.commits += 1

    async def rollback(self) -> None:
        if self._snapshot is not None:
            self.store.state = self._snapshot
            self._snapshot = None
        self.rollbacks += 1


# ---------------------------------------------------------------------------
# Fake repositories
# ---------------------------------------------------------------------------


class FakeMarketRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self.locked: list[str] = []

    async def get_market_by_id(self, db: FakeSession, market_id: str) -> Market | None:
        market = self._store.state.markets.get(market_id)
        return copy.deepcopy(market)

    async def get_market_for_update(self, db: FakeSession, market_id: str) -> Market | None:
        self.locked.append(market_id)
        return await self.get_market_by_id(db, market_id)

    async def list_markets(
        self, db: FakeSession, status: str | None, cursor_ts: str | None,
        cursor_id: str | None, limit: int,
    ) -> list[Market]:
        markets = [
            m for m in self._store.state.markets.values()
            if status is None or m.status == status
        ]
        return copy.deepcopy(markets[:limit])

    async def create_market(self, db: FakeSession, market: Market) -> Market:
        db.begin_write()
        stored = copy.deepcopy(market)
        stored.created_at = datetime.now(UTC)
        self._store.state.markets[stored.id] = stored
        return copy.deepcopy(stored)

    async def update_creator_fee(self, db: FakeSession, market_id: str, fee_bps: int) -> None:
        db.begin_write()
        market = self._store.state.markets[market_id]
        market.creator_fee_bps = fee_bps
        market.version += 1

    async def record_stake(
        self, db: FakeSession, market_id: str, option_id: str, tokens: int,
        new_market_participant: bool, new_option_participant: bool,
    ) -> None:
        db.begin_write()
        market = self._store.state.markets[market_id]
        option = market.option(option_id)
        assert option is not None
        option.total_tokens += tokens
        option.participant_count += int(new_option_participant)
        market.total_tokens += tokens
        market.participant_count += int(new_market_participant)
        market.version += 1

    def _cas(self, market: Market) -> Market:
        stored = self._store.state.markets[market.id]
        if stored.version != market.version:
            raise StorageFailureError(f"Concurrent modification of market {market.id}")
        stored.version += 1
        return stored

    async def mark_resolved(
        self, db: FakeSession, market: Market, resolution_id: str, resolved_at: datetime
    ) -> None:
        db.begin_write()
        stored = self._cas(market)
        stored.status = "resolved"
        stored.resolution_id = resolution_id
        stored.resolved_at = resolved_at

    async def mark_cancelled(
        self, db: FakeSession, market: Market, cancelled_by: str, reason: str,
        refund_tokens: bool, cancelled_at: datetime,
    ) -> None:
        db.begin_write()
        stored = self._cas(market)
        stored.status = "cancelled"
        stored.cancelled_by = cancelled_by
        stored.cancellation_reason = reason
        stored.refund_tokens = refund_tokens
        stored.cancelled_at = cancelled_at

    async def zero_option_totals(self, db: FakeSession, market_id: str) -> None:
        db.begin_write()
        market = self._store.state.markets[market_id]
        for option in market.options:
            option.total_tokens = 0
        market.total_tokens = 0


class FakeCommitmentRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def list_active_for_market(
        self, db: FakeSession, market_id: str, for_update: bool = False
    ) -> list[Commitment]:
        return copy.deepcopy([
            c for c in self._store.state.commitments.values()
            if c.market_id == market_id and c.status == "active"
        ])

    async def get_user_option_ids(
        self, db: FakeSession, market_id: str, user_id: str
    ) -> set[str]:
        return {
            c.option_id for c in self._store.state.commitments.values()
            if c.market_id == market_id and c.user_id == user_id and c.status == "active"
        }

    async def create_commitment(self, db: FakeSession, commitment: Commitment) -> Commitment:
        db.begin_write()
        stored = copy.deepcopy(commitment)
        stored.created_at = datetime.now(UTC)
        self._store.state.commitments[stored.id] = stored
        return copy.deepcopy(stored)

    async def mark_outcomes(
        self, db: FakeSession, outcomes: list[CommitmentOutcome], resolved_at: datetime
    ) -> None:
        db.begin_write()
        for o in outcomes:
            c = self._store.state.commitments[o.commitment_id]
            if c.status != "active":
                continue
            c.status = o.status
            c.payout_amount = o.payout_amount
            c.refund_amount = o.refund_amount
            c.resolved_at = resolved_at

    async def list_for_user(
        self, db: FakeSession, user_id: str, market_id: str | None,
        status: str | None, cursor_id: str | None, limit: int,
    ) -> list[Commitment]:
        rows = sorted(
            (
                c for c in self._store.state.commitments.values()
                if c.user_id == user_id
                and (market_id is None or c.market_id == market_id)
                and (status is None or c.status == status)
                and (cursor_id is None or c.id < cursor_id)
            ),
            key=lambda c: c.id,
            reverse=True,
        )
        return copy.deepcopy(rows[:limit])


class FakeBalanceRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get_balance(self, db: FakeSession, user_id: str) -> UserBalance | None:
        return copy.deepcopy(self._store.state.balances.get(user_id))

    async def credit(
        self, db: FakeSession, user_id: str, amount: int,
        release_committed: int = 0, earned: int = 0,
    ) -> UserBalance:
        db.begin_write()
        balances = self._store.state.balances
        if user_id not in balances:
            balances[user_id] = UserBalance(
                user_id=user_id, available_tokens=amount, total_earned=earned
            )
            return copy.deepcopy(balances[user_id])
        bal = balances[user_id]
        if bal.committed_tokens < release_committed:
            raise InternalError(f"Committed tokens of user {user_id} lower than release")
        bal.available_tokens += amount
        bal.committed_tokens -= release_committed
        bal.total_earned += earned
        bal.version += 1
        return copy.deepcopy(bal)

    async def stake(self, db: FakeSession, user_id: str, amount: int) -> UserBalance:
        bal = self._store.state.balances.get(user_id)
        available = bal.available_tokens if bal else 0
        if bal is None or bal.available_tokens < amount:
            raise InsufficientBalanceError(amount, available)
        db.begin_write()
        bal.available_tokens -= amount
        bal.committed_tokens += amount
        bal.total_spent += amount
        bal.version += 1
        return copy.deepcopy(bal)

    async def record_transaction(
        self, db: FakeSession, tx: TokenTransaction
    ) -> TokenTransaction:
        db.begin_write()
        tx.id = self._store.next_id()
        tx.created_at = datetime.now(UTC)
        self._store.state.transactions.append(copy.deepcopy(tx))
        return tx

    async def list_transactions(
        self, db: FakeSession, user_id: str, cursor_id: int | None,
        limit: int, tx_type: str | None,
    ) -> list[TokenTransaction]:
        rows = [
            t for t in reversed(self._store.state.transactions)
            if t.user_id == user_id
            and (cursor_id is None or (t.id or 0) < cursor_id)
            and (tx_type is None or t.type == tx_type)
        ]
        return copy.deepcopy(rows[:limit])


class FakeResolutionRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def insert_resolution(self, db: FakeSession, resolution: Resolution) -> None:
        db.begin_write()
        self._store.state.resolutions[resolution.market_id] = copy.deepcopy(resolution)

    async def insert_winner_payouts(
        self, db: FakeSession, payouts: list[WinnerPayout]
    ) -> None:
        db.begin_write()
        for p in payouts:
            stored = copy.deepcopy(p)
            stored.id = self._store.next_id()
            stored.created_at = datetime.now(UTC)
            self._store.state.winner_payouts.append(stored)

    async def insert_creator_payout(self, db: FakeSession, payout: CreatorPayout) -> None:
        db.begin_write()
        self._store.state.creator_payouts.append(copy.deepcopy(payout))

    async def insert_house_payout(self, db: FakeSession, payout: HousePayout) -> None:
        db.begin_write()
        self._store.state.house_payouts.append(copy.deepcopy(payout))

    async def append_logs(
        self, db: FakeSession, entries: list[ResolutionLogEntry]
    ) -> None:
        db.begin_write()
        for e in entries:
            stored = copy.deepcopy(e)
            stored.id = self._store.next_id()
            stored.created_at = datetime.now(UTC)
            self._store.state.logs.append(stored)

    async def get_resolution_by_market(
        self, db: FakeSession, market_id: str
    ) -> Resolution | None:
        return copy.deepcopy(self._store.state.resolutions.get(market_id))

    async def list_winner_payouts(
        self, db: FakeSession, resolution_id: str
    ) -> list[WinnerPayout]:
        return [p for p in self._store.state.winner_payouts if p.resolution_id == resolution_id]

    async def list_logs(self, db: FakeSession, market_id: str) -> list[ResolutionLogEntry]:
        return [e for e in self._store.state.logs if e.market_id == market_id]

    async def list_user_winner_payouts(
        self, db: FakeSession, user_id: str, limit: int
    ) -> list[WinnerPayout]:
        return [p for p in self._store.state.winner_payouts if p.user_id == user_id][:limit]

    async def list_user_creator_payouts(
        self, db: FakeSession, user_id: str, limit: int
    ) -> list[CreatorPayout]:
        return [p for p in self._store.state.creator_payouts if p.creator_id == user_id][:limit]


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


class Seeder:
    def __init__(self, store: InMemoryStore, db: FakeSession, commitments: CommitmentService) -> None:
        self._store = store
        self._db = db
        self._commitments = commitments

    def market(
        self,
        market_id: str = "mkt_1",
        options: tuple[str, ...] = ("yes", "no"),
        status: str = "active",
        creator: str = "creator-1",
        creator_fee_bps: int = 200,
    ) -> Market:
        market = Market(
            id=market_id,
            title=f"Market {market_id}",
            description=None,
            status=status,
            created_by=creator,
            creator_fee_bps=creator_fee_bps,
            end_at=None,
            options=[MarketOption(id=o, text=o.capitalize()) for o in options],
            created_at=datetime.now(UTC),
        )
        self._store.state.markets[market_id] = market
        return market

    def balance(self, user_id: str, available: int) -> None:
        self._store.state.balances[user_id] = UserBalance(
            user_id=user_id, available_tokens=available
        )

    async def stake(
        self, user_id: str, option_id: str, tokens: int, market_id: str = "mkt_1"
    ) -> Any:
        if user_id not in self._store.state.balances:
            self.balance(user_id, tokens)
        return await self._commitments.commit_tokens(
            self._db, user_id, market_id, option_id, tokens
        )

    def set_status(self, market_id: str, status: str) -> None:
        self._store.state.markets[market_id].status = status


@dataclass
class Repos:
    markets: FakeMarketRepository
    commitments: FakeCommitmentRepository
    balances: FakeBalanceRepository
    resolutions: FakeResolutionRepository


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def db(store: InMemoryStore) -> FakeSession:
    return FakeSession(store)


@pytest.fixture
def repos(store: InMemoryStore) -> Repos:
    return Repos(
        markets=FakeMarketRepository(store),
        commitments=FakeCommitmentRepository(store),
        balances=FakeBalanceRepository(store),
        resolutions=FakeResolutionRepository(store),
    )


@pytest.fixture
def commitment_service(repos: Repos) -> CommitmentService:
    return CommitmentService(
        commitments=repos.commitments, markets=repos.markets, balances=repos.balances
    )


@pytest.fixture
def engine(repos: Repos) -> ResolutionEngine:
    return ResolutionEngine(
        markets=repos.markets,
        commitments=repos.commitments,
        balances=repos.balances,
        resolutions=repos.resolutions,
    )


@pytest.fixture
def seed(store: InMemoryStore, db: FakeSession, commitment_service: CommitmentService) -> Seeder:
    return Seeder(store, db, commitment_service)
