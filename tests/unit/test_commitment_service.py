"""CommitmentService.commit_tokens against in-memory repositories."""

import pytest

from config.settings import settings
from src.pm_common.errors import (
    InsufficientBalanceError,
    InvalidCommitmentError,
    MarketNotActiveError,
    MarketNotFoundError,
    OptionNotFoundError,
)


class TestCommitTokens:
    async def test_stake_moves_tokens_to_committed(
        self, commitment_service, db, store, seed
    ) -> None:
        seed.market()
        seed.balance("A", 1000)

        result = await commitment_service.commit_tokens(db, "A", "mkt_1", "yes", 250)

        assert result.commitment.id.startswith("cmt_")
        assert result.commitment.status == "active"
        assert result.available_tokens == 750
        assert result.committed_tokens == 250
        balance = store.state.balances["A"]
        assert (balance.available_tokens, balance.committed_tokens, balance.total_spent) == (
            750, 250, 250,
        )

    async def test_ledger_entry(self, commitment_service, db, store, seed) -> None:
        seed.market()
        seed.balance("A", 1000)

        result = await commitment_service.commit_tokens(db, "A", "mkt_1", "yes", 250)

        (tx,) = store.state.transactions
        assert tx.type == "commitment"
        assert tx.amount == -250
        assert tx.balance_after == 750
        assert tx.reference_id == result.commitment.id

    async def test_market_totals_and_participants(
        self, commitment_service, db, store, seed
    ) -> None:
        seed.market()
        seed.balance("A", 1000)
        seed.balance("B", 1000)

        await commitment_service.commit_tokens(db, "A", "mkt_1", "yes", 100)
        await commitment_service.commit_tokens(db, "A", "mkt_1", "yes", 50)
        await commitment_service.commit_tokens(db, "A", "mkt_1", "no", 10)
        await commitment_service.commit_tokens(db, "B", "mkt_1", "no", 40)

        market = store.state.markets["mkt_1"]
        assert market.total_tokens == 200
        assert market.participant_count == 2
        yes, no = market.options
        assert (yes.total_tokens, yes.participant_count) == (150, 1)
        assert (no.total_tokens, no.participant_count) == (50, 2)

    async def test_takes_market_lock(self, commitment_service, db, repos, seed) -> None:
        seed.market()
        seed.balance("A", 10)

        await commitment_service.commit_tokens(db, "A", "mkt_1", "yes", 10)

        assert repos.markets.locked == ["mkt_1"]
        assert db.commits == 1


class TestCommitTokensRejections:
    @pytest.mark.parametrize("tokens", [0, -1, settings.MAX_COMMITMENT_TOKENS + 1])
    async def test_amount_out_of_range(self, commitment_service, db, repos, seed, tokens) -> None:
        seed.market()
        seed.balance("A", 10**9)

        with pytest.raises(InvalidCommitmentError):
            await commitment_service.commit_tokens(db, "A", "mkt_1", "yes", tokens)
        assert repos.markets.locked == []

    async def test_unknown_market(self, commitment_service, db, seed) -> None:
        seed.balance("A", 100)
        with pytest.raises(MarketNotFoundError):
            await commitment_service.commit_tokens(db, "A", "mkt_404", "yes", 10)

    @pytest.mark.parametrize(
        "status", ["pending_resolution", "resolving", "resolved", "cancelled"]
    )
    async def test_market_not_active(self, commitment_service, db, store, seed, status) -> None:
        seed.market(status=status)
        seed.balance("A", 100)

        with pytest.raises(MarketNotActiveError):
            await commitment_service.commit_tokens(db, "A", "mkt_1", "yes", 10)
        assert store.state.balances["A"].available_tokens == 100

    async def test_option_not_in_market(self, commitment_service, db, seed) -> None:
        seed.market()
        seed.balance("A", 100)
        with pytest.raises(OptionNotFoundError):
            await commitment_service.commit_tokens(db, "A", "mkt_1", "maybe", 10)

    async def test_insufficient_balance(self, commitment_service, db, store, seed) -> None:
        seed.market()
        seed.balance("A", 99)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await commitment_service.commit_tokens(db, "A", "mkt_1", "yes", 100)

        assert "available 99" in exc_info.value.message
        assert store.state.commitments == {}
        assert store.state.markets["mkt_1"].total_tokens == 0

    async def test_user_without_balance_row(self, commitment_service, db, seed) -> None:
        seed.market()
        with pytest.raises(InsufficientBalanceError):
            await commitment_service.commit_tokens(db, "ghost", "mkt_1", "yes", 1)


class TestListMyCommitments:
    async def test_filters_and_paginates(self, commitment_service, db, seed) -> None:
        seed.market("mkt_1")
        seed.market("mkt_2")
        seed.balance("A", 1000)
        for _ in range(3):
            await seed.stake("A", "yes", 10, market_id="mkt_1")
        await seed.stake("A", "no", 10, market_id="mkt_2")

        page = await commitment_service.list_my_commitments(
            db, "A", market_id="mkt_1", status=None, cursor=None, limit=2
        )
        assert len(page.items) == 2
        assert page.has_more is True
        assert {c.market_id for c in page.items} == {"mkt_1"}

        rest = await commitment_service.list_my_commitments(
            db, "A", market_id="mkt_1", status=None, cursor=page.next_cursor, limit=2
        )
        assert len(rest.items) == 1
        assert rest.has_more is False

    async def test_status_filter(self, commitment_service, db, engine, seed) -> None:
        seed.market()
        seed.balance("A", 100)
        await seed.stake("A", "yes", 10)
        await engine.cancel(db, "mkt_1", "Organiser withdrew the event", "admin-1")

        active = await commitment_service.list_my_commitments(
            db, "A", market_id=None, status="active", cursor=None, limit=20
        )
        refunded = await commitment_service.list_my_commitments(
            db, "A", market_id=None, status="refunded", cursor=None, limit=20
        )
        assert active.items == []
        assert [c.refund_amount for c in refunded.items] == [10]
