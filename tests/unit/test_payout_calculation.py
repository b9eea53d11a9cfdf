"""Unit tests for the pure payout computation."""

import pytest

from src.pm_commitment.domain.models import Commitment
from src.pm_resolution.domain.payout import compute_payout_plan


def _c(cid: str, user: str, option: str, tokens: int, status: str = "active") -> Commitment:
    return Commitment(
        id=cid, user_id=user, market_id="mkt_1", option_id=option,
        tokens_committed=tokens, status=status,
    )


class TestScenario:
    """A stakes 600 on yes, B stakes 400 on no, 2% house, 2% creator."""

    @pytest.fixture
    def plan(self):
        return compute_payout_plan(
            [_c("c1", "A", "yes", 600), _c("c2", "B", "no", 400)],
            winning_option_id="yes",
            creator_fee_bps=200,
            house_fee_bps=200,
        )

    def test_pool_and_fees(self, plan) -> None:
        assert plan.total_pool == 1000
        assert plan.house_fee == 20
        assert plan.creator_fee == 20
        assert plan.distributable == 960

    def test_winner_payout(self, plan) -> None:
        assert plan.winner_count == 1
        (winner,) = plan.winners
        assert winner.user_id == "A"
        assert winner.payout_amount == 960
        assert winner.profit == 360
        assert plan.total_payout == 960
        assert plan.retained_remainder == 0

    def test_loser_listed(self, plan) -> None:
        assert plan.loser_commitment_ids == ["c2"]

    def test_outcomes(self, plan) -> None:
        outcomes = {o.commitment_id: o for o in plan.outcomes()}
        assert outcomes["c1"].status == "won"
        assert outcomes["c1"].payout_amount == 960
        assert outcomes["c2"].status == "lost"
        assert outcomes["c2"].payout_amount == 0

    def test_every_participant_stake_released(self, plan) -> None:
        assert plan.stakes_by_user == {"A": 600, "B": 400}


class TestConservation:
    def test_floor_remainder_bounded_by_winner_count(self) -> None:
        # pool 101: fees 2 + 2, distributable 97 split three ways -> 32 each
        commitments = [
            _c("c1", "A", "yes", 1),
            _c("c2", "B", "yes", 1),
            _c("c3", "C", "yes", 1),
            _c("c4", "D", "no", 98),
        ]
        plan = compute_payout_plan(commitments, "yes", 200, 200)
        assert [w.payout_amount for w in plan.winners] == [32, 32, 32]
        assert plan.retained_remainder == 1
        assert plan.retained_remainder <= plan.winner_count - 1

    @pytest.mark.parametrize(
        "stakes,creator_bps",
        [
            ([("yes", 7), ("yes", 13), ("no", 29), ("maybe", 3)], 100),
            ([("yes", 333), ("yes", 333), ("yes", 334), ("no", 1)], 500),
            ([("no", 5), ("yes", 9999), ("yes", 1)], 250),
            ([("yes", 17)], 300),
        ],
    )
    def test_fees_plus_payouts_never_exceed_pool(self, stakes, creator_bps) -> None:
        commitments = [
            _c(f"c{i}", f"u{i}", option, tokens) for i, (option, tokens) in enumerate(stakes)
        ]
        plan = compute_payout_plan(commitments, "yes", creator_bps, 200)
        spent = plan.house_fee + plan.creator_fee + plan.total_payout
        assert spent <= plan.total_pool
        assert plan.total_pool - spent <= plan.winner_count - 1

    def test_single_winner_gets_whole_distributable(self) -> None:
        plan = compute_payout_plan(
            [_c("c1", "A", "yes", 77), _c("c2", "B", "no", 123)], "yes", 300, 200
        )
        assert plan.total_payout == plan.distributable


class TestEdgeCases:
    def test_no_winners_retains_distributable(self) -> None:
        plan = compute_payout_plan(
            [_c("c1", "A", "no", 500), _c("c2", "B", "no", 500)], "yes", 200, 200
        )
        assert plan.winner_count == 0
        assert plan.total_payout == 0
        assert plan.retained_remainder == plan.distributable == 960
        assert plan.stakes_by_user == {"A": 500, "B": 500}
        assert {o.status for o in plan.outcomes()} == {"lost"}

    def test_empty_pool(self) -> None:
        plan = compute_payout_plan([], "yes", 200, 200)
        assert plan.total_pool == 0
        assert plan.house_fee == 0
        assert plan.creator_fee == 0
        assert plan.winners == []
        assert plan.outcomes() == []

    def test_non_active_commitments_ignored(self) -> None:
        plan = compute_payout_plan(
            [_c("c1", "A", "yes", 100), _c("c2", "B", "yes", 900, status="refunded")],
            "yes", 200, 200,
        )
        assert plan.total_pool == 100
        assert [w.commitment_id for w in plan.winners] == ["c1"]

    def test_same_user_multiple_commitments(self) -> None:
        plan = compute_payout_plan(
            [
                _c("c1", "A", "yes", 300),
                _c("c2", "A", "yes", 300),
                _c("c3", "A", "no", 100),
                _c("c4", "B", "no", 300),
            ],
            "yes", 200, 200,
        )
        # pool 1000, distributable 960 split evenly between A's two winning commitments
        assert plan.payouts_by_user() == {"A": 960}
        assert plan.stakes_by_user == {"A": 700, "B": 300}
