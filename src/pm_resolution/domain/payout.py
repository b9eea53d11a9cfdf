"""Pure payout computation for a market resolution.

No I/O: takes the active commitment ledger, returns a PayoutPlan. The
engine applies the plan inside one transaction; the admin preview shows it
without applying anything.

    total_pool    = sum(tokens over all active commitments)
    house_fee     = round(total_pool * house_fee_bps / 10000)
    creator_fee   = round(total_pool * creator_fee_bps / 10000)
    distributable = total_pool - house_fee - creator_fee
    payout_i      = floor(distributable * stake_i / winner_sum)

Whatever floor() leaves behind (at most winner_count - 1 tokens) stays with
the platform. With no winning stake the whole distributable pool does.
"""

from collections import defaultdict
from dataclasses import dataclass, field

from src.pm_commitment.domain.models import Commitment, CommitmentOutcome
from src.pm_common.enums import CommitmentStatus
from src.pm_common.tokens import calculate_fee, pro_rata_floor


@dataclass(frozen=True)
class PlannedPayout:
    commitment_id: str
    user_id: str
    option_id: str
    tokens_staked: int
    payout_amount: int

    @property
    def profit(self) -> int:
        return self.payout_amount - self.tokens_staked


@dataclass
class PayoutPlan:
    winning_option_id: str
    total_pool: int
    house_fee_bps: int
    house_fee: int
    creator_fee_bps: int
    creator_fee: int
    winner_sum: int
    winners: list[PlannedPayout] = field(default_factory=list)
    loser_commitment_ids: list[str] = field(default_factory=list)
    # user_id -> tokens to release from committed_tokens (winners and losers)
    stakes_by_user: dict[str, int] = field(default_factory=dict)

    @property
    def distributable(self) -> int:
        return self.total_pool - self.house_fee - self.creator_fee

    @property
    def total_payout(self) -> int:
        return sum(w.payout_amount for w in self.winners)

    @property
    def winner_count(self) -> int:
        return len(self.winners)

    @property
    def retained_remainder(self) -> int:
        return self.distributable - self.total_payout

    def payouts_by_user(self) -> dict[str, int]:
        totals: dict[str, int] = defaultdict(int)
        for w in self.winners:
            totals[w.user_id] += w.payout_amount
        return dict(totals)

    def outcomes(self) -> list[CommitmentOutcome]:
        won = [
            CommitmentOutcome(w.commitment_id, CommitmentStatus.WON.value, payout_amount=w.payout_amount)
            for w in self.winners
        ]
        lost = [
            CommitmentOutcome(cid, CommitmentStatus.LOST.value)
            for cid in self.loser_commitment_ids
        ]
        return won + lost


def compute_payout_plan(
    commitments: list[Commitment],
    winning_option_id: str,
    creator_fee_bps: int,
    house_fee_bps: int,
) -> PayoutPlan:
    """Split the pool of ``commitments`` between winners, creator and house.

    Only active commitments take part; anything else in the list is ignored.
    """
    active = [c for c in commitments if c.status == CommitmentStatus.ACTIVE]
    total_pool = sum(c.tokens_committed for c in active)
    winning = [c for c in active if c.option_id == winning_option_id]
    winner_sum = sum(c.tokens_committed for c in winning)

    plan = PayoutPlan(
        winning_option_id=winning_option_id,
        total_pool=total_pool,
        house_fee_bps=house_fee_bps,
        house_fee=calculate_fee(total_pool, house_fee_bps),
        creator_fee_bps=creator_fee_bps,
        creator_fee=calculate_fee(total_pool, creator_fee_bps),
        winner_sum=winner_sum,
        loser_commitment_ids=[c.id for c in active if c.option_id != winning_option_id],
    )

    stakes: dict[str, int] = defaultdict(int)
    for c in active:
        stakes[c.user_id] += c.tokens_committed
    plan.stakes_by_user = dict(stakes)

    if winner_sum == 0:
        return plan

    distributable = plan.distributable
    plan.winners = [
        PlannedPayout(
            commitment_id=c.id,
            user_id=c.user_id,
            option_id=c.option_id,
            tokens_staked=c.tokens_committed,
            payout_amount=pro_rata_floor(distributable, c.tokens_committed, winner_sum),
        )
        for c in winning
    ]
    return plan
