"""Cancellation plan: which commitments end how, and who gets what back."""

from collections import defaultdict
from dataclasses import dataclass, field

from src.pm_commitment.domain.models import Commitment, CommitmentOutcome
from src.pm_common.enums import CommitmentStatus


@dataclass
class RefundPlan:
    refund_tokens: bool
    outcomes: list[CommitmentOutcome] = field(default_factory=list)
    # user_id -> tokens returned; empty when refund_tokens is False
    refunds_by_user: dict[str, int] = field(default_factory=dict)
    total_pool: int = 0

    @property
    def total_refunded(self) -> int:
        return sum(self.refunds_by_user.values())

    @property
    def users_refunded(self) -> int:
        return len(self.refunds_by_user)


def build_refund_plan(commitments: list[Commitment], refund_tokens: bool) -> RefundPlan:
    active = [c for c in commitments if c.status == CommitmentStatus.ACTIVE]
    plan = RefundPlan(
        refund_tokens=refund_tokens,
        total_pool=sum(c.tokens_committed for c in active),
    )
    if not refund_tokens:
        plan.outcomes = [
            CommitmentOutcome(c.id, CommitmentStatus.CANCELLED.value) for c in active
        ]
        return plan

    refunds: dict[str, int] = defaultdict(int)
    for c in active:
        refunds[c.user_id] += c.tokens_committed
    plan.outcomes = [
        CommitmentOutcome(c.id, CommitmentStatus.REFUNDED.value, refund_amount=c.tokens_committed)
        for c in active
    ]
    plan.refunds_by_user = dict(refunds)
    return plan
