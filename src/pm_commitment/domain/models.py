"""Commitment domain model — pure dataclass, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime


@dataclass
class Commitment:
    id: str
    user_id: str
    market_id: str
    option_id: str
    tokens_committed: int  # > 0, never changes after insert
    status: str = "active"  # CommitmentStatus value
    payout_amount: int = 0
    refund_amount: int = 0
    created_at: datetime | None = None
    resolved_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass(frozen=True)
class CommitmentOutcome:
    """Terminal status assigned to one commitment by a resolve or cancel."""

    commitment_id: str
    status: str  # won / lost / refunded / cancelled
    payout_amount: int = 0
    refund_amount: int = 0
