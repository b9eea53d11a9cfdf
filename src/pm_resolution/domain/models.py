"""Domain models for pm_resolution — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Evidence:
    type: str  # EvidenceType value
    content: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "content": self.content, "description": self.description}


@dataclass
class Resolution:
    id: str
    market_id: str
    winning_option_id: str
    evidence: list[Evidence]
    resolved_by: str
    resolved_at: datetime
    total_pool: int
    total_payout: int
    winner_count: int
    house_fee_amount: int
    house_fee_bps: int
    creator_fee_amount: int
    creator_fee_bps: int
    status: str = "completed"
    created_at: datetime | None = None

    @property
    def retained_remainder(self) -> int:
        return (
            self.total_pool
            - self.house_fee_amount
            - self.creator_fee_amount
            - self.total_payout
        )


@dataclass
class WinnerPayout:
    resolution_id: str
    market_id: str
    commitment_id: str
    user_id: str
    option_id: str
    tokens_staked: int
    payout_amount: int
    status: str = "completed"
    id: int | None = None
    created_at: datetime | None = None

    @property
    def profit(self) -> int:
        return self.payout_amount - self.tokens_staked


@dataclass
class CreatorPayout:
    resolution_id: str
    market_id: str
    creator_id: str
    fee_amount: int
    fee_bps: int
    status: str = "completed"
    id: int | None = None
    created_at: datetime | None = None


@dataclass
class HousePayout:
    """Platform share of a pool. Recorded for audit, credited to nobody."""

    resolution_id: str
    market_id: str
    fee_amount: int
    fee_bps: int
    id: int | None = None
    created_at: datetime | None = None


@dataclass
class ResolutionLogEntry:
    market_id: str
    action: str  # ResolutionAction value
    admin_id: str
    details: dict[str, Any] = field(default_factory=dict)
    id: int | None = None
    created_at: datetime | None = None
