"""Domain models for pm_market — pure dataclasses, no business logic."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class MarketOption:
    id: str
    text: str
    total_tokens: int = 0
    participant_count: int = 0


@dataclass
class Market:
    id: str
    title: str
    description: str | None
    status: str
    created_by: str                  # creator user id, receives the creator fee
    creator_fee_bps: int             # 100..500
    end_at: datetime | None
    options: list[MarketOption] = field(default_factory=list)
    total_tokens: int = 0
    participant_count: int = 0
    resolution_id: str | None = None
    resolved_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    refund_tokens: bool | None = None
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def option(self, option_id: str) -> MarketOption | None:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None

    @property
    def option_ids(self) -> list[str]:
        return [opt.id for opt in self.options]
