"""Domain models for pm_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class UserBalance:
    user_id: str
    available_tokens: int = 0
    committed_tokens: int = 0    # staked on markets that have not settled yet
    total_earned: int = 0        # payouts + creator fees received
    total_spent: int = 0         # tokens ever staked
    version: int = 0
    updated_at: datetime | None = None

    @property
    def total_tokens(self) -> int:
        return self.available_tokens + self.committed_tokens


@dataclass
class TokenTransaction:
    user_id: str
    type: str                        # TransactionType value
    amount: int                      # positive=credit negative=debit
    balance_after: int               # available_tokens snapshot after op
    market_id: str | None = None
    reference_id: str | None = None  # commitment / resolution id
    description: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: int | None = None            # BIGSERIAL, assigned on insert
    created_at: datetime | None = None
