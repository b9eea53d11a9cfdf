"""Pydantic schemas and cursor utilities for pm_account API."""

import base64
import json
from typing import Any

from pydantic import BaseModel, Field

from src.pm_account.domain.models import TokenTransaction, UserBalance
from src.pm_common.datetime_utils import iso_or_none
from src.pm_common.tokens import tokens_to_display

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except Exception:
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class IssueTokensRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0, description="Tokens to credit to available balance")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    available_tokens: int
    committed_tokens: int
    total_tokens: int
    total_tokens_display: str
    total_earned: int
    total_spent: int

    @classmethod
    def from_domain(cls, balance: UserBalance) -> "BalanceResponse":
        return cls(
            user_id=balance.user_id,
            available_tokens=balance.available_tokens,
            committed_tokens=balance.committed_tokens,
            total_tokens=balance.total_tokens,
            total_tokens_display=tokens_to_display(balance.total_tokens),
            total_earned=balance.total_earned,
            total_spent=balance.total_spent,
        )


class IssueTokensResponse(BaseModel):
    user_id: str
    issued: int
    available_tokens: int
    transaction_id: int | None


class TransactionItem(BaseModel):
    id: int
    type: str
    amount: int
    balance_after: int
    market_id: str | None
    reference_id: str | None
    description: str | None
    metadata: dict[str, Any]
    created_at: str | None

    @classmethod
    def from_domain(cls, tx: TokenTransaction) -> "TransactionItem":
        return cls(
            id=tx.id or 0,
            type=tx.type,
            amount=tx.amount,
            balance_after=tx.balance_after,
            market_id=tx.market_id,
            reference_id=tx.reference_id,
            description=tx.description,
            metadata=tx.metadata,
            created_at=iso_or_none(tx.created_at),
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
    next_cursor: str | None
    has_more: bool
