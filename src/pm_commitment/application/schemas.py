"""Pydantic schemas for pm_commitment API requests and responses."""

from pydantic import BaseModel, Field

from src.pm_commitment.domain.models import Commitment
from src.pm_common.datetime_utils import iso_or_none


class CommitTokensRequest(BaseModel):
    market_id: str = Field(..., min_length=1)
    option_id: str = Field(..., min_length=1)
    tokens: int = Field(..., description="Tokens to stake, 1 to MAX_COMMITMENT_TOKENS")


class CommitmentResponse(BaseModel):
    id: str
    market_id: str
    option_id: str
    tokens_committed: int
    status: str
    payout_amount: int
    refund_amount: int
    created_at: str | None
    resolved_at: str | None

    @classmethod
    def from_domain(cls, c: Commitment) -> "CommitmentResponse":
        return cls(
            id=c.id,
            market_id=c.market_id,
            option_id=c.option_id,
            tokens_committed=c.tokens_committed,
            status=c.status,
            payout_amount=c.payout_amount,
            refund_amount=c.refund_amount,
            created_at=iso_or_none(c.created_at),
            resolved_at=iso_or_none(c.resolved_at),
        )


class CommitTokensResponse(BaseModel):
    commitment: CommitmentResponse
    available_tokens: int
    committed_tokens: int


class CommitmentListResponse(BaseModel):
    items: list[CommitmentResponse]
    next_cursor: str | None  # last commitment id of the page
    has_more: bool
