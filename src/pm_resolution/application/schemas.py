"""Pydantic schemas for resolution, cancellation, preview and payout history.

Request bodies are deliberately loose (plain str / optional floats): the
engine owns the business validation so that every rejection carries the
same error code and category whether it comes over HTTP or not.
"""

from typing import Any

from pydantic import BaseModel, Field

from src.pm_common.datetime_utils import iso_or_none
from src.pm_common.tokens import bps_to_fraction
from src.pm_resolution.domain.models import (
    CreatorPayout,
    Evidence,
    Resolution,
    ResolutionLogEntry,
    WinnerPayout,
)
from src.pm_resolution.domain.payout import PayoutPlan, PlannedPayout

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class EvidenceIn(BaseModel):
    type: str
    content: str = ""
    description: str | None = None

    def to_domain(self) -> Evidence:
        return Evidence(type=self.type, content=self.content, description=self.description)


class ResolveMarketRequest(BaseModel):
    winning_option_id: str | None = None
    evidence: list[EvidenceIn] = Field(default_factory=list)
    creator_fee_percentage: float | None = Field(
        None, description="Overrides the market's stored creator fee, 0.01-0.05"
    )


class CancelMarketRequest(BaseModel):
    reason: str = ""
    refund_tokens: bool = True


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ResolveMarketResponse(BaseModel):
    resolution_id: str
    market_id: str
    winning_option_id: str
    total_pool: int
    total_payout: int
    winner_count: int
    house_fee_amount: int
    creator_fee_amount: int
    retained_remainder: int
    resolved_at: str | None

    @classmethod
    def from_domain(cls, r: Resolution) -> "ResolveMarketResponse":
        return cls(
            resolution_id=r.id,
            market_id=r.market_id,
            winning_option_id=r.winning_option_id,
            total_pool=r.total_pool,
            total_payout=r.total_payout,
            winner_count=r.winner_count,
            house_fee_amount=r.house_fee_amount,
            creator_fee_amount=r.creator_fee_amount,
            retained_remainder=r.retained_remainder,
            resolved_at=iso_or_none(r.resolved_at),
        )


class CancelMarketResponse(BaseModel):
    market_id: str
    refund_tokens: bool
    total_tokens_refunded: int
    users_refunded: int
    commitments_affected: int
    cancelled_at: str | None


class PreviewPayoutItem(BaseModel):
    commitment_id: str
    user_id: str
    tokens_staked: int
    payout_amount: int
    profit: int

    @classmethod
    def from_planned(cls, p: PlannedPayout) -> "PreviewPayoutItem":
        return cls(
            commitment_id=p.commitment_id,
            user_id=p.user_id,
            tokens_staked=p.tokens_staked,
            payout_amount=p.payout_amount,
            profit=p.profit,
        )


class PayoutPreviewResponse(BaseModel):
    market_id: str
    winning_option_id: str
    total_pool: int
    house_fee_amount: int
    house_fee_percentage: float
    creator_fee_amount: int
    creator_fee_percentage: float
    distributable: int
    winner_count: int
    total_payout: int
    largest_payout: int
    smallest_payout: int
    retained_remainder: int
    payouts: list[PreviewPayoutItem]

    @classmethod
    def from_plan(cls, market_id: str, plan: PayoutPlan) -> "PayoutPreviewResponse":
        amounts = [w.payout_amount for w in plan.winners]
        return cls(
            market_id=market_id,
            winning_option_id=plan.winning_option_id,
            total_pool=plan.total_pool,
            house_fee_amount=plan.house_fee,
            house_fee_percentage=bps_to_fraction(plan.house_fee_bps),
            creator_fee_amount=plan.creator_fee,
            creator_fee_percentage=bps_to_fraction(plan.creator_fee_bps),
            distributable=plan.distributable,
            winner_count=plan.winner_count,
            total_payout=plan.total_payout,
            largest_payout=max(amounts, default=0),
            smallest_payout=min(amounts, default=0),
            retained_remainder=plan.retained_remainder,
            payouts=[PreviewPayoutItem.from_planned(w) for w in plan.winners],
        )


class WinnerPayoutOut(BaseModel):
    resolution_id: str
    market_id: str
    commitment_id: str
    user_id: str
    option_id: str
    tokens_staked: int
    payout_amount: int
    profit: int
    status: str
    created_at: str | None

    @classmethod
    def from_domain(cls, p: WinnerPayout) -> "WinnerPayoutOut":
        return cls(
            resolution_id=p.resolution_id,
            market_id=p.market_id,
            commitment_id=p.commitment_id,
            user_id=p.user_id,
            option_id=p.option_id,
            tokens_staked=p.tokens_staked,
            payout_amount=p.payout_amount,
            profit=p.profit,
            status=p.status,
            created_at=iso_or_none(p.created_at),
        )


class CreatorPayoutOut(BaseModel):
    resolution_id: str
    market_id: str
    creator_id: str
    fee_amount: int
    fee_percentage: float
    status: str
    created_at: str | None

    @classmethod
    def from_domain(cls, p: CreatorPayout) -> "CreatorPayoutOut":
        return cls(
            resolution_id=p.resolution_id,
            market_id=p.market_id,
            creator_id=p.creator_id,
            fee_amount=p.fee_amount,
            fee_percentage=bps_to_fraction(p.fee_bps),
            status=p.status,
            created_at=iso_or_none(p.created_at),
        )


class ResolutionDetail(BaseModel):
    id: str
    market_id: str
    winning_option_id: str
    evidence: list[dict[str, Any]]
    resolved_by: str
    resolved_at: str | None
    status: str
    total_pool: int
    total_payout: int
    winner_count: int
    house_fee_amount: int
    creator_fee_amount: int
    retained_remainder: int
    payouts: list[WinnerPayoutOut]

    @classmethod
    def from_domain(
        cls, r: Resolution, payouts: list[WinnerPayout]
    ) -> "ResolutionDetail":
        return cls(
            id=r.id,
            market_id=r.market_id,
            winning_option_id=r.winning_option_id,
            evidence=[e.to_dict() for e in r.evidence],
            resolved_by=r.resolved_by,
            resolved_at=iso_or_none(r.resolved_at),
            status=r.status,
            total_pool=r.total_pool,
            total_payout=r.total_payout,
            winner_count=r.winner_count,
            house_fee_amount=r.house_fee_amount,
            creator_fee_amount=r.creator_fee_amount,
            retained_remainder=r.retained_remainder,
            payouts=[WinnerPayoutOut.from_domain(p) for p in payouts],
        )


class ResolutionLogItem(BaseModel):
    id: int | None
    action: str
    admin_id: str
    details: dict[str, Any]
    created_at: str | None

    @classmethod
    def from_domain(cls, e: ResolutionLogEntry) -> "ResolutionLogItem":
        return cls(
            id=e.id,
            action=e.action,
            admin_id=e.admin_id,
            details=e.details,
            created_at=iso_or_none(e.created_at),
        )


class ResolutionLogListResponse(BaseModel):
    market_id: str
    items: list[ResolutionLogItem]


class UserPayoutsResponse(BaseModel):
    user_id: str
    winner_payouts: list[WinnerPayoutOut]
    creator_payouts: list[CreatorPayoutOut]
    total_winnings: int
    total_creator_fees: int
    total_received: int
