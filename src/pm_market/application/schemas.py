"""Pydantic schemas for pm_market API requests and responses.

Cursor format for markets (VARCHAR PK, not sequential):
  {"ts": "<created_at ISO>", "id": "<market_id>"}
  Encoded as Base64 JSON string.

Fee rates travel as fractions on the wire (0.02) and as basis points
everywhere else.
"""

import base64
import json
from datetime import datetime

from pydantic import BaseModel, Field

from src.pm_common.datetime_utils import iso_or_none
from src.pm_common.tokens import bps_to_fraction
from src.pm_market.domain.constants import DEFAULT_CREATOR_FEE_BPS
from src.pm_market.domain.models import Market, MarketOption

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_market: Market) -> str:
    """Encode composite cursor from last market in page."""
    payload = {
        "ts": last_market.created_at.isoformat() if last_market.created_at else None,
        "id": last_market.id,
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[str | None, str | None]:
    """Decode composite cursor -> (ts_iso, market_id), or (None, None) on error."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        return data["ts"], data["id"]
    except Exception:
        return None, None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class OptionIn(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    text: str = Field(..., min_length=1, max_length=200)


class CreateMarketRequest(BaseModel):
    title: str = Field(..., min_length=5, max_length=500)
    description: str | None = Field(None, max_length=5000)
    options: list[OptionIn] = Field(..., min_length=2)
    end_at: datetime | None = None
    creator_id: str | None = Field(
        None, description="Creator credited with the fee. Defaults to the calling admin."
    )
    creator_fee_percentage: float = Field(bps_to_fraction(DEFAULT_CREATOR_FEE_BPS))


class UpdateCreatorFeeRequest(BaseModel):
    fee_percentage: float = Field(..., description="1%-5% as decimal")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class OptionOut(BaseModel):
    id: str
    text: str
    total_tokens: int
    participant_count: int
    share: float   # fraction of market tokens staked on this option

    @classmethod
    def from_domain(cls, opt: MarketOption, market_total: int) -> "OptionOut":
        return cls(
            id=opt.id,
            text=opt.text,
            total_tokens=opt.total_tokens,
            participant_count=opt.participant_count,
            share=round(opt.total_tokens / market_total, 4) if market_total else 0.0,
        )


class MarketListItem(BaseModel):
    id: str
    title: str
    status: str
    total_tokens: int
    participant_count: int
    options: list[OptionOut]
    end_at: str | None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketListItem":
        return cls(
            id=m.id,
            title=m.title,
            status=m.status,
            total_tokens=m.total_tokens,
            participant_count=m.participant_count,
            options=[OptionOut.from_domain(o, m.total_tokens) for o in m.options],
            end_at=iso_or_none(m.end_at),
        )


class MarketListResponse(BaseModel):
    items: list[MarketListItem]
    next_cursor: str | None
    has_more: bool


class MarketDetail(BaseModel):
    id: str
    title: str
    description: str | None
    status: str
    created_by: str
    creator_fee_bps: int
    creator_fee_percentage: float
    total_tokens: int
    participant_count: int
    options: list[OptionOut]
    end_at: str | None
    resolution_id: str | None
    resolved_at: str | None
    cancelled_at: str | None
    cancellation_reason: str | None
    refund_tokens: bool | None
    created_at: str | None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketDetail":
        return cls(
            id=m.id,
            title=m.title,
            description=m.description,
            status=m.status,
            created_by=m.created_by,
            creator_fee_bps=m.creator_fee_bps,
            creator_fee_percentage=bps_to_fraction(m.creator_fee_bps),
            total_tokens=m.total_tokens,
            participant_count=m.participant_count,
            options=[OptionOut.from_domain(o, m.total_tokens) for o in m.options],
            end_at=iso_or_none(m.end_at),
            resolution_id=m.resolution_id,
            resolved_at=iso_or_none(m.resolved_at),
            cancelled_at=iso_or_none(m.cancelled_at),
            cancellation_reason=m.cancellation_reason,
            refund_tokens=m.refund_tokens,
            created_at=iso_or_none(m.created_at),
        )


class CreatorFeeResponse(BaseModel):
    market_id: str
    creator_fee_bps: int
    creator_fee_percentage: float
