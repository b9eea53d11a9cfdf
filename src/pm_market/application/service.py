"""MarketApplicationService — thin composition layer.

Read paths run without an explicit transaction. Mutations (create, creator
fee) run inside unit_of_work() and take the market row lock first.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.errors import InvalidMarketError, MarketNotFoundError
from src.pm_common.id_generator import generate_id
from src.pm_common.tokens import bps_to_fraction
from src.pm_common.transaction import unit_of_work
from src.pm_market.application.schemas import (
    CreateMarketRequest,
    CreatorFeeResponse,
    MarketDetail,
    MarketListItem,
    MarketListResponse,
    cursor_decode,
    cursor_encode,
)
from src.pm_market.domain.constants import MIN_OPTIONS
from src.pm_market.domain.fees import validate_creator_fee_fraction
from src.pm_market.domain.models import Market, MarketOption
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.domain.state import ensure_not_terminal
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


class MarketApplicationService:
    def __init__(self, repo: MarketRepositoryProtocol | None = None) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> MarketListResponse:
        # status=None → default active; status='all' → no filter
        sql_status = None if status == "all" else (status or "active")
        cursor_ts, cursor_id = cursor_decode(cursor)

        # Fetch limit+1 to detect has_more without COUNT(*)
        markets = await self._repo.list_markets(
            db, sql_status, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(markets) > limit
        page = markets[:limit]

        items = [MarketListItem.from_domain(m) for m in page]
        next_cursor = cursor_encode(page[-1]) if has_more and page else None
        return MarketListResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def get_market(self, db: AsyncSession, market_id: str) -> MarketDetail:
        market = await self._repo.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return MarketDetail.from_domain(market)

    async def create_market(
        self, db: AsyncSession, body: CreateMarketRequest, admin_id: str
    ) -> MarketDetail:
        option_ids = [opt.id for opt in body.options]
        if len(option_ids) < MIN_OPTIONS:
            raise InvalidMarketError(f"at least {MIN_OPTIONS} options are required")
        if len(set(option_ids)) != len(option_ids):
            raise InvalidMarketError("option ids must be unique")
        fee_bps = validate_creator_fee_fraction(body.creator_fee_percentage)

        market = Market(
            id=generate_id("mkt"),
            title=body.title.strip(),
            description=body.description,
            status="active",
            created_by=body.creator_id or admin_id,
            creator_fee_bps=fee_bps,
            end_at=body.end_at,
            options=[MarketOption(id=o.id, text=o.text.strip()) for o in body.options],
        )
        async with unit_of_work(db):
            created = await self._repo.create_market(db, market)
        logger.info(
            "Market created: id=%s options=%d creator=%s by admin=%s",
            created.id, len(created.options), created.created_by, admin_id,
        )
        return MarketDetail.from_domain(created)

    async def update_creator_fee(
        self, db: AsyncSession, market_id: str, fee_fraction: float, admin_id: str
    ) -> CreatorFeeResponse:
        fee_bps = validate_creator_fee_fraction(fee_fraction)
        async with unit_of_work(db):
            market = await self._repo.get_market_for_update(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            ensure_not_terminal(market_id, market.status)
            await self._repo.update_creator_fee(db, market_id, fee_bps)
        logger.info(
            "Creator fee updated: market=%s %d -> %d bps by admin=%s",
            market_id, market.creator_fee_bps, fee_bps, admin_id,
        )
        return CreatorFeeResponse(
            market_id=market_id,
            creator_fee_bps=fee_bps,
            creator_fee_percentage=bps_to_fraction(fee_bps),
        )
