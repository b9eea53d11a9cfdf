# src/pm_market/domain/repository.py
"""Repository Protocol — dependency inversion for testability.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_market.domain.models import Market


class MarketRepositoryProtocol(Protocol):
    async def get_market_by_id(
        self, db: AsyncSession, market_id: str
    ) -> Market | None: ...

    async def get_market_for_update(
        self, db: AsyncSession, market_id: str
    ) -> Market | None: ...

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]: ...

    async def create_market(self, db: AsyncSession, market: Market) -> Market: ...

    async def update_creator_fee(
        self, db: AsyncSession, market_id: str, fee_bps: int
    ) -> None: ...

    async def record_stake(
        self,
        db: AsyncSession,
        market_id: str,
        option_id: str,
        tokens: int,
        new_market_participant: bool,
        new_option_participant: bool,
    ) -> None: ...

    async def mark_resolved(
        self,
        db: AsyncSession,
        market: Market,
        resolution_id: str,
        resolved_at: datetime,
    ) -> None: ...

    async def mark_cancelled(
        self,
        db: AsyncSession,
        market: Market,
        cancelled_by: str,
        reason: str,
        refund_tokens: bool,
        cancelled_at: datetime,
    ) -> None: ...

    async def zero_option_totals(self, db: AsyncSession, market_id: str) -> None: ...
