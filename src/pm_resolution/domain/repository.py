"""Repository Protocol for resolution records, payouts and the audit trail."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_resolution.domain.models import (
    CreatorPayout,
    HousePayout,
    Resolution,
    ResolutionLogEntry,
    WinnerPayout,
)


class ResolutionRepositoryProtocol(Protocol):
    async def insert_resolution(self, db: AsyncSession, resolution: Resolution) -> None: ...

    async def insert_winner_payouts(
        self, db: AsyncSession, payouts: list[WinnerPayout]
    ) -> None: ...

    async def insert_creator_payout(self, db: AsyncSession, payout: CreatorPayout) -> None: ...

    async def insert_house_payout(self, db: AsyncSession, payout: HousePayout) -> None: ...

    async def append_logs(
        self, db: AsyncSession, entries: list[ResolutionLogEntry]
    ) -> None: ...

    async def get_resolution_by_market(
        self, db: AsyncSession, market_id: str
    ) -> Resolution | None: ...

    async def list_winner_payouts(
        self, db: AsyncSession, resolution_id: str
    ) -> list[WinnerPayout]: ...

    async def list_logs(
        self, db: AsyncSession, market_id: str
    ) -> list[ResolutionLogEntry]: ...

    async def list_user_winner_payouts(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[WinnerPayout]: ...

    async def list_user_creator_payouts(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[CreatorPayout]: ...
