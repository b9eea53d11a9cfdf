"""Repository Protocol — dependency inversion for testability."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_commitment.domain.models import Commitment, CommitmentOutcome


class CommitmentRepositoryProtocol(Protocol):
    async def list_active_for_market(
        self, db: AsyncSession, market_id: str, for_update: bool = False
    ) -> list[Commitment]: ...

    async def get_user_option_ids(
        self, db: AsyncSession, market_id: str, user_id: str
    ) -> set[str]: ...

    async def create_commitment(
        self, db: AsyncSession, commitment: Commitment
    ) -> Commitment: ...

    async def mark_outcomes(
        self,
        db: AsyncSession,
        outcomes: list[CommitmentOutcome],
        resolved_at: datetime,
    ) -> None: ...

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Commitment]: ...
