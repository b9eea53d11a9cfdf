"""Repository Protocol — dependency inversion for testability.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.

Every balance mutation is a single atomic statement executed inside the
caller's transaction. Never read a balance, change it in Python and write
it back.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import TokenTransaction, UserBalance


class BalanceRepositoryProtocol(Protocol):
    async def get_balance(
        self, db: AsyncSession, user_id: str
    ) -> UserBalance | None: ...

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        release_committed: int = 0,
        earned: int = 0,
    ) -> UserBalance: ...

    async def stake(
        self, db: AsyncSession, user_id: str, amount: int
    ) -> UserBalance: ...

    async def record_transaction(
        self, db: AsyncSession, tx: TokenTransaction
    ) -> TokenTransaction: ...

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        tx_type: str | None,
    ) -> list[TokenTransaction]: ...
