"""AccountApplicationService — thin composition layer.

Combines repository calls with schema transformations.
Token issuance runs inside unit_of_work(); balance and ledger reads run
without an explicit transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.schemas import (
    BalanceResponse,
    IssueTokensResponse,
    TransactionItem,
    TransactionListResponse,
    cursor_decode,
    cursor_encode,
)
from src.pm_account.domain.models import TokenTransaction, UserBalance
from src.pm_account.domain.repository import BalanceRepositoryProtocol
from src.pm_account.infrastructure.persistence import BalanceRepository
from src.pm_common.enums import TransactionType
from src.pm_common.errors import InvalidTokenAmountError
from src.pm_common.transaction import unit_of_work

logger = logging.getLogger(__name__)


class AccountApplicationService:
    def __init__(self, repo: BalanceRepositoryProtocol | None = None) -> None:
        self._repo: BalanceRepositoryProtocol = repo or BalanceRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        balance = await self._repo.get_balance(db, user_id)
        # Users without a row have simply never received tokens
        if balance is None:
            balance = UserBalance(user_id=user_id)
        return BalanceResponse.from_domain(balance)

    async def issue_tokens(
        self, db: AsyncSession, user_id: str, amount: int, admin_id: str
    ) -> IssueTokensResponse:
        if amount <= 0:
            raise InvalidTokenAmountError(amount)
        async with unit_of_work(db):
            balance = await self._repo.credit(db, user_id, amount)
            tx = await self._repo.record_transaction(
                db,
                TokenTransaction(
                    user_id=user_id,
                    type=TransactionType.ISSUANCE.value,
                    amount=amount,
                    balance_after=balance.available_tokens,
                    description="Tokens issued by admin",
                    metadata={"admin_id": admin_id},
                ),
            )
        logger.info("Issued %d tokens to user=%s by admin=%s", amount, user_id, admin_id)
        return IssueTokensResponse(
            user_id=user_id,
            issued=amount,
            available_tokens=balance.available_tokens,
            transaction_id=tx.id,
        )

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        tx_type: str | None,
    ) -> TransactionListResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        txs = await self._repo.list_transactions(db, user_id, cursor_id, limit + 1, tx_type)
        has_more = len(txs) > limit
        page = txs[:limit]

        items = [TransactionItem.from_domain(tx) for tx in page]
        next_cursor = cursor_encode(page[-1].id) if has_more and page and page[-1].id else None
        return TransactionListResponse(items=items, next_cursor=next_cursor, has_more=has_more)
