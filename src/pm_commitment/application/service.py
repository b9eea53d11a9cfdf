"""CommitmentService — the stake path.

commit_tokens takes the same market row lock as resolution and
cancellation, so a stake can never interleave with a payout run: either it
commits before the resolver reads the ledger, or it blocks and then sees a
non-active market.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.models import TokenTransaction
from src.pm_account.domain.repository import BalanceRepositoryProtocol
from src.pm_account.infrastructure.persistence import BalanceRepository
from src.pm_commitment.application.schemas import (
    CommitmentListResponse,
    CommitmentResponse,
    CommitTokensResponse,
)
from src.pm_commitment.domain.models import Commitment
from src.pm_commitment.domain.repository import CommitmentRepositoryProtocol
from src.pm_commitment.infrastructure.persistence import CommitmentRepository
from src.pm_common.enums import MarketStatus, TransactionType
from src.pm_common.errors import (
    InvalidCommitmentError,
    MarketNotActiveError,
    MarketNotFoundError,
    OptionNotFoundError,
)
from src.pm_common.id_generator import generate_id
from src.pm_common.transaction import unit_of_work
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository

logger = logging.getLogger(__name__)


class CommitmentService:
    def __init__(
        self,
        commitments: CommitmentRepositoryProtocol | None = None,
        markets: MarketRepositoryProtocol | None = None,
        balances: BalanceRepositoryProtocol | None = None,
    ) -> None:
        self._commitments: CommitmentRepositoryProtocol = commitments or CommitmentRepository()
        self._markets: MarketRepositoryProtocol = markets or MarketRepository()
        self._balances: BalanceRepositoryProtocol = balances or BalanceRepository()

    async def commit_tokens(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        option_id: str,
        tokens: int,
    ) -> CommitTokensResponse:
        if tokens < 1 or tokens > settings.MAX_COMMITMENT_TOKENS:
            raise InvalidCommitmentError(
                f"tokens must be between 1 and {settings.MAX_COMMITMENT_TOKENS}, got {tokens}"
            )

        async with unit_of_work(db):
            market = await self._markets.get_market_for_update(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            if market.status != MarketStatus.ACTIVE:
                raise MarketNotActiveError(market_id, market.status)
            if market.option(option_id) is None:
                raise OptionNotFoundError(market_id, option_id)

            held_options = await self._commitments.get_user_option_ids(db, market_id, user_id)
            balance = await self._balances.stake(db, user_id, tokens)
            commitment = await self._commitments.create_commitment(
                db,
                Commitment(
                    id=generate_id("cmt"),
                    user_id=user_id,
                    market_id=market_id,
                    option_id=option_id,
                    tokens_committed=tokens,
                ),
            )
            await self._markets.record_stake(
                db,
                market_id,
                option_id,
                tokens,
                new_market_participant=not held_options,
                new_option_participant=option_id not in held_options,
            )
            await self._balances.record_transaction(
                db,
                TokenTransaction(
                    user_id=user_id,
                    type=TransactionType.COMMITMENT.value,
                    amount=-tokens,
                    balance_after=balance.available_tokens,
                    market_id=market_id,
                    reference_id=commitment.id,
                    description=f"Committed to option {option_id}",
                    metadata={"option_id": option_id},
                ),
            )

        logger.info(
            "Commitment %s: user=%s market=%s option=%s tokens=%d",
            commitment.id, user_id, market_id, option_id, tokens,
        )
        return CommitTokensResponse(
            commitment=CommitmentResponse.from_domain(commitment),
            available_tokens=balance.available_tokens,
            committed_tokens=balance.committed_tokens,
        )

    async def list_my_commitments(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> CommitmentListResponse:
        rows = await self._commitments.list_for_user(
            db, user_id, market_id, status, cursor, limit + 1
        )
        has_more = len(rows) > limit
        page = rows[:limit]
        return CommitmentListResponse(
            items=[CommitmentResponse.from_domain(c) for c in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )
