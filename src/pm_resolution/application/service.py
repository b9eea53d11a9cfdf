"""ResolutionEngine — resolve and cancel markets, plus their read paths.

Every mutation follows the same shape inside one unit_of_work():

    1. lock the market row (SELECT ... FOR UPDATE)
    2. re-check its status against the state machine
    3. lock and read the active commitments
    4. compute the plan (pure, pm_resolution.domain)
    5. write market, commitments, balances, payouts, audit log

Input validation that needs no database (winning option, evidence, fee
range, cancellation reason) runs before the transaction opens. Balance
rows are touched in sorted user_id order so two engines working on
different markets always lock shared users in the same order.
"""

import logging
from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import TokenTransaction
from src.pm_account.domain.repository import BalanceRepositoryProtocol
from src.pm_account.infrastructure.persistence import BalanceRepository
from src.pm_commitment.domain.repository import CommitmentRepositoryProtocol
from src.pm_commitment.infrastructure.persistence import CommitmentRepository
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketStatus, ResolutionAction, TransactionType
from src.pm_common.errors import (
    CancellationReasonTooShortError,
    MarketNotFoundError,
    MissingWinningOptionError,
    OptionNotFoundError,
    ResolutionNotFoundError,
)
from src.pm_common.id_generator import generate_id
from src.pm_common.transaction import unit_of_work
from src.pm_market.domain.fees import (
    validate_creator_fee_bps,
    validate_creator_fee_fraction,
)
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.domain.state import ensure_not_terminal, transition_path
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_resolution.application.schemas import (
    CancelMarketResponse,
    CreatorPayoutOut,
    PayoutPreviewResponse,
    ResolutionDetail,
    ResolutionLogItem,
    ResolutionLogListResponse,
    ResolveMarketResponse,
    UserPayoutsResponse,
    WinnerPayoutOut,
)
from src.pm_resolution.domain.constants import (
    HOUSE_FEE_BPS,
    MIN_CANCELLATION_REASON_LENGTH,
)
from src.pm_resolution.domain.evidence import validate_evidence
from src.pm_resolution.domain.models import (
    CreatorPayout,
    Evidence,
    HousePayout,
    Resolution,
    ResolutionLogEntry,
    WinnerPayout,
)
from src.pm_resolution.domain.payout import PayoutPlan, compute_payout_plan
from src.pm_resolution.domain.refund import build_refund_plan
from src.pm_resolution.domain.repository import ResolutionRepositoryProtocol
from src.pm_resolution.infrastructure.persistence import ResolutionRepository

logger = logging.getLogger(__name__)


def _explicit_fee_bps(creator_fee_fraction: float | None) -> int | None:
    if creator_fee_fraction is None:
        return None
    return validate_creator_fee_fraction(creator_fee_fraction)


class ResolutionEngine:
    def __init__(
        self,
        markets: MarketRepositoryProtocol | None = None,
        commitments: CommitmentRepositoryProtocol | None = None,
        balances: BalanceRepositoryProtocol | None = None,
        resolutions: ResolutionRepositoryProtocol | None = None,
        house_fee_bps: int = HOUSE_FEE_BPS,
    ) -> None:
        self._markets: MarketRepositoryProtocol = markets or MarketRepository()
        self._commitments: CommitmentRepositoryProtocol = commitments or CommitmentRepository()
        self._balances: BalanceRepositoryProtocol = balances or BalanceRepository()
        self._resolutions: ResolutionRepositoryProtocol = resolutions or ResolutionRepository()
        self._house_fee_bps = house_fee_bps

    # ------------------------------------------------------------------
    # resolve
    # ------------------------------------------------------------------

    async def resolve(
        self,
        db: AsyncSession,
        market_id: str,
        winning_option_id: str | None,
        evidence: list[Evidence],
        admin_id: str,
        creator_fee_fraction: float | None = None,
    ) -> ResolveMarketResponse:
        if not winning_option_id or not winning_option_id.strip():
            raise MissingWinningOptionError()
        evidence = validate_evidence(evidence)
        explicit_fee_bps = _explicit_fee_bps(creator_fee_fraction)

        async with unit_of_work(db):
            market = await self._markets.get_market_for_update(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            path = transition_path(market_id, market.status, MarketStatus.RESOLVED)
            if market.option(winning_option_id) is None:
                raise OptionNotFoundError(market_id, winning_option_id)
            fee_bps = (
                explicit_fee_bps
                if explicit_fee_bps is not None
                else validate_creator_fee_bps(market.creator_fee_bps)
            )

            commitments = await self._commitments.list_active_for_market(
                db, market_id, for_update=True
            )
            plan = compute_payout_plan(
                commitments, winning_option_id, fee_bps, self._house_fee_bps
            )

            resolution = Resolution(
                id=generate_id("res"),
                market_id=market_id,
                winning_option_id=winning_option_id,
                evidence=evidence,
                resolved_by=admin_id,
                resolved_at=utc_now(),
                total_pool=plan.total_pool,
                total_payout=plan.total_payout,
                winner_count=plan.winner_count,
                house_fee_amount=plan.house_fee,
                house_fee_bps=plan.house_fee_bps,
                creator_fee_amount=plan.creator_fee,
                creator_fee_bps=plan.creator_fee_bps,
            )

            await self._markets.mark_resolved(db, market, resolution.id, resolution.resolved_at)
            await self._resolutions.insert_resolution(db, resolution)
            await self._resolutions.insert_winner_payouts(
                db,
                [
                    WinnerPayout(
                        resolution_id=resolution.id,
                        market_id=market_id,
                        commitment_id=w.commitment_id,
                        user_id=w.user_id,
                        option_id=w.option_id,
                        tokens_staked=w.tokens_staked,
                        payout_amount=w.payout_amount,
                    )
                    for w in plan.winners
                ],
            )
            await self._commitments.mark_outcomes(db, plan.outcomes(), resolution.resolved_at)
            await self._settle_balances(db, market, resolution.id, plan)

            if plan.creator_fee > 0:
                await self._resolutions.insert_creator_payout(
                    db,
                    CreatorPayout(
                        resolution_id=resolution.id,
                        market_id=market_id,
                        creator_id=market.created_by,
                        fee_amount=plan.creator_fee,
                        fee_bps=plan.creator_fee_bps,
                    ),
                )
            await self._resolutions.insert_house_payout(
                db,
                HousePayout(
                    resolution_id=resolution.id,
                    market_id=market_id,
                    fee_amount=plan.house_fee,
                    fee_bps=plan.house_fee_bps,
                ),
            )
            await self._resolutions.append_logs(
                db, self._resolution_log(market, path, resolution, plan, admin_id)
            )

        logger.info(
            "Market %s resolved: resolution=%s option=%s pool=%d payout=%d winners=%d "
            "house_fee=%d creator_fee=%d retained=%d",
            market_id, resolution.id, winning_option_id, plan.total_pool,
            plan.total_payout, plan.winner_count, plan.house_fee, plan.creator_fee,
            plan.retained_remainder,
        )
        return ResolveMarketResponse.from_domain(resolution)

    async def _settle_balances(
        self, db: AsyncSession, market: Market, resolution_id: str, plan: PayoutPlan
    ) -> None:
        """Release every participant's stake and credit winnings and the creator fee."""
        payouts = plan.payouts_by_user()
        credit: dict[str, int] = defaultdict(int, payouts)
        if plan.creator_fee > 0:
            credit[market.created_by] += plan.creator_fee

        for user_id in sorted(set(plan.stakes_by_user) | set(credit)):
            balance = await self._balances.credit(
                db,
                user_id,
                credit[user_id],
                release_committed=plan.stakes_by_user.get(user_id, 0),
                earned=credit[user_id],
            )
            won = payouts.get(user_id, 0)
            is_creator = user_id == market.created_by and plan.creator_fee > 0
            if won > 0:
                await self._balances.record_transaction(
                    db,
                    TokenTransaction(
                        user_id=user_id,
                        type=TransactionType.PREDICTION_WIN.value,
                        amount=won,
                        balance_after=balance.available_tokens
                        - (plan.creator_fee if is_creator else 0),
                        market_id=market.id,
                        reference_id=resolution_id,
                        description=f"Winnings from market {market.id}",
                        metadata={"winning_option_id": plan.winning_option_id},
                    ),
                )
            if is_creator:
                await self._balances.record_transaction(
                    db,
                    TokenTransaction(
                        user_id=user_id,
                        type=TransactionType.CREATOR_FEE.value,
                        amount=plan.creator_fee,
                        balance_after=balance.available_tokens,
                        market_id=market.id,
                        reference_id=resolution_id,
                        description=f"Creator fee for market {market.id}",
                        metadata={"fee_bps": plan.creator_fee_bps},
                    ),
                )

    @staticmethod
    def _resolution_log(
        market: Market,
        path: list[MarketStatus],
        resolution: Resolution,
        plan: PayoutPlan,
        admin_id: str,
    ) -> list[ResolutionLogEntry]:
        def entry(action: ResolutionAction, **details: object) -> ResolutionLogEntry:
            return ResolutionLogEntry(
                market_id=market.id, action=action.value, admin_id=admin_id, details=details
            )

        return [
            entry(
                ResolutionAction.RESOLUTION_STARTED,
                from_status=MarketStatus(market.status).value,
                path=[s.value for s in path],
            ),
            entry(
                ResolutionAction.EVIDENCE_VALIDATED,
                evidence_count=len(resolution.evidence),
                evidence_types=sorted({e.type for e in resolution.evidence}),
            ),
            entry(
                ResolutionAction.PAYOUTS_CALCULATED,
                total_pool=plan.total_pool,
                house_fee=plan.house_fee,
                creator_fee=plan.creator_fee,
                distributable=plan.distributable,
                winner_count=plan.winner_count,
            ),
            entry(
                ResolutionAction.TOKENS_DISTRIBUTED,
                total_payout=plan.total_payout,
                retained_remainder=plan.retained_remainder,
                users_settled=len(plan.stakes_by_user),
            ),
            entry(
                ResolutionAction.RESOLUTION_COMPLETED,
                resolution_id=resolution.id,
                winning_option_id=resolution.winning_option_id,
            ),
        ]

    # ------------------------------------------------------------------
    # cancel
    # ------------------------------------------------------------------

    async def cancel(
        self,
        db: AsyncSession,
        market_id: str,
        reason: str,
        admin_id: str,
        refund_tokens: bool = True,
    ) -> CancelMarketResponse:
        reason = (reason or "").strip()
        if len(reason) < MIN_CANCELLATION_REASON_LENGTH:
            raise CancellationReasonTooShortError(MIN_CANCELLATION_REASON_LENGTH)

        async with unit_of_work(db):
            market = await self._markets.get_market_for_update(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            transition_path(market_id, market.status, MarketStatus.CANCELLED)

            commitments = await self._commitments.list_active_for_market(
                db, market_id, for_update=True
            )
            plan = build_refund_plan(commitments, refund_tokens)
            cancelled_at = utc_now()

            await self._commitments.mark_outcomes(db, plan.outcomes, cancelled_at)
            for user_id in sorted(plan.refunds_by_user):
                amount = plan.refunds_by_user[user_id]
                balance = await self._balances.credit(
                    db, user_id, amount, release_committed=amount
                )
                await self._balances.record_transaction(
                    db,
                    TokenTransaction(
                        user_id=user_id,
                        type=TransactionType.MARKET_CANCELLATION_REFUND.value,
                        amount=amount,
                        balance_after=balance.available_tokens,
                        market_id=market_id,
                        description=f"Refund for cancelled market {market_id}",
                        metadata={"reason": reason},
                    ),
                )
            if not refund_tokens:
                await self._markets.zero_option_totals(db, market_id)

            await self._markets.mark_cancelled(
                db, market, admin_id, reason, refund_tokens, cancelled_at
            )
            await self._resolutions.append_logs(
                db,
                [
                    ResolutionLogEntry(
                        market_id=market_id,
                        action=ResolutionAction.MARKET_CANCELLED.value,
                        admin_id=admin_id,
                        details={
                            "reason": reason,
                            "from_status": MarketStatus(market.status).value,
                            "refund_tokens": refund_tokens,
                            "total_tokens_refunded": plan.total_refunded,
                            "users_refunded": plan.users_refunded,
                            "commitments_affected": len(plan.outcomes),
                        },
                    )
                ],
            )

        logger.info(
            "Market %s cancelled by admin=%s refund=%s refunded=%d users=%d commitments=%d",
            market_id, admin_id, refund_tokens, plan.total_refunded,
            plan.users_refunded, len(plan.outcomes),
        )
        return CancelMarketResponse(
            market_id=market_id,
            refund_tokens=refund_tokens,
            total_tokens_refunded=plan.total_refunded,
            users_refunded=plan.users_refunded,
            commitments_affected=len(plan.outcomes),
            cancelled_at=cancelled_at.isoformat(),
        )

    # ------------------------------------------------------------------
    # read paths
    # ------------------------------------------------------------------

    async def preview_payouts(
        self,
        db: AsyncSession,
        market_id: str,
        winning_option_id: str | None,
        creator_fee_fraction: float | None = None,
    ) -> PayoutPreviewResponse:
        """Run the payout computation against the current ledger. Writes nothing."""
        if not winning_option_id or not winning_option_id.strip():
            raise MissingWinningOptionError()
        explicit_fee_bps = _explicit_fee_bps(creator_fee_fraction)

        market = await self._markets.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        ensure_not_terminal(market_id, market.status)
        if market.option(winning_option_id) is None:
            raise OptionNotFoundError(market_id, winning_option_id)
        fee_bps = (
            explicit_fee_bps
            if explicit_fee_bps is not None
            else validate_creator_fee_bps(market.creator_fee_bps)
        )

        commitments = await self._commitments.list_active_for_market(db, market_id)
        plan = compute_payout_plan(commitments, winning_option_id, fee_bps, self._house_fee_bps)
        return PayoutPreviewResponse.from_plan(market_id, plan)

    async def get_resolution(self, db: AsyncSession, market_id: str) -> ResolutionDetail:
        resolution = await self._resolutions.get_resolution_by_market(db, market_id)
        if resolution is None:
            raise ResolutionNotFoundError(market_id)
        payouts = await self._resolutions.list_winner_payouts(db, resolution.id)
        return ResolutionDetail.from_domain(resolution, payouts)

    async def list_resolution_logs(
        self, db: AsyncSession, market_id: str
    ) -> ResolutionLogListResponse:
        market = await self._markets.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        entries = await self._resolutions.list_logs(db, market_id)
        return ResolutionLogListResponse(
            market_id=market_id,
            items=[ResolutionLogItem.from_domain(e) for e in entries],
        )

    async def list_user_payouts(
        self, db: AsyncSession, user_id: str, limit: int = 50
    ) -> UserPayoutsResponse:
        winner_payouts = await self._resolutions.list_user_winner_payouts(db, user_id, limit)
        creator_payouts = await self._resolutions.list_user_creator_payouts(db, user_id, limit)
        total_winnings = sum(p.payout_amount for p in winner_payouts)
        total_creator_fees = sum(p.fee_amount for p in creator_payouts)
        return UserPayoutsResponse(
            user_id=user_id,
            winner_payouts=[WinnerPayoutOut.from_domain(p) for p in winner_payouts],
            creator_payouts=[CreatorPayoutOut.from_domain(p) for p in creator_payouts],
            total_winnings=total_winnings,
            total_creator_fees=total_creator_fees,
            total_received=total_winnings + total_creator_fees,
        )
