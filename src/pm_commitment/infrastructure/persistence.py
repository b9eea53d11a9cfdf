"""CommitmentRepository — raw SQL over the commitments table.

The resolution and cancellation paths read the active ledger of a market
with FOR UPDATE after the market row lock is already held, so a commitment
cannot change status underneath a running resolve.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_commitment.domain.models import Commitment, CommitmentOutcome
from src.pm_common.errors import InternalError

_COLUMNS = """
    id, user_id, market_id, option_id, tokens_committed, status,
    payout_amount, refund_amount, created_at, resolved_at
"""

_LIST_ACTIVE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM commitments
    WHERE market_id = :market_id AND status = 'active'
    ORDER BY created_at, id
""")

_LIST_ACTIVE_FOR_UPDATE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM commitments
    WHERE market_id = :market_id AND status = 'active'
    ORDER BY created_at, id
    FOR UPDATE
""")

_USER_OPTIONS_SQL = text("""
    SELECT DISTINCT option_id
    FROM commitments
    WHERE market_id = :market_id AND user_id = :user_id AND status = 'active'
""")

_INSERT_SQL = text(f"""
    INSERT INTO commitments
        (id, user_id, market_id, option_id, tokens_committed, status)
    VALUES
        (:id, :user_id, :market_id, :option_id, :tokens_committed, 'active')
    RETURNING {_COLUMNS}
""")

# Guarded on status so a commitment leaves 'active' exactly once
_MARK_OUTCOME_SQL = text("""
    UPDATE commitments
    SET status = :status,
        payout_amount = :payout_amount,
        refund_amount = :refund_amount,
        resolved_at = :resolved_at
    WHERE id = :commitment_id AND status = 'active'
""")

_LIST_FOR_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM commitments
    WHERE user_id = :user_id
      AND (CAST(:market_id AS TEXT) IS NULL OR market_id = CAST(:market_id AS TEXT))
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_commitment(row: object) -> Commitment:
    return Commitment(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        option_id=row.option_id,  # type: ignore[attr-defined]
        tokens_committed=row.tokens_committed,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        payout_amount=row.payout_amount,  # type: ignore[attr-defined]
        refund_amount=row.refund_amount,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
    )


class CommitmentRepository:
    async def list_active_for_market(
        self, db: AsyncSession, market_id: str, for_update: bool = False
    ) -> list[Commitment]:
        stmt = _LIST_ACTIVE_FOR_UPDATE_SQL if for_update else _LIST_ACTIVE_SQL
        result = await db.execute(stmt, {"market_id": market_id})
        return [_row_to_commitment(row) for row in result.fetchall()]

    async def get_user_option_ids(
        self, db: AsyncSession, market_id: str, user_id: str
    ) -> set[str]:
        result = await db.execute(
            _USER_OPTIONS_SQL, {"market_id": market_id, "user_id": user_id}
        )
        return {row.option_id for row in result.fetchall()}

    async def create_commitment(
        self, db: AsyncSession, commitment: Commitment
    ) -> Commitment:
        result = await db.execute(
            _INSERT_SQL,
            {
                "id": commitment.id,
                "user_id": commitment.user_id,
                "market_id": commitment.market_id,
                "option_id": commitment.option_id,
                "tokens_committed": commitment.tokens_committed,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Commitment insert returned no rows")
        return _row_to_commitment(row)

    async def mark_outcomes(
        self,
        db: AsyncSession,
        outcomes: list[CommitmentOutcome],
        resolved_at: datetime,
    ) -> None:
        if not outcomes:
            return
        await db.execute(
            _MARK_OUTCOME_SQL,
            [
                {
                    "commitment_id": o.commitment_id,
                    "status": o.status,
                    "payout_amount": o.payout_amount,
                    "refund_amount": o.refund_amount,
                    "resolved_at": resolved_at,
                }
                for o in outcomes
            ],
        )

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        status: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Commitment]:
        result = await db.execute(
            _LIST_FOR_USER_SQL,
            {
                "user_id": user_id,
                "market_id": market_id,
                "status": status,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_commitment(row) for row in result.fetchall()]
