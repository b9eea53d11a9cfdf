"""ResolutionRepository — raw SQL for resolutions, payouts and resolution_logs.

Insert-only except for reads: a resolution and its payouts are written once,
inside the transaction that flips the market to resolved.
"""

import json

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_resolution.domain.models import (
    CreatorPayout,
    Evidence,
    HousePayout,
    Resolution,
    ResolutionLogEntry,
    WinnerPayout,
)

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_INSERT_RESOLUTION_SQL = text("""
    INSERT INTO resolutions
        (id, market_id, winning_option_id, evidence, resolved_by, resolved_at,
         total_pool, total_payout, winner_count,
         house_fee_amount, house_fee_bps, creator_fee_amount, creator_fee_bps, status)
    VALUES
        (:id, :market_id, :winning_option_id, CAST(:evidence AS JSONB), :resolved_by,
         :resolved_at, :total_pool, :total_payout, :winner_count,
         :house_fee_amount, :house_fee_bps, :creator_fee_amount, :creator_fee_bps, :status)
""")

_INSERT_WINNER_PAYOUT_SQL = text("""
    INSERT INTO resolution_payouts
        (resolution_id, market_id, commitment_id, user_id, option_id,
         tokens_staked, payout_amount, status)
    VALUES
        (:resolution_id, :market_id, :commitment_id, :user_id, :option_id,
         :tokens_staked, :payout_amount, :status)
""")

_INSERT_CREATOR_PAYOUT_SQL = text("""
    INSERT INTO creator_payouts
        (resolution_id, market_id, creator_id, fee_amount, fee_bps, status)
    VALUES
        (:resolution_id, :market_id, :creator_id, :fee_amount, :fee_bps, :status)
""")

_INSERT_HOUSE_PAYOUT_SQL = text("""
    INSERT INTO house_payouts (resolution_id, market_id, fee_amount, fee_bps)
    VALUES (:resolution_id, :market_id, :fee_amount, :fee_bps)
""")

_INSERT_LOG_SQL = text("""
    INSERT INTO resolution_logs (market_id, action, admin_id, details)
    VALUES (:market_id, :action, :admin_id, CAST(:details AS JSONB))
""")

_GET_RESOLUTION_SQL = text("""
    SELECT id, market_id, winning_option_id, evidence, resolved_by, resolved_at,
           total_pool, total_payout, winner_count,
           house_fee_amount, house_fee_bps, creator_fee_amount, creator_fee_bps,
           status, created_at
    FROM resolutions
    WHERE market_id = :market_id
""")

_WINNER_PAYOUT_COLUMNS = """
    id, resolution_id, market_id, commitment_id, user_id, option_id,
    tokens_staked, payout_amount, status, created_at
"""

_LIST_WINNER_PAYOUTS_SQL = text(f"""
    SELECT {_WINNER_PAYOUT_COLUMNS}
    FROM resolution_payouts
    WHERE resolution_id = :resolution_id
    ORDER BY payout_amount DESC, id
""")

_LIST_USER_WINNER_PAYOUTS_SQL = text(f"""
    SELECT {_WINNER_PAYOUT_COLUMNS}
    FROM resolution_payouts
    WHERE user_id = :user_id
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_USER_CREATOR_PAYOUTS_SQL = text("""
    SELECT id, resolution_id, market_id, creator_id, fee_amount, fee_bps,
           status, created_at
    FROM creator_payouts
    WHERE creator_id = :user_id
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_LOGS_SQL = text("""
    SELECT id, market_id, action, admin_id, details, created_at
    FROM resolution_logs
    WHERE market_id = :market_id
    ORDER BY created_at, id
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_resolution(row: object) -> Resolution:
    evidence = [
        Evidence(type=e["type"], content=e["content"], description=e.get("description"))
        for e in (row.evidence or [])  # type: ignore[attr-defined]
    ]
    return Resolution(
        id=row.id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        winning_option_id=row.winning_option_id,  # type: ignore[attr-defined]
        evidence=evidence,
        resolved_by=row.resolved_by,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        total_pool=row.total_pool,  # type: ignore[attr-defined]
        total_payout=row.total_payout,  # type: ignore[attr-defined]
        winner_count=row.winner_count,  # type: ignore[attr-defined]
        house_fee_amount=row.house_fee_amount,  # type: ignore[attr-defined]
        house_fee_bps=row.house_fee_bps,  # type: ignore[attr-defined]
        creator_fee_amount=row.creator_fee_amount,  # type: ignore[attr-defined]
        creator_fee_bps=row.creator_fee_bps,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_winner_payout(row: object) -> WinnerPayout:
    return WinnerPayout(
        id=row.id,  # type: ignore[attr-defined]
        resolution_id=row.resolution_id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        commitment_id=row.commitment_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        option_id=row.option_id,  # type: ignore[attr-defined]
        tokens_staked=row.tokens_staked,  # type: ignore[attr-defined]
        payout_amount=row.payout_amount,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_creator_payout(row: object) -> CreatorPayout:
    return CreatorPayout(
        id=row.id,  # type: ignore[attr-defined]
        resolution_id=row.resolution_id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        creator_id=row.creator_id,  # type: ignore[attr-defined]
        fee_amount=row.fee_amount,  # type: ignore[attr-defined]
        fee_bps=row.fee_bps,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_log(row: object) -> ResolutionLogEntry:
    return ResolutionLogEntry(
        id=row.id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        action=row.action,  # type: ignore[attr-defined]
        admin_id=row.admin_id,  # type: ignore[attr-defined]
        details=row.details or {},  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ResolutionRepository:
    async def insert_resolution(self, db: AsyncSession, resolution: Resolution) -> None:
        await db.execute(
            _INSERT_RESOLUTION_SQL,
            {
                "id": resolution.id,
                "market_id": resolution.market_id,
                "winning_option_id": resolution.winning_option_id,
                "evidence": json.dumps([e.to_dict() for e in resolution.evidence]),
                "resolved_by": resolution.resolved_by,
                "resolved_at": resolution.resolved_at,
                "total_pool": resolution.total_pool,
                "total_payout": resolution.total_payout,
                "winner_count": resolution.winner_count,
                "house_fee_amount": resolution.house_fee_amount,
                "house_fee_bps": resolution.house_fee_bps,
                "creator_fee_amount": resolution.creator_fee_amount,
                "creator_fee_bps": resolution.creator_fee_bps,
                "status": resolution.status,
            },
        )

    async def insert_winner_payouts(
        self, db: AsyncSession, payouts: list[WinnerPayout]
    ) -> None:
        if not payouts:
            return
        await db.execute(
            _INSERT_WINNER_PAYOUT_SQL,
            [
                {
                    "resolution_id": p.resolution_id,
                    "market_id": p.market_id,
                    "commitment_id": p.commitment_id,
                    "user_id": p.user_id,
                    "option_id": p.option_id,
                    "tokens_staked": p.tokens_staked,
                    "payout_amount": p.payout_amount,
                    "status": p.status,
                }
                for p in payouts
            ],
        )

    async def insert_creator_payout(self, db: AsyncSession, payout: CreatorPayout) -> None:
        await db.execute(
            _INSERT_CREATOR_PAYOUT_SQL,
            {
                "resolution_id": payout.resolution_id,
                "market_id": payout.market_id,
                "creator_id": payout.creator_id,
                "fee_amount": payout.fee_amount,
                "fee_bps": payout.fee_bps,
                "status": payout.status,
            },
        )

    async def insert_house_payout(self, db: AsyncSession, payout: HousePayout) -> None:
        await db.execute(
            _INSERT_HOUSE_PAYOUT_SQL,
            {
                "resolution_id": payout.resolution_id,
                "market_id": payout.market_id,
                "fee_amount": payout.fee_amount,
                "fee_bps": payout.fee_bps,
            },
        )

    async def append_logs(
        self, db: AsyncSession, entries: list[ResolutionLogEntry]
    ) -> None:
        if not entries:
            return
        await db.execute(
            _INSERT_LOG_SQL,
            [
                {
                    "market_id": e.market_id,
                    "action": e.action,
                    "admin_id": e.admin_id,
                    "details": json.dumps(e.details),
                }
                for e in entries
            ],
        )

    async def get_resolution_by_market(
        self, db: AsyncSession, market_id: str
    ) -> Resolution | None:
        result = await db.execute(_GET_RESOLUTION_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_resolution(row) if row else None

    async def list_winner_payouts(
        self, db: AsyncSession, resolution_id: str
    ) -> list[WinnerPayout]:
        result = await db.execute(_LIST_WINNER_PAYOUTS_SQL, {"resolution_id": resolution_id})
        return [_row_to_winner_payout(row) for row in result.fetchall()]

    async def list_logs(
        self, db: AsyncSession, market_id: str
    ) -> list[ResolutionLogEntry]:
        result = await db.execute(_LIST_LOGS_SQL, {"market_id": market_id})
        return [_row_to_log(row) for row in result.fetchall()]

    async def list_user_winner_payouts(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[WinnerPayout]:
        result = await db.execute(
            _LIST_USER_WINNER_PAYOUTS_SQL, {"user_id": user_id, "limit": limit}
        )
        return [_row_to_winner_payout(row) for row in result.fetchall()]

    async def list_user_creator_payouts(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[CreatorPayout]:
        result = await db.execute(
            _LIST_USER_CREATOR_PAYOUTS_SQL, {"user_id": user_id, "limit": limit}
        )
        return [_row_to_creator_payout(row) for row in result.fetchall()]
