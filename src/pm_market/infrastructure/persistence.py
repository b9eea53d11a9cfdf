"""MarketRepository — concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Status transitions are compare-and-set on ``version``: the caller already
holds the row lock from get_market_for_update(), the version guard turns any
write against a stale snapshot into a StorageFailureError instead of a lost
update.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import MarketStatus
from src.pm_common.errors import InternalError, StorageFailureError
from src.pm_market.domain.models import Market, MarketOption

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, title, description, status, created_by, creator_fee_bps, end_at,
    total_tokens, participant_count, resolution_id, resolved_at,
    cancelled_at, cancelled_by, cancellation_reason, refund_tokens,
    version, created_at, updated_at
"""

_GET_MARKET_SQL = text(f"SELECT {_MARKET_COLUMNS} FROM markets WHERE id = :market_id")

_GET_MARKET_FOR_UPDATE_SQL = text(
    f"SELECT {_MARKET_COLUMNS} FROM markets WHERE id = :market_id FOR UPDATE"
)

_LIST_MARKETS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE
        (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_GET_OPTIONS_SQL = text("""
    SELECT market_id, id, text, total_tokens, participant_count
    FROM market_options
    WHERE market_id = ANY(:market_ids)
    ORDER BY market_id, position
""")

_INSERT_MARKET_SQL = text(f"""
    INSERT INTO markets
        (id, title, description, status, created_by, creator_fee_bps, end_at)
    VALUES
        (:id, :title, :description, :status, :created_by, :creator_fee_bps, :end_at)
    RETURNING {_MARKET_COLUMNS}
""")

_INSERT_OPTION_SQL = text("""
    INSERT INTO market_options (market_id, id, text, position)
    VALUES (:market_id, :id, :text, :position)
""")

_UPDATE_CREATOR_FEE_SQL = text("""
    UPDATE markets
    SET creator_fee_bps = :fee_bps,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :market_id
""")

_STAKE_OPTION_SQL = text("""
    UPDATE market_options
    SET total_tokens = total_tokens + :tokens,
        participant_count = participant_count + :new_participant
    WHERE market_id = :market_id AND id = :option_id
""")

_STAKE_MARKET_SQL = text("""
    UPDATE markets
    SET total_tokens = total_tokens + :tokens,
        participant_count = participant_count + :new_participant,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :market_id
""")

_MARK_RESOLVED_SQL = text("""
    UPDATE markets
    SET status = :status,
        resolution_id = :resolution_id,
        resolved_at = :resolved_at,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :market_id AND version = :expected_version
    RETURNING id
""")

_MARK_CANCELLED_SQL = text("""
    UPDATE markets
    SET status = :status,
        cancelled_at = :cancelled_at,
        cancelled_by = :cancelled_by,
        cancellation_reason = :reason,
        refund_tokens = :refund_tokens,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :market_id AND version = :expected_version
    RETURNING id
""")

_ZERO_OPTIONS_SQL = text("""
    UPDATE market_options
    SET total_tokens = 0
    WHERE market_id = :market_id
""")

_ZERO_MARKET_TOTAL_SQL = text("""
    UPDATE markets
    SET total_tokens = 0,
        updated_at = NOW()
    WHERE id = :market_id
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_market(row: object, options: list[MarketOption]) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_by=row.created_by,  # type: ignore[attr-defined]
        creator_fee_bps=row.creator_fee_bps,  # type: ignore[attr-defined]
        end_at=row.end_at,  # type: ignore[attr-defined]
        options=options,
        total_tokens=row.total_tokens,  # type: ignore[attr-defined]
        participant_count=row.participant_count,  # type: ignore[attr-defined]
        resolution_id=row.resolution_id,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        cancelled_at=row.cancelled_at,  # type: ignore[attr-defined]
        cancelled_by=row.cancelled_by,  # type: ignore[attr-defined]
        cancellation_reason=row.cancellation_reason,  # type: ignore[attr-defined]
        refund_tokens=row.refund_tokens,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_option(row: object) -> MarketOption:
    return MarketOption(
        id=row.id,  # type: ignore[attr-defined]
        text=row.text,  # type: ignore[attr-defined]
        total_tokens=row.total_tokens,  # type: ignore[attr-defined]
        participant_count=row.participant_count,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class MarketRepository:
    """Concrete repository. Transaction ownership stays with the caller."""

    async def _load_options(
        self, db: AsyncSession, market_ids: list[str]
    ) -> dict[str, list[MarketOption]]:
        by_market: dict[str, list[MarketOption]] = {mid: [] for mid in market_ids}
        if not market_ids:
            return by_market
        result = await db.execute(_GET_OPTIONS_SQL, {"market_ids": market_ids})
        for row in result.fetchall():
            by_market[row.market_id].append(_row_to_option(row))
        return by_market

    async def _fetch_one(
        self, db: AsyncSession, stmt: object, market_id: str
    ) -> Market | None:
        result = await db.execute(stmt, {"market_id": market_id})  # type: ignore[arg-type]
        row = result.fetchone()
        if row is None:
            return None
        options = await self._load_options(db, [row.id])
        return _row_to_market(row, options[row.id])

    async def get_market_by_id(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        return await self._fetch_one(db, _GET_MARKET_SQL, market_id)

    async def get_market_for_update(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        """Read the market row with a row lock held until commit/rollback."""
        return await self._fetch_one(db, _GET_MARKET_FOR_UPDATE_SQL, market_id)

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]:
        # asyncpg requires a real datetime object for TIMESTAMPTZ parameters,
        # not an ISO string.  Parse the cursor timestamp here.
        cursor_ts_dt: datetime | None = None
        if cursor_ts is not None:
            cursor_ts_dt = datetime.fromisoformat(cursor_ts)

        result = await db.execute(
            _LIST_MARKETS_SQL,
            {
                "status": status,
                "cursor_ts": cursor_ts_dt,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        rows = result.fetchall()
        options = await self._load_options(db, [row.id for row in rows])
        return [_row_to_market(row, options[row.id]) for row in rows]

    async def create_market(self, db: AsyncSession, market: Market) -> Market:
        result = await db.execute(
            _INSERT_MARKET_SQL,
            {
                "id": market.id,
                "title": market.title,
                "description": market.description,
                "status": MarketStatus.ACTIVE.value,
                "created_by": market.created_by,
                "creator_fee_bps": market.creator_fee_bps,
                "end_at": market.end_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Market insert returned no rows")
        await db.execute(
            _INSERT_OPTION_SQL,
            [
                {"market_id": market.id, "id": opt.id, "text": opt.text, "position": i}
                for i, opt in enumerate(market.options)
            ],
        )
        return _row_to_market(
            row, [MarketOption(id=opt.id, text=opt.text) for opt in market.options]
        )

    async def update_creator_fee(
        self, db: AsyncSession, market_id: str, fee_bps: int
    ) -> None:
        await db.execute(
            _UPDATE_CREATOR_FEE_SQL, {"market_id": market_id, "fee_bps": fee_bps}
        )

    async def record_stake(
        self,
        db: AsyncSession,
        market_id: str,
        option_id: str,
        tokens: int,
        new_market_participant: bool,
        new_option_participant: bool,
    ) -> None:
        await db.execute(
            _STAKE_OPTION_SQL,
            {
                "market_id": market_id,
                "option_id": option_id,
                "tokens": tokens,
                "new_participant": int(new_option_participant),
            },
        )
        await db.execute(
            _STAKE_MARKET_SQL,
            {
                "market_id": market_id,
                "tokens": tokens,
                "new_participant": int(new_market_participant),
            },
        )

    async def mark_resolved(
        self,
        db: AsyncSession,
        market: Market,
        resolution_id: str,
        resolved_at: datetime,
    ) -> None:
        result = await db.execute(
            _MARK_RESOLVED_SQL,
            {
                "market_id": market.id,
                "status": MarketStatus.RESOLVED.value,
                "resolution_id": resolution_id,
                "resolved_at": resolved_at,
                "expected_version": market.version,
            },
        )
        if result.fetchone() is None:
            raise StorageFailureError(f"Concurrent modification of market {market.id}")

    async def mark_cancelled(
        self,
        db: AsyncSession,
        market: Market,
        cancelled_by: str,
        reason: str,
        refund_tokens: bool,
        cancelled_at: datetime,
    ) -> None:
        result = await db.execute(
            _MARK_CANCELLED_SQL,
            {
                "market_id": market.id,
                "status": MarketStatus.CANCELLED.value,
                "cancelled_at": cancelled_at,
                "cancelled_by": cancelled_by,
                "reason": reason,
                "refund_tokens": refund_tokens,
                "expected_version": market.version,
            },
        )
        if result.fetchone() is None:
            raise StorageFailureError(f"Concurrent modification of market {market.id}")

    async def zero_option_totals(self, db: AsyncSession, market_id: str) -> None:
        await db.execute(_ZERO_OPTIONS_SQL, {"market_id": market_id})
        await db.execute(_ZERO_MARKET_TOTAL_SQL, {"market_id": market_id})
