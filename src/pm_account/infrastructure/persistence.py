"""BalanceRepository — concrete implementation of BalanceRepositoryProtocol.

All balance-mutating operations are single atomic PostgreSQL statements
(UPDATE ... RETURNING / INSERT ... ON CONFLICT ... RETURNING).
A result of 0 rows means a business constraint was violated.

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back, normally via unit_of_work().
"""

import json

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import TokenTransaction, UserBalance
from src.pm_common.errors import InsufficientBalanceError, InternalError

_BALANCE_COLUMNS = """
    user_id, available_tokens, committed_tokens,
    total_earned, total_spent, version, updated_at
"""

# ---------------------------------------------------------------------------
# SQL: balance mutations
# ---------------------------------------------------------------------------

# Creates the balance row on first credit (token issuance, fee to a creator
# who never staked). The WHERE guard keeps committed_tokens non-negative.
_CREDIT_SQL = text(f"""
    INSERT INTO user_balances (user_id, available_tokens, total_earned)
    VALUES (:user_id, :amount, :earned)
    ON CONFLICT (user_id) DO UPDATE
    SET available_tokens = user_balances.available_tokens + :amount,
        committed_tokens = user_balances.committed_tokens - :release,
        total_earned     = user_balances.total_earned + :earned,
        version = user_balances.version + 1,
        updated_at = NOW()
    WHERE user_balances.committed_tokens >= :release
    RETURNING {_BALANCE_COLUMNS}
""")

_STAKE_SQL = text(f"""
    UPDATE user_balances
    SET available_tokens = available_tokens - :amount,
        committed_tokens = committed_tokens + :amount,
        total_spent      = total_spent + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND available_tokens >= :amount
    RETURNING {_BALANCE_COLUMNS}
""")

_GET_BALANCE_SQL = text(f"""
    SELECT {_BALANCE_COLUMNS}
    FROM user_balances
    WHERE user_id = :user_id
""")

# ---------------------------------------------------------------------------
# SQL: transaction ledger
# ---------------------------------------------------------------------------

_INSERT_TRANSACTION_SQL = text("""
    INSERT INTO token_transactions
        (user_id, type, amount, balance_after,
         market_id, reference_id, description, metadata)
    VALUES
        (:user_id, :type, :amount, :balance_after,
         :market_id, :reference_id, :description, CAST(:metadata AS JSONB))
    RETURNING id, created_at
""")

_LIST_TRANSACTIONS_SQL = text("""
    SELECT id, user_id, type, amount, balance_after,
           market_id, reference_id, description, metadata, created_at
    FROM token_transactions
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:tx_type AS TEXT) IS NULL OR type = CAST(:tx_type AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_balance(row: object) -> UserBalance:
    return UserBalance(
        user_id=row.user_id,  # type: ignore[attr-defined]
        available_tokens=row.available_tokens,  # type: ignore[attr-defined]
        committed_tokens=row.committed_tokens,  # type: ignore[attr-defined]
        total_earned=row.total_earned,  # type: ignore[attr-defined]
        total_spent=row.total_spent,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_transaction(row: object) -> TokenTransaction:
    return TokenTransaction(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        metadata=row.metadata or {},  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class BalanceRepository:
    """Concrete repository — all operations atomic at the SQL level."""

    async def get_balance(
        self, db: AsyncSession, user_id: str
    ) -> UserBalance | None:
        result = await db.execute(_GET_BALANCE_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        release_committed: int = 0,
        earned: int = 0,
    ) -> UserBalance:
        """Add ``amount`` to available and move ``release_committed`` out of committed."""
        result = await db.execute(
            _CREDIT_SQL,
            {
                "user_id": user_id,
                "amount": amount,
                "release": release_committed,
                "earned": earned,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError(
                f"Committed tokens of user {user_id} lower than release of {release_committed}"
            )
        return _row_to_balance(row)

    async def stake(
        self, db: AsyncSession, user_id: str, amount: int
    ) -> UserBalance:
        """Move ``amount`` from available to committed, refusing overdraft."""
        result = await db.execute(_STAKE_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            bal_result = await db.execute(_GET_BALANCE_SQL, {"user_id": user_id})
            bal_row = bal_result.fetchone()
            available = bal_row.available_tokens if bal_row else 0
            raise InsufficientBalanceError(amount, available)
        return _row_to_balance(row)

    async def record_transaction(
        self, db: AsyncSession, tx: TokenTransaction
    ) -> TokenTransaction:
        result = await db.execute(
            _INSERT_TRANSACTION_SQL,
            {
                "user_id": tx.user_id,
                "type": tx.type,
                "amount": tx.amount,
                "balance_after": tx.balance_after,
                "market_id": tx.market_id,
                "reference_id": tx.reference_id,
                "description": tx.description,
                "metadata": json.dumps(tx.metadata),
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows — this should never happen")
        tx.id = row.id
        tx.created_at = row.created_at
        return tx

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        tx_type: str | None,
    ) -> list[TokenTransaction]:
        result = await db.execute(
            _LIST_TRANSACTIONS_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "tx_type": tx_type,
                "limit": limit,
            },
        )
        return [_row_to_transaction(row) for row in result.fetchall()]
