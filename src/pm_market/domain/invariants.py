"""Market ledger invariant verification.

INV-M1: sum(option.total_tokens) == sum(tokens_committed) over the market's
        commitments whose status is not 'cancelled'.
INV-M2: market.total_tokens == sum(option.total_tokens)
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_TOTALS_SQL = text("""
    SELECT
        m.id,
        m.total_tokens,
        COALESCE(
            (SELECT SUM(o.total_tokens) FROM market_options o WHERE o.market_id = m.id),
            0
        ) AS option_sum,
        COALESCE(
            (SELECT SUM(c.tokens_committed) FROM commitments c
             WHERE c.market_id = m.id AND c.status <> 'cancelled'),
            0
        ) AS commitment_sum
    FROM markets m
    ORDER BY m.id
""")


async def verify_market_invariants(db: AsyncSession) -> list[str]:
    """Return one message per violated invariant; empty list means healthy."""
    violations: list[str] = []
    rows = (await db.execute(_TOTALS_SQL)).fetchall()
    for row in rows:
        option_sum = int(row.option_sum)
        commitment_sum = int(row.commitment_sum)
        if option_sum != commitment_sum:
            violations.append(
                f"INV-M1 violated: market={row.id} option_sum={option_sum} "
                f"!= commitment_sum={commitment_sum}"
            )
        if row.total_tokens != option_sum:
            violations.append(
                f"INV-M2 violated: market={row.id} total_tokens={row.total_tokens} "
                f"!= option_sum={option_sum}"
            )
    for msg in violations:
        logger.error(msg)
    logger.debug("Market invariants checked: markets=%d violations=%d", len(rows), len(violations))
    return violations
