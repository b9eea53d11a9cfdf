# src/pm_admin/application/service.py
"""Admin application service: operational checks not owned by a single package."""
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.datetime_utils import utc_now
from src.pm_market.domain.invariants import verify_market_invariants

logger = logging.getLogger(__name__)


class AdminService:
    async def check_invariants(self, db: AsyncSession) -> dict[str, Any]:
        violations = await verify_market_invariants(db)
        if violations:
            logger.warning("Invariant check found %d violation(s)", len(violations))
        return {
            "healthy": not violations,
            "violations": violations,
            "checked_at": utc_now().isoformat(),
        }
