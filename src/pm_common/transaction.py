"""Caller-owned transaction boundary for application services.

    async with unit_of_work(db):
        ...reads with row locks, writes...

Commits on clean exit. On any exception the session is rolled back before
the error propagates, so no partial write survives. Driver/database errors
(lock timeouts, serialization failures, lost connections) are surfaced as
StorageFailureError, which callers may retry.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.errors import StorageFailureError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.warning("Transaction rolled back after storage error: %s", exc)
        raise StorageFailureError(f"Storage operation failed: {exc.__class__.__name__}") from exc
    except Exception:
        await db.rollback()
        raise
