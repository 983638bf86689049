"""
Explicit transaction scope for write services.

    async with transaction(db):
        ...

commits on normal exit, rolls back on any exception, and translates store
aborts that are safe to retry (serialization failures, deadlocks, lock
timeouts, a busy SQLite database) into TransientStoreError.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from seatlock.core.exceptions import TransientStoreError
from seatlock.core.logging import get_logger

logger = get_logger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
TRANSIENT_SQLSTATES = {"40001", "40P01", "55P03"}


def is_transient(exc: DBAPIError) -> bool:
    if isinstance(exc, OperationalError):
        return True
    code = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    return code in TRANSIENT_SQLSTATES


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    try:
        async with db.begin():
            yield db
    except DBAPIError as exc:
        if not is_transient(exc):
            raise
        logger.warning("transaction_aborted", error=str(exc.orig))
        raise TransientStoreError() from exc
