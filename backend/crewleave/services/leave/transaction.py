"""Transaction boundary for operations that cross a balance or capacity invariant.

The operation runs in one transaction at the engine's isolation level. A
serialization failure or deadlock is retried once with a fresh session; any
other store failure surfaces as IntegrityError with nothing committed.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crewleave.core.exceptions import IntegrityError, LeaveError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_SQLSTATES = {"40001", "40P01"}  # serialization_failure, deadlock_detected
MAX_ATTEMPTS = 2


def is_transient(exc: BaseException) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    if exc.connection_invalidated:
        return True
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code in TRANSIENT_SQLSTATES


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    operation: Callable[[AsyncSession], Awaitable[T]],
    *,
    name: str = "operation",
) -> T:
    for attempt in range(1, MAX_ATTEMPTS + 1):
        async with session_factory() as session:
            try:
                async with session.begin():
                    return await operation(session)
            except LeaveError:
                raise
            except SQLAlchemyError as exc:
                if is_transient(exc) and attempt < MAX_ATTEMPTS:
                    logger.warning("Transient store failure in %s, retrying: %s", name, exc)
                    continue
                logger.exception("Store failure in %s", name)
                raise IntegrityError() from exc
    raise IntegrityError()
