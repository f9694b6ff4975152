"""Transaction Runner — one operation, one unit of work, one deadline.

Invariants:
    - The operation runs entirely inside the unit of work it receives
    - Commit happens only after the operation returned successfully
    - Any exception, cancellation or deadline expiry rolls the unit back
    - Deadline expiry surfaces as RequestTimeoutError

Design Decisions:
    - asyncio.wait_for around the operation only (not the commit): a commit
      that already started is never interrupted half-way
    - No retries: non-idempotent operations must not be repeated blindly
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from stm.core.errors import RequestTimeoutError
from stm.core.repository_protocols import UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_in_transaction(
    uow: UnitOfWork,
    operation: Callable[[UnitOfWork], Awaitable[T]],
    timeout_seconds: float | None = None,
) -> T:
    """Run operation(uow) and commit, or roll back everything."""
    async with uow:
        try:
            result = await asyncio.wait_for(operation(uow), timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"Unit of work exceeded {timeout_seconds}s, rolling back")
            raise RequestTimeoutError(timeout_seconds)
        await uow.commit()
        return result
