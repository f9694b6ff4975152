"""Request Dependencies — authenticated user and per-request unit of work.

Invariants:
    - get_current_user returns a verified user id or raises AuthenticationError (401)
    - get_unit_of_work wraps the request's AsyncSession; one unit per request

Design Decisions:
    - Dependencies over middleware: each route states what it needs, and tests
      override exactly one function (get_db) to swap the database
"""

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from stm.core.domain_types import UserId
from stm.infrastructure.database import get_db
from stm.infrastructure.identity import get_identity_provider
from stm.infrastructure.sql_store import SqlUnitOfWork


async def get_current_user(
    authorization: str | None = Header(None),
) -> UserId:
    """Verified user id from the Authorization header."""
    return get_identity_provider().authenticate(authorization)


async def get_unit_of_work(
    db: AsyncSession = Depends(get_db),
) -> SqlUnitOfWork:
    return SqlUnitOfWork(db)
